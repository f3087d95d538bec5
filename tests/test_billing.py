"""Tests for fee calculation, dues and card payments."""
from datetime import date, timedelta
from io import StringIO

import pytest
from django.core import mail
from django.core.management import call_command
from django.core.management.base import CommandError

from apps.accounts.models import EmailLog
from apps.accounts.services import register_coach
from apps.billing.exceptions import AlreadyPaid, BillingError, InvalidCard, PaymentRejected
from apps.billing.models import MonthlyDue, Payment
from apps.billing.services import (
    compute_monthly_fee,
    discounted_fee,
    family_plan_summary,
    generate_monthly_dues,
    outstanding_charges,
    process_payment,
    round_half_up,
    set_base_fee,
    unpaid_dues,
)
from apps.billing.tasks import generate_current_month_dues
from apps.courts.services import create_court, reserve_court
from apps.practices.services import create_practice, enroll

from .helpers import person


@pytest.fixture
def court(db):
    return create_court({
        'number': 1, 'court_type': 'FUTBOL_5', 'price': 8000,
        'opens_at': '08:00', 'closes_at': '12:00',
    })


@pytest.fixture
def practice(db):
    return create_practice(
        {'name': 'Natacion', 'capacity': 10, 'price': 4000},
        [{'day': 'MARTES', 'start_time': '19:00', 'end_time': '20:00'}],
    )


class TestRounding:

    def test_halves_round_up(self):
        assert round_half_up('10.5') == 11
        assert round_half_up('10.4') == 10
        assert round_half_up('3503.5') == 3504

    def test_discounted_fee(self):
        assert discounted_fee(5000) == 3500
        assert discounted_fee(5005) == 3504
        assert discounted_fee(4999) == 3499
        assert discounted_fee(15, percent=30) == 11


@pytest.mark.django_db
class TestComputeMonthlyFee:

    def test_individual_pays_base_fee(self, socio):
        assert compute_monthly_fee(socio) == 5000

    def test_family_members_pay_the_same_discounted_fee(self, family):
        fees = [compute_monthly_fee(m) for m in [family.head] + family.members]
        assert fees == [3500, 3500, 3500]

    def test_repeated_lookups_agree(self, family):
        assert compute_monthly_fee(family.members[0]) == compute_monthly_fee(family.members[0])

    def test_follows_the_configured_base_fee(self, family):
        set_base_fee(5005)
        assert compute_monthly_fee(family.head) == 3504

    def test_coaches_have_no_fee(self):
        coach = register_coach(person('25111222', 'Carlos Ruiz', 35))
        with pytest.raises(BillingError):
            compute_monthly_fee(coach)

    def test_negative_base_fee_is_rejected(self):
        with pytest.raises(BillingError):
            set_base_fee(-1)
        with pytest.raises(BillingError):
            set_base_fee('mucho')


@pytest.mark.django_db
class TestFamilyPlanSummary:

    def test_head_sees_the_breakdown(self, family):
        summary = family_plan_summary(family.head)

        assert summary['is_head']
        assert summary['member_count'] == 3
        assert summary['subtotal'] == 15000
        assert summary['discount'] == 4500
        assert summary['total'] == 10500
        assert summary['monthly_fee'] == 3500
        assert summary['discount_percent'] == 30

    def test_dependent_sees_the_head(self, family):
        summary = family_plan_summary(family.members[0])

        assert not summary['is_head']
        assert summary['head']['id'] == family.head.pk
        assert 'members' not in summary

    def test_individual_summary(self, socio):
        summary = family_plan_summary(socio)

        assert summary['monthly_fee'] == 5000
        assert 'family_group' not in summary


@pytest.mark.django_db
class TestMonthlyDues:

    def test_one_due_per_socio_and_period(self, socio, family):
        register_coach(person('25111222', 'Carlos Ruiz', 35))

        assert generate_monthly_dues(2025, 3) == 4
        assert generate_monthly_dues(2025, 3) == 0
        assert MonthlyDue.objects.filter(year=2025, month=3).count() == 4
        assert MonthlyDue.objects.first().due_date == date(2025, 3, 10)

    def test_dry_run_writes_nothing(self, socio):
        assert generate_monthly_dues(2025, 4, dry_run=True) == 1
        assert not MonthlyDue.objects.exists()

    def test_invalid_month(self):
        with pytest.raises(BillingError):
            generate_monthly_dues(2025, 13)

    def test_family_members_see_the_whole_group(self, family):
        generate_monthly_dues(2025, 3)

        dues = unpaid_dues(family.members[0])

        assert len(dues) == 3
        assert {d['amount'] for d in dues} == {3500}

    def test_scheduled_task_creates_current_period(self, socio):
        result = generate_current_month_dues()

        assert 'Created 1 dues' in result
        assert MonthlyDue.objects.filter(member=socio).count() == 1

    def test_management_command(self, socio):
        out = StringIO()
        call_command('generate_monthly_dues', year=2025, month=3, stdout=out)
        assert 'Created 1 dues for 03/2025' in out.getvalue()

    def test_management_command_dry_run(self, socio):
        out = StringIO()
        call_command('generate_monthly_dues', year=2025, month=3, dry_run=True, stdout=out)

        assert 'Would create 1 dues' in out.getvalue()
        assert not MonthlyDue.objects.exists()

    def test_management_command_rejects_bad_month(self):
        with pytest.raises(CommandError):
            call_command('generate_monthly_dues', year=2025, month=13, stdout=StringIO())


@pytest.mark.django_db
class TestProcessPayment:

    def test_head_pays_a_dependent_due(self, family):
        generate_monthly_dues(2025, 3)
        due = MonthlyDue.objects.get(member=family.members[1])

        payment = process_payment(family.head, Payment.TYPE_DUE, due.pk, '4242')

        assert payment.status == Payment.STATUS_PAID
        assert payment.amount == 3500
        assert payment.token.startswith('tok_mock_')
        assert payment.paid_at is not None
        assert due.is_paid
        assert len(unpaid_dues(family.head)) == 2

    def test_paying_twice(self, socio):
        generate_monthly_dues(2025, 3)
        due = MonthlyDue.objects.get(member=socio)
        process_payment(socio, Payment.TYPE_DUE, due.pk, '4242')

        with pytest.raises(AlreadyPaid):
            process_payment(socio, Payment.TYPE_DUE, due.pk, '4242')

    def test_rejected_card_is_recorded(self, socio):
        generate_monthly_dues(2025, 3)
        due = MonthlyDue.objects.get(member=socio)

        with pytest.raises(PaymentRejected):
            process_payment(socio, Payment.TYPE_DUE, due.pk, '0002')

        payment = Payment.objects.get(member=socio)
        assert payment.status == Payment.STATUS_REJECTED
        assert not due.is_paid

    def test_unknown_card(self, socio):
        generate_monthly_dues(2025, 3)
        due = MonthlyDue.objects.get(member=socio)

        with pytest.raises(InvalidCard):
            process_payment(socio, Payment.TYPE_DUE, due.pk, '1111')

        assert not Payment.objects.exists()

    def test_cannot_pay_someone_elses_due(self, socio, make_member):
        other = make_member('30222333', 'Pedro Gomez', 33)
        generate_monthly_dues(2025, 3)
        due = MonthlyDue.objects.get(member=other)

        with pytest.raises(BillingError) as excinfo:
            process_payment(socio, Payment.TYPE_DUE, due.pk, '4242')

        assert excinfo.value.field == 'target_id'

    def test_paying_a_reservation_marks_it_paid(self, socio, court):
        reservation = reserve_court(socio, court, date.today() + timedelta(days=1), '09:00')

        payment = process_payment(socio, Payment.TYPE_RESERVATION, reservation.pk, '4242')

        reservation.refresh_from_db()
        assert payment.amount == 8000
        assert reservation.paid

    def test_paying_an_enrollment(self, socio, practice):
        enrollment = enroll(socio, practice)

        payment = process_payment(socio, Payment.TYPE_PRACTICE, enrollment.pk, '4242')

        assert payment.amount == 4000
        assert payment.enrollment == enrollment

    def test_receipt_is_emailed(self, socio, django_capture_on_commit_callbacks):
        generate_monthly_dues(2025, 3)
        due = MonthlyDue.objects.get(member=socio)

        with django_capture_on_commit_callbacks(execute=True):
            process_payment(socio, Payment.TYPE_DUE, due.pk, '4242')

        assert len(mail.outbox) == 1
        assert mail.outbox[0].to == [socio.email]
        log = EmailLog.objects.get()
        assert log.email_type == EmailLog.TYPE_PAYMENT_RECEIPT
        assert log.status == EmailLog.STATUS_SENT
        assert log.recipient == socio.email

    def test_failed_receipt_is_logged(self, socio, monkeypatch, django_capture_on_commit_callbacks):
        def broken_send_mail(*args, **kwargs):
            raise ConnectionRefusedError('SMTP server unavailable')

        monkeypatch.setattr('apps.accounts.notifications.send_mail', broken_send_mail)
        generate_monthly_dues(2025, 3)
        due = MonthlyDue.objects.get(member=socio)

        with django_capture_on_commit_callbacks(execute=True):
            payment = process_payment(socio, Payment.TYPE_DUE, due.pk, '4242')

        assert payment.status == Payment.STATUS_PAID
        log = EmailLog.objects.get()
        assert log.status == EmailLog.STATUS_FAILED
        assert 'SMTP server unavailable' in log.error


@pytest.mark.django_db
class TestOutstandingCharges:

    def test_lists_every_kind_of_charge(self, socio, court, practice):
        generate_monthly_dues(2025, 3)
        enroll(socio, practice)
        reservation = reserve_court(socio, court, date.today() + timedelta(days=1), '10:00')
        process_payment(socio, Payment.TYPE_RESERVATION, reservation.pk, '4242')

        charges = {c['type']: c for c in outstanding_charges(socio)}

        assert charges[Payment.TYPE_DUE]['amount'] == 5000
        assert charges[Payment.TYPE_DUE]['status'] == Payment.STATUS_PENDING
        assert charges[Payment.TYPE_PRACTICE]['amount'] == 4000
        assert charges[Payment.TYPE_RESERVATION]['status'] == Payment.STATUS_PAID
