"""
Billing calculator and payment processing.

Monthly fees are never stored: ``compute_monthly_fee`` derives them from the
member's current plan and the configured base fee, so every member of a
family plan always pays the same discounted amount.
"""
import logging
import secrets
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import Member
from apps.courts.models import CourtReservation
from apps.practices.models import Enrollment

from .exceptions import AlreadyPaid, BillingError, InvalidCard, PaymentRejected
from .models import BillingSettings, MonthlyDue, Payment
from .tasks import queue_payment_receipt

logger = logging.getLogger(__name__)

APPROVED_CARDS = {'4242'}
REJECTED_CARDS = {'0002', '0000'}


def round_half_up(value):
    """Round to a whole amount, halves away from zero."""
    return int(Decimal(value).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def get_base_fee():
    return BillingSettings.load().base_fee


def get_discount_percent():
    return Decimal(str(getattr(settings, 'CLUB_FAMILY_DISCOUNT_PERCENT', 30)))


def discounted_fee(base_fee, percent=None):
    percent = get_discount_percent() if percent is None else Decimal(str(percent))
    return round_half_up(Decimal(base_fee) * (100 - percent) / 100)


def compute_monthly_fee(member, base_fee=None):
    """
    Monthly fee owed by one socio.

    Individual members pay the base fee. Family members each pay the base
    fee minus the family discount, rounded half up to a whole amount.
    """
    if not member.membership_type:
        raise BillingError('Only socios with a plan pay a monthly fee.', field='member')
    base_fee = get_base_fee() if base_fee is None else base_fee
    if member.is_family:
        return discounted_fee(base_fee)
    return base_fee


def family_plan_summary(member):
    """
    What a member sees on their plan page.

    Heads of household get the group breakdown; dependents get the head's
    name and the discount they receive.
    """
    base_fee = get_base_fee()
    summary = {
        'member_id': member.pk,
        'membership_type': member.membership_type,
        'base_fee': base_fee,
        'monthly_fee': compute_monthly_fee(member, base_fee),
    }
    if not member.is_family:
        return summary

    percent = get_discount_percent()
    group = Member.get_group_members(member.family_group)
    summary.update({
        'family_group': member.family_group,
        'discount_percent': int(percent),
        'is_head': member.is_family_head,
    })

    if member.is_family_head:
        subtotal = base_fee * len(group)
        discount = round_half_up(Decimal(subtotal) * percent / 100)
        summary.update({
            'member_count': len(group),
            'members': [
                {
                    'id': m.pk,
                    'dni': m.dni,
                    'name': m.name,
                    'age': m.age,
                    'is_head': m.pk == member.pk,
                    'is_minor': m.is_minor,
                }
                for m in group
            ],
            'subtotal': subtotal,
            'discount': discount,
            'total': subtotal - discount,
        })
    else:
        head = member.head
        summary.update({
            'head': {'id': head.pk, 'name': head.name, 'dni': head.dni} if head else None,
        })
    return summary


def due_date_for(year, month):
    day = getattr(settings, 'CLUB_DUE_DAY_OF_MONTH', 10)
    return date(year, month, day)


def generate_monthly_dues(year, month, dry_run=False):
    """
    Create the dues of one period for every socio that lacks one.

    Safe to run repeatedly; returns the number of dues created (or that
    would be created, with ``dry_run``).
    """
    if not 1 <= month <= 12:
        raise BillingError('The month must be between 1 and 12.', field='month')

    socios = Member.objects.filter(role=Member.ROLE_SOCIO, membership_type__isnull=False)
    already = set(
        MonthlyDue.objects.filter(year=year, month=month).values_list('member_id', flat=True)
    )
    missing = [m for m in socios if m.pk not in already]
    if dry_run:
        return len(missing)

    due_date = due_date_for(year, month)
    MonthlyDue.objects.bulk_create(
        [MonthlyDue(member=m, year=year, month=month, due_date=due_date) for m in missing],
        ignore_conflicts=True,
    )
    logger.info(f"Generated {len(missing)} dues for {month:02d}/{year}")
    return len(missing)


def _billed_members(member):
    """Members whose dues ``member`` is responsible for."""
    if member.is_family:
        return Member.get_group_members(member.family_group)
    return [member]


def unpaid_dues(member):
    """
    Dues without a completed payment. A family member sees the dues of the
    whole group, since the head pays for everyone.
    """
    base_fee = get_base_fee()
    members = {m.pk: m for m in _billed_members(member)}
    dues = (
        MonthlyDue.objects.filter(member_id__in=members)
        .exclude(payments__status=Payment.STATUS_PAID)
        .order_by('year', 'month', 'member__name')
    )
    return [
        {
            'id': due.pk,
            'member_id': due.member_id,
            'member_name': members[due.member_id].name,
            'year': due.year,
            'month': due.month,
            'period': due.period_label,
            'due_date': due.due_date,
            'amount': compute_monthly_fee(members[due.member_id], base_fee),
        }
        for due in dues
    ]


def _status(paid):
    return Payment.STATUS_PAID if paid else Payment.STATUS_PENDING


def outstanding_charges(member):
    """
    Every charge of a member across dues, active practice enrollments and
    court reservations, each flagged as paid or pending.
    """
    base_fee = get_base_fee()
    charges = []

    dues = MonthlyDue.objects.filter(member=member).prefetch_related('payments')
    for due in dues:
        paid = any(p.status == Payment.STATUS_PAID for p in due.payments.all())
        charges.append({
            'id': f'due-{due.pk}',
            'target_id': due.pk,
            'concept': f'Cuota {due.period_label}',
            'amount': compute_monthly_fee(member, base_fee),
            'due_date': due.due_date,
            'status': _status(paid),
            'type': Payment.TYPE_DUE,
        })

    enrollments = (
        Enrollment.objects.filter(member=member, active=True)
        .select_related('practice')
        .prefetch_related('payments')
    )
    for enrollment in enrollments:
        paid = any(p.status == Payment.STATUS_PAID for p in enrollment.payments.all())
        charges.append({
            'id': f'enrollment-{enrollment.pk}',
            'target_id': enrollment.pk,
            'concept': f'Inscripción - {enrollment.practice.name}',
            'amount': enrollment.practice.price,
            'due_date': enrollment.enrolled_at.date(),
            'status': _status(paid),
            'type': Payment.TYPE_PRACTICE,
        })

    reservations = CourtReservation.objects.filter(member=member).select_related('court')
    for reservation in reservations:
        charges.append({
            'id': f'reservation-{reservation.pk}',
            'target_id': reservation.pk,
            'concept': f'Turno - Cancha {reservation.court.number}',
            'amount': reservation.court.price,
            'due_date': reservation.date,
            'status': _status(reservation.paid),
            'type': Payment.TYPE_RESERVATION,
        })

    return charges


def _resolve_target(member, payment_type, target_id, lock=False):
    """Return ``(target, amount, payment_links, already_paid)`` for a charge."""
    if payment_type == Payment.TYPE_DUE:
        qs = MonthlyDue.objects.filter(member__in=_billed_members(member))
    elif payment_type == Payment.TYPE_PRACTICE:
        qs = Enrollment.objects.filter(member=member, active=True).select_related('practice')
    elif payment_type == Payment.TYPE_RESERVATION:
        qs = CourtReservation.objects.filter(member=member).select_related('court')
    else:
        raise BillingError('Unknown payment type.', field='payment_type')

    if lock:
        qs = qs.select_for_update()
    target = qs.filter(pk=target_id).first()
    if target is None:
        raise BillingError('The charge to pay was not found.', field='target_id')

    if payment_type == Payment.TYPE_DUE:
        paid = target.payments.filter(status=Payment.STATUS_PAID).exists()
        return target, compute_monthly_fee(target.member), {'due': target}, paid
    if payment_type == Payment.TYPE_PRACTICE:
        paid = target.payments.filter(status=Payment.STATUS_PAID).exists()
        return target, target.practice.price, {'enrollment': target}, paid
    return target, target.court.price, {'reservation': target}, target.paid


def charge_card(card_last4, amount):
    """
    Simulated card gateway. Card 4242 is approved; 0002 and 0000 are
    declined; anything else is not a test card.
    """
    card_last4 = str(card_last4 or '').strip()
    if card_last4 in APPROVED_CARDS:
        return f'tok_mock_{secrets.token_hex(8)}'
    if card_last4 in REJECTED_CARDS:
        raise PaymentRejected(field='card_last4')
    raise InvalidCard(field='card_last4')


def process_payment(member, payment_type, target_id, card_last4):
    """
    Pay a due, an enrollment or a court reservation by card.

    A declined card leaves a ``RECHAZADO`` payment behind for the record
    and raises ``PaymentRejected``.
    """
    target, amount, links, paid = _resolve_target(member, payment_type, target_id)
    if paid:
        raise AlreadyPaid(field='target_id')

    try:
        token = charge_card(card_last4, amount)
    except PaymentRejected:
        Payment.objects.create(
            member=member,
            amount=amount,
            status=Payment.STATUS_REJECTED,
            payment_type=payment_type,
            card_last4=str(card_last4)[-4:],
            **links,
        )
        logger.warning(f"Payment of {amount} by {member.dni} rejected by the gateway")
        raise

    with transaction.atomic():
        target, amount, links, paid = _resolve_target(member, payment_type, target_id, lock=True)
        if paid:
            raise AlreadyPaid(field='target_id')
        payment = Payment.objects.create(
            member=member,
            amount=amount,
            status=Payment.STATUS_PAID,
            payment_type=payment_type,
            card_last4=str(card_last4)[-4:],
            token=token,
            paid_at=timezone.now(),
            **links,
        )
        if payment_type == Payment.TYPE_RESERVATION:
            target.paid = True
            target.save(update_fields=['paid'])

        transaction.on_commit(lambda: queue_payment_receipt(payment.pk))

    logger.info(f"Payment {payment.pk} of {amount} by {member.dni} for {payment_type} {target_id}")
    return payment


def set_base_fee(amount):
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise BillingError('The base fee must be a number.', field='base_fee') from None
    if not value.is_finite() or value < 0:
        raise BillingError('The base fee cannot be negative.', field='base_fee')

    billing = BillingSettings.load()
    billing.base_fee = round_half_up(value)
    billing.save(update_fields=['base_fee', 'updated_at'])
    logger.info(f"Base monthly fee set to {billing.base_fee}")
    return billing
