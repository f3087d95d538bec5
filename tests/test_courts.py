"""Tests for courts and one-hour slot reservations."""
from datetime import date, time, timedelta

import pytest

from apps.accounts.services import register_coach
from apps.courts.exceptions import CourtError, SlotUnavailable
from apps.courts.models import CourtReservation
from apps.courts.services import (
    available_slots,
    cancel_reservation,
    create_court,
    reserve_court,
    slot_starts,
    update_court,
)

from .helpers import person

TOMORROW = date.today() + timedelta(days=1)


@pytest.fixture
def court(db):
    return create_court({
        'number': 3, 'court_type': 'basquet', 'location': 'Gimnasio cubierto',
        'price': 6000, 'opens_at': '08:00', 'closes_at': '11:00',
    })


@pytest.mark.django_db
class TestCourtManagement:

    def test_create_normalizes_type_and_hours(self, court):
        assert court.court_type == 'BASQUET'
        assert court.opens_at == time(8, 0)
        assert court.closes_at == time(11, 0)

    def test_opening_must_precede_closing(self):
        with pytest.raises(CourtError) as excinfo:
            create_court({
                'number': 4, 'court_type': 'FUTBOL', 'price': 6000,
                'opens_at': '22:00', 'closes_at': '08:00',
            })
        assert excinfo.value.field == 'opens_at'

    def test_number_is_unique(self, court):
        with pytest.raises(CourtError) as excinfo:
            create_court({
                'number': 3, 'court_type': 'FUTBOL', 'price': 6000,
                'opens_at': '08:00', 'closes_at': '20:00',
            })
        assert excinfo.value.field == 'number'

    def test_collects_every_invalid_field(self):
        with pytest.raises(CourtError) as excinfo:
            create_court({'number': 0, 'court_type': 'TENIS', 'price': -5,
                          'opens_at': '8', 'closes_at': '20:00'})

        fields = {error.field for error in excinfo.value.errors}
        assert {'number', 'court_type', 'price', 'opens_at'} <= fields

    def test_partial_update(self, court):
        court = update_court(court, {'closes_at': '13:00', 'price': '7000'})

        assert court.closes_at == time(13, 0)
        assert court.price == 7000

    def test_update_cannot_close_before_opening(self, court):
        with pytest.raises(CourtError):
            update_court(court, {'closes_at': '07:00'})


@pytest.mark.django_db
class TestSlots:

    def test_one_hour_slots_between_opening_and_closing(self, court):
        assert slot_starts(court) == [480, 540, 600]

    def test_availability(self, court, socio):
        reserve_court(socio, court, TOMORROW, '09:00')

        slots = available_slots(court, TOMORROW)

        assert [(s['start'], s['end'], s['available']) for s in slots] == [
            ('08:00', '09:00', True),
            ('09:00', '10:00', False),
            ('10:00', '11:00', True),
        ]

    def test_past_dates(self, court):
        with pytest.raises(CourtError):
            available_slots(court, date.today() - timedelta(days=1))


@pytest.mark.django_db
class TestReservations:

    def test_reserve(self, court, socio):
        reservation = reserve_court(socio, court, TOMORROW, '10:00')

        assert reservation.start_time == time(10, 0)
        assert reservation.end_time == time(11, 0)
        assert not reservation.paid

    def test_slot_taken(self, court, socio, make_member):
        other = make_member('30222333', 'Pedro Gomez', 33)
        reserve_court(socio, court, TOMORROW, '10:00')

        with pytest.raises(SlotUnavailable):
            reserve_court(other, court, TOMORROW, '10:00')

    def test_time_outside_the_slot_grid(self, court, socio):
        for start in ('08:30', '11:00', '07:00'):
            with pytest.raises(CourtError):
                reserve_court(socio, court, TOMORROW, start)

    def test_only_socios_reserve(self, court):
        coach = register_coach(person('25111222', 'Carlos Ruiz', 35))
        with pytest.raises(CourtError):
            reserve_court(coach, court, TOMORROW, '08:00')

    def test_past_date(self, court, socio):
        with pytest.raises(CourtError):
            reserve_court(socio, court, TOMORROW, '08:00', today=TOMORROW + timedelta(days=1))

    def test_cancel(self, court, socio):
        reservation = reserve_court(socio, court, TOMORROW, '08:00')

        cancel_reservation(reservation)

        assert not CourtReservation.objects.exists()

    def test_paid_reservations_stay(self, court, socio):
        reservation = reserve_court(socio, court, TOMORROW, '08:00')
        reservation.paid = True
        reservation.save()

        with pytest.raises(CourtError):
            cancel_reservation(reservation)
