"""
Court management and one-hour slot reservations.
"""
import logging
from datetime import date

from django.db import IntegrityError, transaction

from apps.accounts.exceptions import raise_first
from apps.accounts.validators import (
    minutes_to_time,
    parse_time,
    positive_int,
    time_to_minutes,
    validate_time_format,
)

from .exceptions import CourtError, SlotUnavailable
from .models import Court, CourtReservation

logger = logging.getLogger(__name__)

COURT_TYPES = [code for code, _ in Court.TYPE_CHOICES]


def _validate_court_fields(data, court=None):
    errors = []
    cleaned = {}
    creating = court is None

    if 'number' in data or creating:
        number = positive_int(data.get('number'))
        if number is None:
            errors.append(CourtError('The court number must be greater than 0.', field='number'))
        else:
            clash = Court.objects.filter(number=number)
            if court is not None:
                clash = clash.exclude(pk=court.pk)
            if clash.exists():
                errors.append(CourtError(
                    f'A court with number {number} already exists.', field='number'
                ))
            cleaned['number'] = number

    if 'court_type' in data or creating:
        court_type = str(data.get('court_type') or '').upper()
        if court_type not in COURT_TYPES:
            errors.append(CourtError('Invalid court type.', field='court_type'))
        cleaned['court_type'] = court_type

    if 'location' in data:
        location = (data.get('location') or '').strip()
        if len(location) > 100:
            errors.append(CourtError(
                'The location cannot be longer than 100 characters.', field='location'
            ))
        cleaned['location'] = location

    if 'price' in data or creating:
        price = positive_int(data.get('price'))
        if price is None:
            errors.append(CourtError('The price must be greater than 0.', field='price'))
        cleaned['price'] = price

    hours_ok = True
    for key in ('opens_at', 'closes_at'):
        if key in data or creating:
            message = validate_time_format(data.get(key))
            if message:
                errors.append(CourtError(message, field=key))
                hours_ok = False
            else:
                cleaned[key] = parse_time(data[key])
    if hours_ok:
        opens_at = cleaned.get('opens_at', court.opens_at if court else None)
        closes_at = cleaned.get('closes_at', court.closes_at if court else None)
        if opens_at and closes_at and opens_at >= closes_at:
            errors.append(CourtError(
                'The opening time must be earlier than the closing time.', field='opens_at'
            ))

    if 'practice' in data:
        cleaned['practice'] = data['practice']

    raise_first(errors)
    return cleaned


@transaction.atomic
def create_court(data):
    cleaned = _validate_court_fields(data)
    try:
        with transaction.atomic():
            court = Court.objects.create(**cleaned)
    except IntegrityError:
        raise CourtError(
            f"A court with number {cleaned['number']} already exists.", field='number'
        ) from None
    logger.info(f"Created court {court.number} ({court.court_type})")
    return court


@transaction.atomic
def update_court(court, data):
    court = Court.objects.select_for_update().get(pk=court.pk)
    cleaned = _validate_court_fields(data, court=court)
    for field, value in cleaned.items():
        setattr(court, field, value)
    try:
        with transaction.atomic():
            court.save()
    except IntegrityError:
        raise CourtError('A court with that number already exists.', field='number') from None
    logger.info(f"Updated court {court.number}")
    return court


def slot_starts(court):
    """Start minute of every one-hour slot between opening and closing."""
    start = time_to_minutes(court.opens_at)
    end = time_to_minutes(court.closes_at)
    return list(range(start, end, Court.SLOT_MINUTES))


def _check_not_past(on_date, today=None):
    today = today or date.today()
    if on_date < today:
        raise CourtError('The date cannot be in the past.', field='date')


def available_slots(court, on_date, today=None):
    """
    Every slot of ``court`` on ``on_date`` with an availability flag,
    ordered by start time.
    """
    _check_not_past(on_date, today)
    taken = {
        time_to_minutes(start)
        for start in CourtReservation.objects.filter(court=court, date=on_date)
        .values_list('start_time', flat=True)
    }
    return [
        {
            'start': minutes_to_time(minute),
            'end': minutes_to_time(minute + Court.SLOT_MINUTES),
            'available': minute not in taken,
        }
        for minute in slot_starts(court)
    ]


@transaction.atomic
def reserve_court(member, court, on_date, start_time, today=None):
    """
    Book one slot for a socio.

    The unique constraint on ``(court, date, start_time)`` settles races
    between two members asking for the same slot.
    """
    if not member.is_socio:
        raise CourtError('Only socios can reserve courts.', field='member')
    _check_not_past(on_date, today)

    message = validate_time_format(start_time)
    if message:
        raise CourtError(message, field='start_time')
    start_minute = time_to_minutes(start_time)
    if start_minute not in slot_starts(court):
        raise CourtError(
            'The requested time is not one of the court slots.', field='start_time'
        )

    start = parse_time(start_time)
    if CourtReservation.objects.filter(court=court, date=on_date, start_time=start).exists():
        raise SlotUnavailable(field='start_time')
    try:
        with transaction.atomic():
            reservation = CourtReservation.objects.create(
                court=court, member=member, date=on_date, start_time=start
            )
    except IntegrityError:
        raise SlotUnavailable(field='start_time') from None

    logger.info(f"Member {member.dni} reserved court {court.number} on {on_date} at {start:%H:%M}")
    return reservation


@transaction.atomic
def cancel_reservation(reservation, today=None):
    """Cancel an unpaid reservation that has not taken place yet."""
    if reservation.paid:
        raise CourtError('Paid reservations cannot be cancelled.', field='reservation')
    _check_not_past(reservation.date, today)
    court_number = reservation.court.number
    reservation.delete()
    logger.info(f"Cancelled reservation on court {court_number} for {reservation.date}")
