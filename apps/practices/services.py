"""
Practice management: schedules, enrollment with capacity limits and
attendance tracking.
"""
import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from django.db import IntegrityError, transaction

from apps.accounts.exceptions import raise_first
from apps.accounts.models import Member
from apps.accounts.validators import (
    PRACTICE_NAME_RE,
    parse_time,
    positive_int,
    ranges_overlap,
    time_to_minutes,
    validate_time_format,
)

from .exceptions import AlreadyEnrolled, PracticeError, PracticeFull, ScheduleOverlap
from .models import Attendance, Enrollment, Practice, PracticeSchedule

logger = logging.getLogger(__name__)


def validate_schedules(schedules, required=True):
    """
    Check a list of ``{'day', 'start_time', 'end_time'}`` entries.

    Times may be ``HH:MM`` strings or ``datetime.time`` values. Entries on
    the same day must not overlap; ranges are half-open, so ``10:00-11:00``
    and ``11:00-12:00`` can coexist. Returns the entries normalized to
    ``datetime.time``.
    """
    errors = []
    if required and not schedules:
        raise PracticeError('At least one schedule is required.', field='schedules')

    normalized = []
    for index, entry in enumerate(schedules or []):
        prefix = f'schedules[{index}].'
        day = str(entry.get('day') or '').upper()
        start, end = entry.get('start_time'), entry.get('end_time')
        if not day or not start or not end:
            errors.append(PracticeError(
                'Every schedule needs a day, a start time and an end time.', field=f'{prefix}day'
            ))
            continue
        if day not in PracticeSchedule.DAYS:
            errors.append(PracticeError(f'Unknown day {day}.', field=f'{prefix}day'))
            continue
        bad_format = False
        for key, value in (('start_time', start), ('end_time', end)):
            message = validate_time_format(value)
            if message:
                errors.append(PracticeError(message, field=f'{prefix}{key}'))
                bad_format = True
        if bad_format:
            continue
        if time_to_minutes(start) >= time_to_minutes(end):
            errors.append(PracticeError(
                'The start time must be earlier than the end time.', field=f'{prefix}start_time'
            ))
            continue
        normalized.append({
            'day': day,
            'start_time': parse_time(start),
            'end_time': parse_time(end),
        })

    for i, first in enumerate(normalized):
        for second in normalized[i + 1:]:
            if first['day'] != second['day']:
                continue
            if ranges_overlap(
                time_to_minutes(first['start_time']), time_to_minutes(first['end_time']),
                time_to_minutes(second['start_time']), time_to_minutes(second['end_time']),
            ):
                errors.append(ScheduleOverlap(
                    f"Schedules on {first['day']} overlap: "
                    f"{first['start_time']:%H:%M}-{first['end_time']:%H:%M} and "
                    f"{second['start_time']:%H:%M}-{second['end_time']:%H:%M}.",
                    field='schedules',
                ))

    raise_first(errors)
    return normalized


def _validate_practice_fields(data, practice=None):
    errors = []
    cleaned = {}

    if 'name' in data or practice is None:
        name = (data.get('name') or '').strip()
        if not name or not PRACTICE_NAME_RE.match(name):
            errors.append(PracticeError(
                'The name must contain only letters, numbers and spaces.', field='name'
            ))
        else:
            clash = Practice.objects.filter(name__iexact=name)
            if practice is not None:
                clash = clash.exclude(pk=practice.pk)
            if clash.exists():
                errors.append(PracticeError(f'A practice named {name} already exists.', field='name'))
            cleaned['name'] = name

    if 'description' in data:
        description = (data.get('description') or '').strip()
        if len(description) > 150:
            errors.append(PracticeError(
                'The description cannot be longer than 150 characters.', field='description'
            ))
        cleaned['description'] = description

    for key, label in (('capacity', 'capacity'), ('price', 'price')):
        if key in data or practice is None:
            value = positive_int(data.get(key))
            if value is None:
                errors.append(PracticeError(f'The {label} must be a positive whole number.', field=key))
            else:
                cleaned[key] = value

    raise_first(errors)
    return cleaned


def _check_coaches(coaches):
    coaches = list(coaches)
    for coach in coaches:
        if coach.role != Member.ROLE_COACH:
            raise PracticeError(f'{coach.name} is not a coach.', field='coaches')
    return coaches


def _replace_schedules(practice, schedules):
    practice.schedules.all().delete()
    PracticeSchedule.objects.bulk_create([
        PracticeSchedule(practice=practice, **entry) for entry in schedules
    ])


@transaction.atomic
def create_practice(data, schedules, coaches=()):
    cleaned = _validate_practice_fields(data)
    schedules = validate_schedules(schedules)
    coaches = _check_coaches(coaches)

    try:
        with transaction.atomic():
            practice = Practice.objects.create(**cleaned)
    except IntegrityError:
        raise PracticeError(
            f"A practice named {cleaned['name']} already exists.", field='name'
        ) from None
    _replace_schedules(practice, schedules)
    if coaches:
        practice.coaches.set(coaches)

    logger.info(f"Created practice {practice.name} with {len(schedules)} schedules")
    return practice


@transaction.atomic
def update_practice(practice, data, schedules=None, coaches=None):
    """
    Partially update a practice. ``schedules``, when given, replace the
    current ones.
    """
    practice = Practice.objects.select_for_update().get(pk=practice.pk)
    cleaned = _validate_practice_fields(data, practice=practice)
    if schedules is not None:
        schedules = validate_schedules(schedules)
    if coaches is not None:
        coaches = _check_coaches(coaches)
    if not cleaned and schedules is None and coaches is None:
        raise PracticeError('There are no fields to update.')

    for field, value in cleaned.items():
        setattr(practice, field, value)
    try:
        with transaction.atomic():
            practice.save()
    except IntegrityError:
        raise PracticeError('A practice with that name already exists.', field='name') from None
    if schedules is not None:
        _replace_schedules(practice, schedules)
    if coaches is not None:
        practice.coaches.set(coaches)

    logger.info(f"Updated practice {practice.name}")
    return practice


@transaction.atomic
def enroll(member, practice):
    """
    Enroll a socio, reactivating a previous enrollment when there is one.
    """
    if not member.is_socio:
        raise PracticeError('Only socios can enroll in practices.', field='member')

    # Lock the practice so concurrent enrollments see a consistent count.
    practice = Practice.objects.select_for_update().get(pk=practice.pk)
    existing = Enrollment.objects.filter(member=member, practice=practice).first()
    if existing is not None and existing.active:
        raise AlreadyEnrolled(field='practice')

    if practice.active_enrollment_count() >= practice.capacity:
        raise PracticeFull(field='practice')

    if existing is not None:
        existing.active = True
        existing.save(update_fields=['active'])
        enrollment = existing
    else:
        enrollment = Enrollment.objects.create(member=member, practice=practice)

    logger.info(f"Member {member.dni} enrolled in {practice.name}")
    return enrollment


@transaction.atomic
def unenroll(member, practice):
    enrollment = (
        Enrollment.objects.select_for_update()
        .filter(member=member, practice=practice, active=True)
        .first()
    )
    if enrollment is None:
        raise PracticeError('The member is not enrolled in this practice.', field='practice')
    enrollment.active = False
    enrollment.save(update_fields=['active'])
    logger.info(f"Member {member.dni} left {practice.name}")
    return enrollment


def attendance_for_date(practice, on_date):
    """Active enrollments with the attendance recorded for ``on_date``, if any."""
    enrollments = (
        Enrollment.objects.filter(practice=practice, active=True)
        .select_related('member')
        .order_by('member__name')
    )
    recorded = {
        a.enrollment_id: a.present
        for a in Attendance.objects.filter(enrollment__practice=practice, date=on_date)
    }
    return [
        {
            'enrollment_id': e.pk,
            'member_id': e.member_id,
            'name': e.member.name,
            'dni': e.member.dni,
            'present': recorded.get(e.pk),
        }
        for e in enrollments
    ]


@transaction.atomic
def record_attendance(practice, on_date, entries, recorded_by=None, today=None):
    """
    Upsert attendance for one class.

    ``entries`` is a list of ``{'enrollment_id', 'present'}``; recording
    the same class twice overwrites the previous values.
    """
    today = today or date.today()
    if on_date > today:
        raise PracticeError('Attendance cannot be recorded for a future date.', field='date')

    enrollments = {
        e.pk: e for e in Enrollment.objects.filter(practice=practice)
    }
    records = []
    for index, entry in enumerate(entries):
        enrollment = enrollments.get(entry.get('enrollment_id'))
        if enrollment is None:
            raise PracticeError(
                'The enrollment does not belong to this practice.',
                field=f'entries[{index}].enrollment_id',
            )
        record, _ = Attendance.objects.update_or_create(
            enrollment=enrollment,
            date=on_date,
            defaults={'present': bool(entry.get('present')), 'recorded_by': recorded_by},
        )
        records.append(record)

    logger.info(f"Recorded attendance for {practice.name} on {on_date}: {len(records)} entries")
    return records


def percentage(part, whole):
    if not whole:
        return 0
    value = Decimal(part) * 100 / Decimal(whole)
    return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def attendance_report(practice, start=None, end=None):
    """
    Per-member attendance counts for a practice between two dates, inclusive.
    """
    records = Attendance.objects.filter(enrollment__practice=practice).select_related(
        'enrollment__member'
    )
    if start:
        records = records.filter(date__gte=start)
    if end:
        records = records.filter(date__lte=end)

    rows = {}
    class_dates = set()
    for record in records:
        member = record.enrollment.member
        row = rows.setdefault(member.pk, {
            'member_id': member.pk,
            'name': member.name,
            'dni': member.dni,
            'present': 0,
            'absent': 0,
            'total': 0,
        })
        row['total'] += 1
        row['present' if record.present else 'absent'] += 1
        class_dates.add(record.date)

    members = sorted(rows.values(), key=lambda r: r['name'])
    for row in members:
        row['percentage'] = percentage(row['present'], row['total'])

    total_present = sum(r['present'] for r in members)
    total_records = sum(r['total'] for r in members)
    return {
        'practice_id': practice.pk,
        'practice': practice.name,
        'start': start,
        'end': end,
        'total_classes': len(class_dates),
        'total_present': total_present,
        'total_absent': total_records - total_present,
        'average_percentage': percentage(total_present, total_records),
        'members': members,
    }
