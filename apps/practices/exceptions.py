"""Exceptions raised by the practices services."""
from apps.accounts.exceptions import ClubError


class PracticeError(ClubError):
    code = 'practice_error'
    default_message = 'Invalid practice operation.'


class PracticeFull(PracticeError):
    code = 'practice_full'
    default_message = 'There are no spots left in this practice.'


class AlreadyEnrolled(PracticeError):
    code = 'already_enrolled'
    default_message = 'The member is already enrolled in this practice.'


class ScheduleOverlap(PracticeError):
    """Two schedules of the same practice overlap on the same day."""
    code = 'schedule_overlap'
    default_message = 'Schedules on the same day overlap.'
