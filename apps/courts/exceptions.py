"""Exceptions raised by the courts services."""
from apps.accounts.exceptions import ClubError


class CourtError(ClubError):
    code = 'court_error'
    default_message = 'Invalid court operation.'


class SlotUnavailable(CourtError):
    """The requested slot is already reserved."""
    code = 'slot_unavailable'
    default_message = 'This time slot is already reserved.'
