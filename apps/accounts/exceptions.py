"""Exceptions raised by member and family-plan services."""


class ClubError(Exception):
    """
    Base exception for every club service.

    Every error carries a machine-readable ``code`` and, where one applies,
    the offending input ``field``. When validation finds several problems in
    one pass, the first one is raised and the rest are available on
    ``errors`` (which always includes the raised error itself).
    """
    code = 'club_error'
    default_message = 'Invalid operation.'

    def __init__(self, message=None, field=None):
        self.message = message or self.default_message
        self.field = field
        self.errors = [self]
        super().__init__(self.message)

    def as_dict(self):
        return {'error': self.message, 'code': self.code, 'field': self.field}


class MembershipError(ClubError):
    """Base exception for member operations."""
    code = 'membership_error'
    default_message = 'Invalid membership operation.'


class DuplicateIdentity(MembershipError):
    """The dni already belongs to a member or repeats within the request."""
    code = 'duplicate_identity'
    default_message = 'The DNI is already registered.'


class DuplicateEmail(MembershipError):
    """The email already belongs to a member or repeats within the request."""
    code = 'duplicate_email'
    default_message = 'The email is already registered.'


class InsufficientGroupSize(MembershipError):
    """A family plan would end up with fewer than three members."""
    code = 'insufficient_group_size'
    default_message = 'A family plan requires at least 3 members.'


class AlreadyInFamilyPlan(MembershipError):
    """A referenced member already belongs to another family plan."""
    code = 'already_in_family_plan'
    default_message = 'The member already belongs to another family plan.'


class MemberNotFound(MembershipError):
    code = 'member_not_found'
    default_message = 'Member not found.'


class InvalidAge(MembershipError):
    """The member is too young for the requested status."""
    code = 'invalid_age'
    default_message = 'The member must be at least 12 years old.'


class NotInFamilyPlan(MembershipError):
    code = 'not_in_family_plan'
    default_message = 'The member does not belong to a family plan.'


class InvalidMemberData(MembershipError):
    """Malformed registration or update input."""
    code = 'invalid_member_data'
    default_message = 'Invalid member data.'


def raise_first(errors):
    """Raise the first collected error with the full list attached."""
    if errors:
        first = errors[0]
        first.errors = list(errors)
        raise first
