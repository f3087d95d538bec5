"""
Shared validation rules for club data.

Pure functions used by both the API serializers and the service layer, so
the two never drift apart. Each ``validate_*`` function returns an error
message string, or ``None`` when the value is valid.
"""
import re
from datetime import date, time

from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.core.validators import RegexValidator, validate_email

MINIMUM_INDEPENDENT_AGE = 12

PRACTICE_NAME_RE = re.compile(r'^[a-zA-Z0-9áéíóúÁÉÍÓÚñÑ\s]+$')
TIME_RE = re.compile(r'^([01]?[0-9]|2[0-3]):[0-5][0-9]$')
PASSWORD_SPECIAL_CHARACTERS = '@$%*?&._-!'

dni_validator = RegexValidator(
    regex=r'^\d{7,8}\Z',
    message='The DNI must have 7 or 8 digits.',
)
phone_validator = RegexValidator(
    regex=r'^\d+\Z',
    message='The phone number must contain only digits.',
)
person_name_validator = RegexValidator(
    regex=r'^[a-zA-ZáéíóúÁÉÍÓÚüÜñÑ\s]+\Z',
    message='The name must contain only letters and spaces.',
)


class CharacterClassPasswordValidator:
    """
    Require upper and lower case letters, a digit and one of
    ``PASSWORD_SPECIAL_CHARACTERS``.

    Listed in ``AUTH_PASSWORD_VALIDATORS`` next to Django's own validators.
    """

    message = 'The password must contain upper and lower case letters, a number and a special character.'

    def validate(self, password, user=None):
        if not (
            any(c.islower() for c in password)
            and any(c.isupper() for c in password)
            and any(c.isdigit() for c in password)
            and any(c in PASSWORD_SPECIAL_CHARACTERS for c in password)
        ):
            raise ValidationError(self.message, code='password_missing_character_class')

    def get_help_text(self):
        return self.message


def _first_error(validator, value):
    try:
        validator(value)
    except ValidationError as e:
        return e.messages[0]
    return None


def calculate_age(birth_date, as_of=None):
    """
    Whole years between ``birth_date`` and ``as_of`` (today by default).

    One year is subtracted while the birthday has not yet been reached in
    the ``as_of`` year.
    """
    as_of = as_of or date.today()
    age = as_of.year - birth_date.year
    if (as_of.month, as_of.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def is_minor(birth_date, as_of=None):
    """True when the person is under the minimum independent age."""
    return calculate_age(birth_date, as_of) < MINIMUM_INDEPENDENT_AGE


def validate_dni(value):
    if not value:
        return dni_validator.message
    return _first_error(dni_validator, str(value))


def validate_phone(value):
    if not value:
        return phone_validator.message
    return _first_error(phone_validator, str(value))


def validate_person_name(value):
    if not isinstance(value, str) or not value.strip():
        return person_name_validator.message
    return _first_error(person_name_validator, value.strip())


def validate_email_format(value):
    if not isinstance(value, str) or not value:
        return 'The email address is not valid.'
    if _first_error(validate_email, value):
        return 'The email address is not valid.'
    return None


def validate_birth_date(value, as_of=None):
    as_of = as_of or date.today()
    if value is None:
        return 'The birth date is required.'
    if value > as_of:
        return 'The birth date cannot be in the future.'
    return None


def validate_password_strength(value, user=None):
    """Run ``AUTH_PASSWORD_VALIDATORS``; the first failure is returned."""
    if not isinstance(value, str) or not value:
        return 'The password is required.'
    return _first_error(lambda password: validate_password(password, user), value)


def validate_time_format(value):
    if isinstance(value, time):
        return None
    if not isinstance(value, str) or not TIME_RE.match(value):
        return 'Times must use the HH:MM format.'
    return None


def time_to_minutes(value):
    """Convert ``HH:MM`` (or a ``datetime.time``) to minutes since midnight."""
    if hasattr(value, 'hour'):
        return value.hour * 60 + value.minute
    hours, minutes = value.split(':')
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes):
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def parse_time(value):
    """``HH:MM`` string or ``datetime.time`` to ``datetime.time``."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    minutes = time_to_minutes(value)
    return time(minutes // 60, minutes % 60)


def ranges_overlap(start_a, end_a, start_b, end_b):
    """Half-open interval overlap: ``[a_start, a_end)`` vs ``[b_start, b_end)``."""
    return start_a < end_b and start_b < end_a


def positive_int(value):
    """``value`` as an int when it is a whole number above zero, else ``None``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
        return number if number > 0 else None
    return None
