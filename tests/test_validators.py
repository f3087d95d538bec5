"""Tests for the shared validation rules and the age helper."""
from datetime import date, time

import pytest
from django.contrib.auth.password_validation import get_default_password_validators
from django.core.exceptions import ValidationError

from apps.accounts import validators


class TestCalculateAge:

    def test_birthday_not_reached_yet(self):
        assert validators.calculate_age(date(2000, 6, 15), as_of=date(2024, 6, 14)) == 23

    def test_birthday_reached(self):
        assert validators.calculate_age(date(2000, 6, 15), as_of=date(2024, 6, 15)) == 24

    def test_earlier_month_counts_full_year(self):
        assert validators.calculate_age(date(2000, 3, 1), as_of=date(2024, 11, 30)) == 24

    def test_leap_day_birthday(self):
        """Someone born on Feb 29 turns a year older on Mar 1 in common years."""
        assert validators.calculate_age(date(2004, 2, 29), as_of=date(2016, 2, 28)) == 11
        assert validators.calculate_age(date(2004, 2, 29), as_of=date(2016, 3, 1)) == 12

    def test_defaults_to_today(self):
        today = date.today()
        assert validators.calculate_age(date(today.year - 40, 1, 1)) == 40


class TestIsMinor:

    def test_day_before_twelfth_birthday(self):
        assert validators.is_minor(date(2012, 5, 10), as_of=date(2024, 5, 9))

    def test_on_twelfth_birthday(self):
        assert not validators.is_minor(date(2012, 5, 10), as_of=date(2024, 5, 10))


class TestFieldValidators:

    def test_dni(self):
        assert validators.validate_dni('1234567') is None
        assert validators.validate_dni('12345678') is None
        assert validators.validate_dni('123456')
        assert validators.validate_dni('123456789')
        assert validators.validate_dni('1234567a')
        assert validators.validate_dni(None)

    def test_person_name_accepts_accents(self):
        assert validators.validate_person_name('José Núñez') is None
        assert validators.validate_person_name('J0se')

    def test_phone(self):
        assert validators.validate_phone('1155550000') is None
        assert validators.validate_phone('11-5555')

    def test_email(self):
        assert validators.validate_email_format('ana@example.com') is None
        assert validators.validate_email_format('ana@example')
        assert validators.validate_email_format('')

    def test_birth_date_in_future(self):
        assert validators.validate_birth_date(date(2030, 1, 1), as_of=date(2024, 1, 1))
        assert validators.validate_birth_date(date(2020, 1, 1), as_of=date(2024, 1, 1)) is None
        assert validators.validate_birth_date(None)

    def test_password_strength(self):
        assert validators.validate_password_strength('Secreta1!') is None
        assert validators.validate_password_strength('secreta1!')
        assert validators.validate_password_strength('Secretaa!')
        assert validators.validate_password_strength('Sh1!')
        assert validators.validate_password_strength(None)

    def test_character_rule_is_a_configured_password_validator(self):
        names = [type(v).__name__ for v in get_default_password_validators()]

        assert 'CharacterClassPasswordValidator' in names

    def test_character_rule_rejects_missing_special_character(self):
        with pytest.raises(ValidationError):
            validators.CharacterClassPasswordValidator().validate('Secreta12')

    def test_non_text_values_are_invalid(self):
        assert validators.validate_person_name(42)
        assert validators.validate_email_format(12345)
        assert validators.validate_dni('1234567\n')


class TestTimeHelpers:

    def test_time_format(self):
        assert validators.validate_time_format('09:30') is None
        assert validators.validate_time_format('9:30') is None
        assert validators.validate_time_format(time(10, 0)) is None
        assert validators.validate_time_format('24:00')
        assert validators.validate_time_format('10:60')
        assert validators.validate_time_format(930)

    def test_minutes_round_trip_values(self):
        assert validators.time_to_minutes('08:15') == 495
        assert validators.time_to_minutes(time(8, 15)) == 495
        assert validators.minutes_to_time(495) == '08:15'

    def test_parse_time(self):
        assert validators.parse_time('7:05') == time(7, 5)
        assert validators.parse_time(time(7, 5, 30)) == time(7, 5)

    def test_ranges_are_half_open(self):
        assert not validators.ranges_overlap(600, 660, 660, 720)
        assert validators.ranges_overlap(600, 700, 650, 720)
        assert validators.ranges_overlap(600, 720, 630, 660)


class TestPositiveInt:

    def test_accepts_whole_numbers_above_zero(self):
        assert validators.positive_int(5) == 5
        assert validators.positive_int(' 7 ') == 7

    def test_rejects_everything_else(self):
        for value in (0, -1, '0', 'x', 2.5, True, None, ''):
            assert validators.positive_int(value) is None
