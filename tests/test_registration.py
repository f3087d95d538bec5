"""Tests for member, coach and administrator registration."""
import pytest
from django.contrib.auth.models import User
from django.db import IntegrityError

from apps.accounts.exceptions import (
    DuplicateEmail,
    DuplicateIdentity,
    InvalidAge,
    InvalidMemberData,
    MembershipError,
)
from apps.accounts.models import Member
from apps.accounts.services import (
    find_member,
    register_admin,
    register_coach,
    register_member,
    update_member,
)
from apps.accounts.services.registration import integrity_error_to_membership_error
from apps.practices.services import create_practice

from .helpers import PASSWORD, person


@pytest.mark.django_db
class TestRegisterMember:

    def test_registers_individual_socio_with_login(self):
        member = register_member(person('30111222', 'Ana Garcia', 30))

        assert member.role == Member.ROLE_SOCIO
        assert member.membership_type == Member.INDIVIDUAL
        assert member.family_group is None
        assert member.user.username == '30111222'
        assert member.user.check_password(PASSWORD)

    def test_email_is_normalized(self):
        member = register_member(person('30111222', 'Ana Garcia', 30, email=' Ana@Example.COM '))
        assert member.email == 'ana@example.com'

    def test_duplicate_dni_is_rejected_regardless_of_role(self):
        """A dni held by a coach cannot be reused for a socio."""
        register_coach(person('12345678', 'Carlos Entrenador', 35))

        with pytest.raises(DuplicateIdentity) as excinfo:
            register_member(person('12345678', 'Otro Socio', 28, email='otro@example.com'))

        assert excinfo.value.field == 'dni'
        assert Member.objects.filter(dni='12345678').count() == 1

    def test_duplicate_email_is_case_insensitive(self, socio):
        with pytest.raises(DuplicateEmail):
            register_member(person('30999000', 'Otra Persona', 30, email=socio.email.upper()))

    def test_under_twelve_cannot_hold_individual_plan(self):
        with pytest.raises(InvalidAge):
            register_member(person('50111222', 'Nino Chico', 10, email='nino@example.com',
                                   phone='111', password=PASSWORD))

        assert not Member.objects.filter(dni='50111222').exists()
        assert not Member.objects.filter(membership_type=Member.INDIVIDUAL, is_minor=True).exists()

    def test_reports_every_invalid_field(self):
        data = person('12', 'J0hn', 30, phone='abc')

        with pytest.raises(InvalidMemberData) as excinfo:
            register_member(data)

        fields = {error.field for error in excinfo.value.errors}
        assert excinfo.value.field == 'dni'
        assert {'dni', 'name', 'phone'} <= fields

    def test_password_is_required(self):
        data = person('30111222', 'Ana Garcia', 30)
        del data['password']

        with pytest.raises(InvalidMemberData) as excinfo:
            register_member(data)

        assert excinfo.value.field == 'password'

    def test_password_runs_the_configured_validators(self):
        with pytest.raises(InvalidMemberData) as excinfo:
            register_member(person('30111222', 'Ana Garcia', 30, password='Secretaa1'))

        assert excinfo.value.field == 'password'
        assert not Member.objects.filter(dni='30111222').exists()

    def test_numeric_dni_is_read_as_digits(self):
        member = register_member(person(30111222, 'Ana Garcia', 30, email='ana@example.com'))

        assert member.dni == '30111222'
        assert member.user.username == '30111222'

    def test_non_text_fields_are_rejected(self):
        data = person('30111222', 'Ana Garcia', 30, email=['ana@example.com'], password=12345678)

        with pytest.raises(InvalidMemberData) as excinfo:
            register_member(data)

        assert {error.field for error in excinfo.value.errors} == {'email', 'password'}
        assert not Member.objects.filter(dni='30111222').exists()

    def test_orphan_login_blocks_dni(self):
        User.objects.create_user(username='30111222', password='x')

        with pytest.raises(DuplicateIdentity):
            register_member(person('30111222', 'Ana Garcia', 30))

    def test_uniqueness_race_surfaces_as_duplicate_identity(self, socio, monkeypatch):
        """When the pre-check misses a duplicate, the constraint still wins."""
        monkeypatch.setattr(
            'apps.accounts.services.registration.check_identity_available',
            lambda *args, **kwargs: [],
        )

        with pytest.raises(DuplicateIdentity):
            register_member(person(socio.dni, 'Ana Clon', 30, email='clon@example.com'))

        assert Member.objects.filter(dni=socio.dni).count() == 1


@pytest.mark.django_db
class TestStaffRegistration:

    def test_register_coach_assigns_practices(self):
        practice = create_practice(
            {'name': 'Futbol Infantil', 'capacity': 20, 'price': 3000},
            [{'day': 'LUNES', 'start_time': '18:00', 'end_time': '19:00'}],
        )

        coach = register_coach(person('25111222', 'Carlos Ruiz', 35), practices=[practice])

        assert coach.role == Member.ROLE_COACH
        assert coach.membership_type is None
        assert list(practice.coaches.all()) == [coach]

    def test_register_admin(self):
        admin = register_admin(person('20111222', 'Laura Admin', 45))

        assert admin.role == Member.ROLE_ADMIN
        assert admin.user.is_staff
        assert not admin.user.is_superuser

    def test_register_super_admin(self):
        admin = register_admin(person('20111223', 'Jefe Admin', 50), super_admin=True)

        assert admin.role == Member.ROLE_SUPER_ADMIN
        assert admin.user.is_superuser


@pytest.mark.django_db
class TestUpdateMember:

    def test_updates_contact_fields_and_login_email(self, socio):
        member = update_member(socio, {'email': 'nueva@example.com', 'phone': '1144443333'})

        member.user.refresh_from_db()
        assert member.email == 'nueva@example.com'
        assert member.phone == '1144443333'
        assert member.user.email == 'nueva@example.com'

    def test_email_taken_by_another_member(self, socio, make_member):
        other = make_member('30222333', 'Pedro Gomez', 33)

        with pytest.raises(DuplicateEmail):
            update_member(other, {'email': socio.email})

    def test_dependents_have_no_email_of_their_own(self, family):
        dependent = family.members[1]

        with pytest.raises(InvalidMemberData) as excinfo:
            update_member(dependent, {'email': 'chica@example.com'})

        assert excinfo.value.field == 'email'


@pytest.mark.django_db
class TestFindMember:

    def test_by_dni_and_email(self, socio):
        assert find_member(dni=socio.dni) == socio
        assert find_member(email=socio.email.upper()) == socio
        assert find_member(dni='99999999') is None
        assert find_member() is None


class TestIntegrityErrorMapping:

    def test_email_constraint(self):
        error = integrity_error_to_membership_error(
            IntegrityError('UNIQUE constraint failed: accounts_member.email'), 'members[0].'
        )
        assert isinstance(error, DuplicateEmail)
        assert error.field == 'members[0].email'

    def test_dni_and_username_constraints(self):
        for text in ('UNIQUE constraint failed: accounts_member.dni',
                     'UNIQUE constraint failed: auth_user.username'):
            assert isinstance(integrity_error_to_membership_error(IntegrityError(text)), DuplicateIdentity)

    def test_unknown_constraint_hides_database_text(self):
        error = integrity_error_to_membership_error(IntegrityError('CHECK constraint failed: xyz'))

        assert type(error) is MembershipError
        assert 'xyz' not in error.message
