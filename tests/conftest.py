import pytest
from rest_framework.test import APIClient

from apps.accounts.services import create_family_group, register_admin, register_member
from apps.billing.models import BillingSettings

from .helpers import person


@pytest.fixture(autouse=True)
def base_fee(db):
    """Every test starts from a 5000 base fee."""
    billing = BillingSettings.load()
    billing.base_fee = 5000
    billing.save()
    return billing.base_fee


@pytest.fixture
def make_member(db):
    def factory(dni, name='Socio Prueba', age=30, **extra):
        return register_member(person(dni, name, age, **extra))
    return factory


@pytest.fixture
def socio(make_member):
    return make_member('30111222', 'Ana Garcia', 30)


@pytest.fixture
def club_admin(db):
    return register_admin(person('20999888', 'Admin Club', 40))


@pytest.fixture
def family(db):
    """Head of 30, adult of 25 and a dependent of 8."""
    return create_family_group(
        person('30000001', 'Alberto Perez', 30),
        [
            person('30000002', 'Beatriz Perez', 25),
            person('50000003', 'Carla Perez', 8),
        ],
    )


@pytest.fixture
def adult_family(db):
    """Three adults: head of 40 plus members of 35 and 20."""
    return create_family_group(
        person('31000001', 'Andres Lopez', 40),
        [
            person('31000002', 'Bruno Lopez', 35),
            person('31000003', 'Camila Lopez', 20),
        ],
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    """An API client authenticated as the given member."""
    def factory(member):
        api_client.force_authenticate(user=member.user)
        return api_client
    return factory


@pytest.fixture
def admin_client(client_for, club_admin):
    return client_for(club_admin)
