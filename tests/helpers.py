"""Builders for test input data."""
from datetime import date

from django.db.models import Count

from apps.accounts.models import Member

PASSWORD = 'Secreta1!'


def born(age):
    """A birth date giving exactly ``age`` years today."""
    today = date.today()
    return date(today.year - age, 1, 1)


def person(dni, name, age, email=None, **extra):
    """Registration data; people under 12 get no email, phone or password."""
    data = {'dni': dni, 'name': name, 'birth_date': born(age)}
    if age >= 12:
        data.update(
            email=email or f'{dni}@example.com',
            phone='1155550000',
            password=PASSWORD,
        )
    elif email:
        data['email'] = email
    data.update(extra)
    return data


def group_sizes():
    """Member count of every family group in the store."""
    rows = (
        Member.objects.exclude(family_group__isnull=True)
        .values('family_group')
        .annotate(size=Count('pk'))
    )
    return {row['family_group']: row['size'] for row in rows}


def assert_groups_consistent():
    for group_id, size in group_sizes().items():
        assert size >= 3, f'{group_id} has {size} members'
