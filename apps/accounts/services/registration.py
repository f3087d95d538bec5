"""
Member, coach and administrator registration.

Holds the field validation and record-creation helpers that the family
plan engine reuses, so every path that creates a person applies the same
uniqueness and age rules.
"""
import logging
from datetime import date

from django.contrib.auth.models import User
from django.db import IntegrityError, transaction

from ..exceptions import (
    DuplicateEmail,
    DuplicateIdentity,
    InvalidAge,
    InvalidMemberData,
    MembershipError,
    raise_first,
)
from ..models import Member
from .. import validators

logger = logging.getLogger(__name__)


def coerce_date(value):
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def normalize_email(value):
    if not value or not isinstance(value, str):
        return None
    return value.strip().lower()


TEXT_FIELDS = ('dni', 'name', 'email', 'phone', 'address', 'password')
NUMERIC_TEXT_FIELDS = ('dni', 'phone')


def normalize_person_data(data):
    """
    Return a copy of ``data`` with trimmed strings and a real birth date.

    Text fields that arrive as something other than a string are cleared and
    listed under ``invalid_fields``; a dni or phone given as a number is
    accepted as its digits.
    """
    cleaned = dict(data)
    invalid = []
    for name in TEXT_FIELDS:
        value = cleaned.get(name)
        if value is None or isinstance(value, str):
            continue
        if name in NUMERIC_TEXT_FIELDS and isinstance(value, int) and not isinstance(value, bool):
            cleaned[name] = str(value)
        else:
            invalid.append(name)
            cleaned[name] = None
    cleaned['dni'] = (cleaned.get('dni') or '').strip()
    cleaned['name'] = (cleaned.get('name') or '').strip()
    cleaned['email'] = normalize_email(cleaned.get('email'))
    cleaned['phone'] = (cleaned.get('phone') or '').strip()
    cleaned['address'] = (cleaned.get('address') or '').strip()
    cleaned['birth_date'] = coerce_date(cleaned.get('birth_date'))
    cleaned['invalid_fields'] = invalid
    return cleaned


def validate_person_data(data, field_prefix='', require_password=False, as_of=None):
    """
    Field-level checks for one person.

    Dependents under 12 need neither email, phone nor password. Returns a
    list of errors instead of raising so callers can validate whole batches.
    """
    errors = []
    invalid = data.get('invalid_fields') or ()

    def add(message, field):
        errors.append(InvalidMemberData(message, field=f'{field_prefix}{field}'))

    for field in invalid:
        add('This field must be text.', field)

    for check, field in (
        (validators.validate_dni, 'dni'),
        (validators.validate_person_name, 'name'),
    ):
        if field in invalid:
            continue
        message = check(data.get(field))
        if message:
            add(message, field)

    message = validators.validate_birth_date(data.get('birth_date'), as_of)
    if message:
        add(message, 'birth_date')
        return errors

    if validators.is_minor(data['birth_date'], as_of):
        return errors

    for check, field in (
        (validators.validate_email_format, 'email'),
        (validators.validate_phone, 'phone'),
    ):
        if field in invalid:
            continue
        message = check(data.get(field))
        if message:
            add(message, field)
    password = data.get('password')
    if 'password' not in invalid and (password or require_password):
        message = validators.validate_password_strength(password)
        if message:
            add(message, 'password')
    return errors


def check_identity_available(dni=None, email=None, field_prefix='', exclude_pk=None):
    """Errors for a dni or email already held by another member."""
    errors = []
    others = Member.objects.all()
    if exclude_pk is not None:
        others = others.exclude(pk=exclude_pk)
    if dni and (others.filter(dni=dni).exists() or _orphan_login_exists(dni, exclude_pk)):
        errors.append(DuplicateIdentity(
            f'The DNI {dni} is already registered.', field=f'{field_prefix}dni'
        ))
    if email and others.filter(email__iexact=email).exists():
        errors.append(DuplicateEmail(
            f'The email {email} is already registered.', field=f'{field_prefix}email'
        ))
    return errors


def _orphan_login_exists(dni, exclude_pk=None):
    """A login account named after the dni but not attached to that member."""
    qs = User.objects.filter(username=dni)
    if exclude_pk is not None:
        qs = qs.exclude(member__pk=exclude_pk)
    return qs.exists()


def require_minimum_age(birth_date, field='birth_date', as_of=None, message=None):
    if validators.is_minor(birth_date, as_of):
        raise InvalidAge(message, field=field)


def integrity_error_to_membership_error(exc, field_prefix=''):
    """
    Translate a unique-constraint violation into a typed error.

    The database message is inspected only to pick the error kind; it is
    never passed on to the caller.
    """
    text = str(exc).lower()
    if 'email' in text:
        return DuplicateEmail(field=f'{field_prefix}email')
    if 'dni' in text or 'username' in text:
        return DuplicateIdentity(field=f'{field_prefix}dni')
    logger.error(f"Unexpected integrity error while saving a member: {exc}")
    return MembershipError('The member could not be saved.')


def create_member_record(data, role=Member.ROLE_SOCIO, membership_type=None,
                         family_group=None, head=None, as_of=None, field_prefix=''):
    """
    Insert one member (and its login account when it is not a dependent).

    Runs in its own savepoint so a uniqueness race surfaces as
    ``DuplicateIdentity``/``DuplicateEmail`` without breaking the caller's
    transaction handling.
    """
    minor = validators.is_minor(data['birth_date'], as_of)
    try:
        with transaction.atomic():
            user = None
            if not minor:
                user = User.objects.create_user(
                    username=data['dni'],
                    email=data.get('email') or '',
                    password=data.get('password') or None,
                    first_name=data['name'][:150],
                )
            return Member.objects.create(
                user=user,
                dni=data['dni'],
                name=data['name'],
                birth_date=data['birth_date'],
                email=None if minor else data.get('email'),
                phone='' if minor else data.get('phone', ''),
                address=data.get('address', ''),
                role=role,
                membership_type=membership_type,
                family_group=family_group,
                head=head,
                is_minor=minor,
            )
    except IntegrityError as exc:
        raise integrity_error_to_membership_error(exc, field_prefix) from None


def _register(data, role, membership_type=None, as_of=None):
    data = normalize_person_data(data)
    errors = validate_person_data(data, require_password=True, as_of=as_of)
    raise_first(errors)
    require_minimum_age(data['birth_date'], as_of=as_of)
    raise_first(check_identity_available(data['dni'], data['email']))
    return create_member_record(data, role=role, membership_type=membership_type, as_of=as_of)


@transaction.atomic
def register_member(data, as_of=None):
    """Register a socio on the individual plan."""
    member = _register(data, Member.ROLE_SOCIO, Member.INDIVIDUAL, as_of=as_of)
    logger.info(f"Registered individual member {member.dni}")
    return member


@transaction.atomic
def register_coach(data, practices=(), as_of=None):
    """Register an entrenador and optionally assign the practices they lead."""
    member = _register(data, Member.ROLE_COACH, as_of=as_of)
    for practice in practices:
        practice.coaches.add(member)
    logger.info(f"Registered coach {member.dni}")
    return member


@transaction.atomic
def register_admin(data, super_admin=False, as_of=None):
    role = Member.ROLE_SUPER_ADMIN if super_admin else Member.ROLE_ADMIN
    member = _register(data, role, as_of=as_of)
    member.user.is_staff = True
    member.user.is_superuser = super_admin
    member.user.save(update_fields=['is_staff', 'is_superuser'])
    logger.info(f"Registered {role.lower()} {member.dni}")
    return member


@transaction.atomic
def update_member(member, data):
    """
    Update contact fields. Plan changes go through the family plan engine.
    """
    member = Member.objects.select_for_update().get(pk=member.pk)
    changes = {}
    errors = []

    if 'email' in data:
        email = normalize_email(data['email'])
        if member.is_minor and member.head_id:
            errors.append(InvalidMemberData(
                'Dependents under 12 use the contact data of their head of household.',
                field='email',
            ))
        else:
            message = validators.validate_email_format(email)
            if message:
                errors.append(InvalidMemberData(message, field='email'))
            else:
                errors.extend(check_identity_available(email=email, exclude_pk=member.pk))
                changes['email'] = email
    if 'phone' in data:
        phone = str(data['phone'] or '').strip()
        message = validators.validate_phone(phone)
        if message:
            errors.append(InvalidMemberData(message, field='phone'))
        changes['phone'] = phone
    if 'address' in data:
        changes['address'] = (data['address'] or '').strip()
    if 'name' in data:
        message = validators.validate_person_name(data['name'])
        if message:
            errors.append(InvalidMemberData(message, field='name'))
        changes['name'] = (data['name'] or '').strip()

    raise_first(errors)

    for field, value in changes.items():
        setattr(member, field, value)
    try:
        with transaction.atomic():
            member.save()
            if member.user_id and 'email' in changes:
                member.user.email = changes['email']
                member.user.save(update_fields=['email'])
    except IntegrityError as exc:
        raise integrity_error_to_membership_error(exc) from None

    logger.info(f"Updated member {member.dni}: {', '.join(sorted(changes)) or 'no changes'}")
    return member


def find_member(dni=None, email=None):
    """Look up a member by dni or email; ``None`` when absent."""
    qs = Member.objects.all()
    if dni:
        qs = qs.filter(dni=str(dni).strip())
    if email:
        qs = qs.filter(email__iexact=normalize_email(email))
    if not dni and not email:
        return None
    return qs.first()
