"""
Family plan consistency engine.

Every public operation here keeps the family plan invariants true in the
store: a group has either no members or at least three, only people aged
12 or older can be an individual member or a head of household, and dni
and email stay unique. All checks run before the first write, and every
write happens inside a single transaction.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from django.db import transaction

from ..exceptions import (
    AlreadyInFamilyPlan,
    DuplicateEmail,
    DuplicateIdentity,
    InsufficientGroupSize,
    InvalidAge,
    InvalidMemberData,
    MemberNotFound,
    NotInFamilyPlan,
    raise_first,
)
from ..models import Member, MemberRemoval
from ..notifications import member_snapshot
from ..tasks import queue_plan_change_email, queue_removal_email
from ..validators import calculate_age, is_minor, MINIMUM_INDEPENDENT_AGE
from .registration import (
    check_identity_available,
    create_member_record,
    normalize_person_data,
    validate_person_data,
)

logger = logging.getLogger(__name__)

# Head plus at least two more people.
MINIMUM_GROUP_SIZE = 3

ACTION_CONVERTED = 'converted'
ACTION_REMOVED = 'removed'


@dataclass(frozen=True)
class CascadeChange:
    """A member collaterally changed by a conversion or removal."""
    member_id: int
    dni: str
    name: str
    action: str


@dataclass
class FamilyGroupResult:
    group_id: str
    head: Member
    members: List[Member]

    @property
    def member_count(self):
        return len(self.members) + 1


@dataclass
class ConversionResult:
    member: Member
    cascaded: List[CascadeChange] = field(default_factory=list)


@dataclass
class RemovalResult:
    removed: List[CascadeChange] = field(default_factory=list)
    cascaded: List[CascadeChange] = field(default_factory=list)


@dataclass
class _PlannedMember:
    """One validated entry of a family group request, not yet written."""
    existing: Optional[Member] = None
    data: Optional[dict] = None


def _is_reference(item):
    """An existing member, or a dict that only identifies one by dni."""
    if isinstance(item, Member):
        return True
    return isinstance(item, dict) and (item.get('existing') or not item.get('name'))


def _lock_member(member_or_pk):
    pk = member_or_pk.pk if isinstance(member_or_pk, Member) else member_or_pk
    try:
        return Member.objects.select_for_update().get(pk=pk)
    except (Member.DoesNotExist, ValueError, TypeError):
        raise MemberNotFound(field='member') from None


def _check_head_eligible(head, as_of=None, field_name='head'):
    """Errors preventing an existing member from heading a family plan."""
    errors = []
    if not head.is_socio:
        errors.append(InvalidMemberData('Only socios can join a family plan.', field=field_name))
    elif head.is_family:
        errors.append(AlreadyInFamilyPlan(field=field_name))
    if calculate_age(head.birth_date, as_of) < MINIMUM_INDEPENDENT_AGE:
        errors.append(InvalidAge(
            'The head of household must be at least 12 years old.', field=field_name
        ))
    return errors


def _plan_members(items, seen_dnis, seen_emails, as_of=None):
    """
    Validate every requested member against the store and the request.

    Returns ``(planned, errors)``; nothing is written.
    """
    planned = []
    errors = []

    for index, item in enumerate(items):
        prefix = f'members[{index}].'

        if _is_reference(item):
            dni = item.dni if isinstance(item, Member) else str(item.get('dni') or '').strip()
            if dni in seen_dnis:
                errors.append(DuplicateIdentity(
                    f'The DNI {dni} appears more than once in the family group.',
                    field=f'{prefix}dni',
                ))
                continue
            seen_dnis.add(dni)
            existing = Member.objects.select_for_update().filter(dni=dni).first()
            if existing is None:
                errors.append(MemberNotFound(
                    f'No member is registered with DNI {dni}.', field=f'{prefix}dni'
                ))
                continue
            if not existing.is_socio:
                errors.append(InvalidMemberData(
                    'Only socios can join a family plan.', field=f'{prefix}dni'
                ))
            elif existing.is_family:
                errors.append(AlreadyInFamilyPlan(
                    f'{existing.name} already belongs to another family plan.',
                    field=f'{prefix}dni',
                ))
            else:
                planned.append(_PlannedMember(existing=existing))
            continue

        data = normalize_person_data(item)
        item_errors = validate_person_data(data, field_prefix=prefix, as_of=as_of)
        dni = data['dni']
        if dni:
            if dni in seen_dnis:
                item_errors.append(DuplicateIdentity(
                    f'The DNI {dni} appears more than once in the family group.',
                    field=f'{prefix}dni',
                ))
                dni = None
            seen_dnis.add(data['dni'])

        email = None
        if data['birth_date'] and not is_minor(data['birth_date'], as_of):
            email = data['email']
            if email and email in seen_emails:
                item_errors.append(DuplicateEmail(
                    f'The email {email} appears more than once in the family group.',
                    field=f'{prefix}email',
                ))
                email = None
            elif email:
                seen_emails.add(email)

        item_errors.extend(check_identity_available(dni, email, field_prefix=prefix))
        if item_errors:
            errors.extend(item_errors)
        else:
            planned.append(_PlannedMember(data=data))

    return planned, errors


def _write_group(head, planned, group_id, as_of=None):
    head.membership_type = Member.FAMILIAR
    head.family_group = group_id
    head.head = None
    head.save(update_fields=['membership_type', 'family_group', 'head', 'updated_at'])

    members = []
    for index, entry in enumerate(planned):
        if entry.existing is not None:
            member = entry.existing
            member.membership_type = Member.FAMILIAR
            member.family_group = group_id
            member.head = head
            member.save(update_fields=['membership_type', 'family_group', 'head', 'updated_at'])
        else:
            member = create_member_record(
                entry.data,
                membership_type=Member.FAMILIAR,
                family_group=group_id,
                head=head,
                as_of=as_of,
                field_prefix=f'members[{index}].',
            )
        members.append(member)
    return members


def _notify_joined(members, group_id):
    summary = f'You are now part of the family plan {group_id}.'
    for member in members:
        snapshot = member_snapshot(member)
        transaction.on_commit(
            lambda snapshot=snapshot: queue_plan_change_email(snapshot, Member.FAMILIAR, summary)
        )


@transaction.atomic
def create_family_group(head, members, performed_by=None, as_of=None):
    """
    Create a family plan from a head and at least two more members.

    ``head`` is an existing individual ``Member`` or registration data for
    a new socio. Each entry in ``members`` is either a reference to an
    existing individual member (a ``Member`` or ``{'dni': ...}``) or full
    registration data. Dependents under 12 need no email, phone or password.
    """
    errors = []
    if len(members) < MINIMUM_GROUP_SIZE - 1:
        errors.append(InsufficientGroupSize(
            'A family plan requires the head plus at least 2 more members.', field='members'
        ))

    head_data = None
    if isinstance(head, Member):
        head = _lock_member(head)
        errors.extend(_check_head_eligible(head, as_of))
        seen_dnis = {head.dni}
        seen_emails = {head.email} if head.email else set()
    else:
        head_data = normalize_person_data(head)
        errors.extend(validate_person_data(
            head_data, field_prefix='head.', require_password=True, as_of=as_of
        ))
        if head_data['birth_date'] and is_minor(head_data['birth_date'], as_of):
            errors.append(InvalidAge(
                'The head of household must be at least 12 years old.', field='head.birth_date'
            ))
        errors.extend(check_identity_available(
            head_data['dni'], head_data['email'], field_prefix='head.'
        ))
        seen_dnis = {head_data['dni']}
        seen_emails = {head_data['email']} if head_data['email'] else set()

    planned, member_errors = _plan_members(members, seen_dnis, seen_emails, as_of)
    errors.extend(member_errors)
    raise_first(errors)

    group_id = Member.new_family_group_id()
    if head_data is not None:
        head = create_member_record(
            head_data,
            membership_type=Member.FAMILIAR,
            family_group=group_id,
            as_of=as_of,
            field_prefix='head.',
        )
    created = _write_group(head, planned, group_id, as_of)

    _notify_joined([head] + [e.existing for e in planned if e.existing is not None], group_id)
    logger.info(
        f"Family plan {group_id} created with head {head.dni} and {len(created)} members"
        + (f" by {performed_by.dni}" if performed_by else "")
    )
    return FamilyGroupResult(group_id=group_id, head=head, members=created)


@transaction.atomic
def convert_individual_to_family(member, new_members, performed_by=None, as_of=None):
    """
    Promote an individual member to head of a new family plan.

    Entries referencing an existing individual member by dni absorb that
    member instead of registering a duplicate.
    """
    member = _lock_member(member)
    if member.is_family:
        raise AlreadyInFamilyPlan('The member already belongs to a family plan.', field='member')
    return create_family_group(member, new_members, performed_by=performed_by, as_of=as_of)


def _delete_member(member, performed_by, reason, email=None):
    """Audit, snapshot and delete one member together with its login."""
    snapshot = member_snapshot(member, reason)
    if email is not None:
        snapshot['email'] = email
    MemberRemoval.record(member, performed_by=performed_by, reason=reason, email=snapshot['email'])
    change = CascadeChange(member.pk, member.dni, member.name, ACTION_REMOVED)
    user = member.user
    member.delete()
    if user is not None:
        user.delete()
    transaction.on_commit(lambda: queue_removal_email(snapshot))
    return change


def _can_stand_alone(member, as_of=None):
    """Old enough and holding a login, so able to run an individual plan."""
    return (
        member.user_id is not None
        and calculate_age(member.birth_date, as_of) >= MINIMUM_INDEPENDENT_AGE
    )


def _make_individual(member, as_of=None):
    member.membership_type = Member.INDIVIDUAL
    member.family_group = None
    member.head = None
    member.is_minor = is_minor(member.birth_date, as_of)
    member.save(update_fields=['membership_type', 'family_group', 'head', 'is_minor', 'updated_at'])


def _dissolve(remaining, performed_by, reason, as_of=None):
    """
    Take apart a group that has fallen below the minimum size.

    Adults become individual members. Dependents under 12, and dependents
    registered without a login while they were under 12, cannot hold an
    individual plan, so they are removed.
    """
    # Dependents are reached through their head's email, read it before
    # anyone's head reference is cleared.
    contact = {m.pk: m.contact_email for m in remaining}
    changes = []
    for member in remaining:
        if not _can_stand_alone(member, as_of):
            changes.append(_delete_member(member, performed_by, reason, email=contact[member.pk]))
        else:
            group_id = member.family_group
            _make_individual(member, as_of)
            changes.append(CascadeChange(member.pk, member.dni, member.name, ACTION_CONVERTED))
            snapshot = member_snapshot(member)
            summary = f'The family plan {group_id} was dissolved because it dropped below 3 members.'
            transaction.on_commit(
                lambda snapshot=snapshot: queue_plan_change_email(
                    snapshot, Member.INDIVIDUAL, summary
                )
            )
    return changes


def _pick_new_head(remaining, as_of=None):
    """Oldest remaining member who is at least 12 and has a login."""
    eligible = [m for m in remaining if _can_stand_alone(m, as_of)]
    if not eligible:
        return None
    return min(eligible, key=lambda m: (m.birth_date, m.pk))


def _reassign_head(new_head, remaining, as_of=None):
    new_head.head = None
    new_head.is_minor = is_minor(new_head.birth_date, as_of)
    new_head.save(update_fields=['head', 'is_minor', 'updated_at'])
    for member in remaining:
        if member.pk != new_head.pk:
            member.head = new_head
            member.save(update_fields=['head', 'updated_at'])


@transaction.atomic
def convert_family_to_individual(member, performed_by=None, as_of=None):
    """
    Move a member from a family plan to an individual plan.

    When the group is left with one or two members the rest of it is
    dissolved too; the returned ``cascaded`` list reports who else changed.
    """
    member = _lock_member(member)
    if not member.is_family:
        raise NotInFamilyPlan(field='member')
    if calculate_age(member.birth_date, as_of) < MINIMUM_INDEPENDENT_AGE:
        raise InvalidAge('A member under 12 cannot hold an individual plan.', field='member')
    if not member.user_id:
        raise InvalidMemberData(
            'A member registered without a login cannot hold an individual plan.',
            field='member',
        )

    group_id = member.family_group
    was_head = member.is_family_head
    remaining = [m for m in Member.get_group_members(group_id, lock=True) if m.pk != member.pk]

    new_head = None
    if len(remaining) >= MINIMUM_GROUP_SIZE and was_head:
        new_head = _pick_new_head(remaining, as_of)
        if new_head is None:
            raise InvalidAge(
                'No remaining member is old enough and has a login to become head of household.',
                field='member',
            )

    _make_individual(member, as_of)

    cascaded = []
    if 0 < len(remaining) < MINIMUM_GROUP_SIZE:
        cascaded = _dissolve(
            remaining,
            performed_by,
            reason=f'Family plan {group_id} dissolved after {member.name} left it.',
            as_of=as_of,
        )
    elif new_head is not None:
        _reassign_head(new_head, remaining, as_of)
        logger.info(f"Family plan {group_id}: headship passed to {new_head.dni}")

    snapshot = member_snapshot(member)
    transaction.on_commit(
        lambda: queue_plan_change_email(snapshot, Member.INDIVIDUAL, 'You are now on an individual plan.')
    )
    logger.info(
        f"Member {member.dni} left family plan {group_id}; "
        f"{len(cascaded)} members affected by the cascade"
    )
    return ConversionResult(member=member, cascaded=cascaded)


@transaction.atomic
def remove_member(member, performed_by=None, reason=''):
    """
    Delete a member, leaving an audit record behind.

    Removing a head of household removes the whole family group. Removing
    any other family member dissolves the group when fewer than three
    would remain.
    """
    member = _lock_member(member)
    removed = []
    cascaded = []

    if member.is_family:
        group_id = member.family_group
        remaining = [m for m in Member.get_group_members(group_id, lock=True) if m.pk != member.pk]
        if member.is_family_head:
            group_reason = reason or f'Family plan {group_id} removed with its head {member.name}.'
            contact = {m.pk: m.contact_email for m in remaining}
            for other in remaining:
                removed.append(
                    _delete_member(other, performed_by, group_reason, email=contact[other.pk])
                )
        elif 0 < len(remaining) < MINIMUM_GROUP_SIZE:
            cascaded = _dissolve(
                remaining,
                performed_by,
                reason=f'Family plan {group_id} dissolved after {member.name} was removed.',
            )

    removed.insert(0, _delete_member(member, performed_by, reason))
    logger.info(
        f"Removed member {member.dni}"
        + (f" by {performed_by.dni}" if performed_by else "")
        + f" ({len(removed)} removed, {len(cascaded)} cascaded)"
    )
    return RemovalResult(removed=removed, cascaded=cascaded)
