"""
Tests for the family plan engine: group creation, conversions in both
directions and removals, always keeping groups at 0 or 3+ members.
"""
from datetime import date

import pytest
from django.contrib.auth.models import User
from django.core import mail

from apps.accounts.exceptions import (
    AlreadyInFamilyPlan,
    DuplicateEmail,
    DuplicateIdentity,
    InsufficientGroupSize,
    InvalidAge,
    InvalidMemberData,
    MemberNotFound,
    NotInFamilyPlan,
)
from apps.accounts.models import EmailLog, Member, MemberRemoval
from apps.accounts.services import (
    convert_family_to_individual,
    convert_individual_to_family,
    create_family_group,
    register_member,
    remove_member,
)
from apps.billing.services import compute_monthly_fee

from .helpers import assert_groups_consistent, born, group_sizes, person


FIVE_YEARS_AGO = date(date.today().year - 5, 6, 1)


def plan_state(member_id):
    return Member.objects.values_list(
        'membership_type', 'family_group', 'head_id'
    ).get(pk=member_id)


def registered_as_child(dni, name, age_now):
    """A dependent registered five years ago, while still under 12."""
    return person(dni, name, age_now - 5, birth_date=born(age_now))


@pytest.fixture
def grown_family(db):
    """Registered five years ago: head, adult and a child who is now 13."""
    return create_family_group(
        person('30000001', 'Alberto Perez', 35),
        [
            person('30000002', 'Beatriz Perez', 30),
            registered_as_child('50000003', 'Carla Perez', 13),
        ],
        as_of=FIVE_YEARS_AGO,
    )


@pytest.mark.django_db
class TestCreateFamilyGroup:

    def test_head_adult_and_dependent(self, family):
        head = family.head
        adult, dependent = family.members

        assert family.member_count == 3
        assert group_sizes() == {family.group_id: 3}
        assert head.is_family_head
        assert adult.head == head and dependent.head == head
        assert {m.membership_type for m in (head, adult, dependent)} == {Member.FAMILIAR}

        assert adult.user is not None
        assert dependent.user is None
        assert dependent.email is None
        assert dependent.is_minor
        assert dependent.contact_email == head.email

    def test_every_member_pays_the_discounted_fee(self, family):
        fees = {compute_monthly_fee(m) for m in [family.head] + family.members}
        assert fees == {3500}

    def test_existing_individual_becomes_head(self, socio):
        result = create_family_group(socio, [
            person('30000002', 'Beatriz Garcia', 25),
            person('50000003', 'Carla Garcia', 8),
        ])

        socio.refresh_from_db()
        assert result.head.pk == socio.pk
        assert socio.membership_type == Member.FAMILIAR
        assert socio.family_group == result.group_id
        assert socio.head_id is None

    def test_one_additional_member_is_not_enough(self):
        members_before = Member.objects.count()

        with pytest.raises(InsufficientGroupSize):
            create_family_group(
                person('30000001', 'Alberto Perez', 30),
                [person('30000002', 'Beatriz Perez', 25)],
            )

        assert Member.objects.count() == members_before
        assert not User.objects.filter(username='30000001').exists()

    def test_member_reusing_head_dni(self):
        members_before = Member.objects.count()

        with pytest.raises(DuplicateIdentity) as excinfo:
            create_family_group(
                person('30000001', 'Alberto Perez', 30),
                [
                    person('30000001', 'Beatriz Perez', 25, email='beatriz@example.com'),
                    person('50000003', 'Carla Perez', 8),
                ],
            )

        assert excinfo.value.field == 'members[0].dni'
        assert Member.objects.count() == members_before
        assert group_sizes() == {}

    def test_dni_repeated_between_members(self):
        with pytest.raises(DuplicateIdentity):
            create_family_group(
                person('30000001', 'Alberto Perez', 30),
                [person('50000003', 'Carla Perez', 8), person('50000003', 'Carlos Perez', 6)],
            )

    def test_email_repeated_between_adults(self):
        with pytest.raises(DuplicateEmail) as excinfo:
            create_family_group(
                person('30000001', 'Alberto Perez', 30),
                [
                    person('30000002', 'Beatriz Perez', 25, email='casa@example.com'),
                    person('30000003', 'Bruno Perez', 22, email='casa@example.com'),
                ],
            )
        assert excinfo.value.field == 'members[1].email'

    def test_dependents_are_exempt_from_email_uniqueness(self):
        """A dependent's email is ignored; they use the head's contact data."""
        result = create_family_group(
            person('30000001', 'Alberto Perez', 30, email='alberto@example.com'),
            [
                person('50000002', 'Carla Perez', 8, email='alberto@example.com'),
                person('50000003', 'Carlos Perez', 6, email='alberto@example.com'),
            ],
        )

        assert [m.email for m in result.members] == [None, None]

    def test_email_taken_in_the_store(self, socio):
        with pytest.raises(DuplicateEmail):
            create_family_group(
                person('30000001', 'Alberto Perez', 30),
                [
                    person('30000002', 'Beatriz Perez', 25, email=socio.email),
                    person('50000003', 'Carla Perez', 8),
                ],
            )

    def test_collects_every_violation(self, socio):
        with pytest.raises(InsufficientGroupSize) as excinfo:
            create_family_group(
                person('30000001', 'Alberto Perez', 30),
                [person(socio.dni, 'Copia', 25, email=socio.email)],
            )

        kinds = {type(error) for error in excinfo.value.errors}
        assert {InsufficientGroupSize, DuplicateIdentity, DuplicateEmail} <= kinds

    def test_head_under_twelve(self):
        with pytest.raises(InvalidAge) as excinfo:
            create_family_group(
                person('50000001', 'Nino Perez', 10, email='nino@example.com',
                       phone='111', password='Secreta1!'),
                [person('30000002', 'Beatriz Perez', 25), person('30000003', 'Bruno Perez', 22)],
            )

        assert excinfo.value.field == 'head.birth_date'
        assert group_sizes() == {}

    def test_write_failure_leaves_nothing_behind(self, socio, monkeypatch):
        """A constraint violation on the last insert rolls back the head too."""
        monkeypatch.setattr(
            'apps.accounts.services.family.check_identity_available',
            lambda *args, **kwargs: [],
        )
        members_before = Member.objects.count()

        with pytest.raises(DuplicateEmail) as excinfo:
            create_family_group(
                person('30000001', 'Alberto Perez', 30),
                [
                    person('30000002', 'Beatriz Perez', 25),
                    person('30000003', 'Bruno Perez', 22, email=socio.email),
                ],
            )

        assert excinfo.value.field == 'members[1].email'
        assert Member.objects.count() == members_before
        assert not User.objects.filter(username__in=['30000001', '30000002']).exists()


@pytest.mark.django_db
class TestConvertIndividualToFamily:

    def test_absorbs_existing_individual_member(self, socio, make_member):
        partner = make_member('30222333', 'Pedro Gomez', 33)
        members_before = Member.objects.count()

        result = convert_individual_to_family(socio, [
            {'dni': partner.dni},
            person('50000003', 'Carla Gomez', 8),
        ])

        partner.refresh_from_db()
        assert Member.objects.count() == members_before + 1
        assert partner.family_group == result.group_id
        assert partner.head_id == socio.pk
        assert partner.membership_type == Member.FAMILIAR
        assert result.member_count == 3

    def test_member_objects_can_be_referenced_directly(self, socio, make_member):
        first = make_member('30222333', 'Pedro Gomez', 33)
        second = make_member('30222444', 'Maria Gomez', 31)

        result = convert_individual_to_family(socio, [first, second])

        assert {m.pk for m in result.members} == {first.pk, second.pk}

    def test_referenced_member_in_another_family(self, socio, adult_family):
        with pytest.raises(AlreadyInFamilyPlan) as excinfo:
            convert_individual_to_family(socio, [
                {'dni': adult_family.members[0].dni},
                person('50000003', 'Carla Gomez', 8),
            ])

        assert excinfo.value.field == 'members[0].dni'
        socio.refresh_from_db()
        assert socio.membership_type == Member.INDIVIDUAL

    def test_unknown_reference(self, socio):
        with pytest.raises(MemberNotFound):
            convert_individual_to_family(socio, [
                {'dni': '39999999'},
                person('50000003', 'Carla Gomez', 8),
            ])

    def test_member_already_in_a_family(self, family):
        with pytest.raises(AlreadyInFamilyPlan):
            convert_individual_to_family(family.head, [
                person('30000009', 'Nuevo Perez', 20),
                person('50000009', 'Nueva Perez', 7),
            ])

    def test_needs_two_new_members(self, socio):
        with pytest.raises(InsufficientGroupSize):
            convert_individual_to_family(socio, [person('50000003', 'Carla Gomez', 8)])

        socio.refresh_from_db()
        assert socio.family_group is None

    def test_unknown_member(self):
        with pytest.raises(MemberNotFound):
            convert_individual_to_family(987654, [])

    def test_under_twelve_head_is_rejected(self, family):
        """A dependent can never head a plan, even if asked to."""
        dependent = family.members[1]

        with pytest.raises(AlreadyInFamilyPlan) as excinfo:
            create_family_group(dependent, [
                person('30000009', 'Nuevo Perez', 20),
                person('30000010', 'Nueva Perez', 21),
            ])

        assert any(isinstance(e, InvalidAge) for e in excinfo.value.errors)


@pytest.mark.django_db
class TestConvertFamilyToIndividual:

    def test_group_of_three_cascades(self, adult_family):
        head = adult_family.head
        leaving, other = adult_family.members

        result = convert_family_to_individual(leaving)

        for member_id in (head.pk, leaving.pk, other.pk):
            assert plan_state(member_id) == (Member.INDIVIDUAL, None, None)
        assert {c.member_id for c in result.cascaded} == {head.pk, other.pk}
        assert {c.action for c in result.cascaded} == {'converted'}
        assert result.member.membership_type == Member.INDIVIDUAL
        assert group_sizes() == {}

    def test_group_of_four_keeps_the_rest(self, socio):
        group = create_family_group(socio, [
            person('30000002', 'Beatriz Garcia', 25),
            person('30000003', 'Bruno Garcia', 22),
            person('50000004', 'Carla Garcia', 8),
        ])
        leaving = group.members[0]
        others = [group.head] + group.members[1:]
        before = {m.pk: plan_state(m.pk) for m in others}

        result = convert_family_to_individual(leaving)

        assert result.cascaded == []
        assert plan_state(leaving.pk) == (Member.INDIVIDUAL, None, None)
        assert {m.pk: plan_state(m.pk) for m in others} == before
        assert group_sizes() == {group.group_id: 3}

    def test_dependents_are_removed_when_the_group_dissolves(self, family):
        head = family.head
        leaving, dependent = family.members

        result = convert_family_to_individual(leaving)

        assert plan_state(head.pk) == (Member.INDIVIDUAL, None, None)
        assert not Member.objects.filter(pk=dependent.pk).exists()
        actions = {c.member_id: c.action for c in result.cascaded}
        assert actions == {head.pk: 'converted', dependent.pk: 'removed'}

        removal = MemberRemoval.objects.get(dni=dependent.dni)
        assert removal.email == head.email

    def test_head_leaving_passes_headship_to_oldest_adult(self, socio):
        group = create_family_group(socio, [
            person('30000002', 'Beatriz Garcia', 20),
            person('30000003', 'Bruno Garcia', 45),
            person('50000004', 'Carla Garcia', 8),
        ])
        younger, oldest, dependent = group.members

        convert_family_to_individual(socio)

        for member in (younger, oldest, dependent):
            member.refresh_from_db()
        assert oldest.is_family_head
        assert younger.head_id == oldest.pk
        assert dependent.head_id == oldest.pk
        assert group_sizes() == {group.group_id: 3}

    def test_head_cannot_leave_only_dependents_behind(self, socio):
        group = create_family_group(socio, [
            person('50000002', 'Carla Garcia', 8),
            person('50000003', 'Carlos Garcia', 6),
            person('50000004', 'Clara Garcia', 4),
        ])

        with pytest.raises(InvalidAge):
            convert_family_to_individual(socio)

        socio.refresh_from_db()
        assert socio.family_group == group.group_id
        assert group_sizes() == {group.group_id: 4}

    def test_dependent_cannot_hold_an_individual_plan(self, family):
        with pytest.raises(InvalidAge):
            convert_family_to_individual(family.members[1])

    def test_grown_dependent_without_login_is_removed_on_dissolve(self, grown_family):
        head = grown_family.head
        leaving, grown = grown_family.members
        assert grown.user_id is None and grown.age == 13

        result = convert_family_to_individual(leaving)

        actions = {c.member_id: c.action for c in result.cascaded}
        assert actions == {head.pk: 'converted', grown.pk: 'removed'}
        assert not Member.objects.filter(pk=grown.pk).exists()
        assert MemberRemoval.objects.get(dni=grown.dni).email == head.email
        assert not Member.objects.filter(
            membership_type=Member.INDIVIDUAL, user__isnull=True
        ).exists()
        assert Member.objects.get(pk=head.pk).is_minor is False

    def test_grown_dependent_without_login_cannot_go_individual(self, grown_family):
        grown = grown_family.members[1]

        with pytest.raises(InvalidMemberData):
            convert_family_to_individual(grown)

        assert plan_state(grown.pk)[1] == grown_family.group_id
        assert group_sizes() == {grown_family.group_id: 3}

    def test_headship_skips_members_without_login(self):
        group = create_family_group(
            person('30000001', 'Alberto Perez', 35),
            [
                registered_as_child('50000002', 'Carla Perez', 16),
                registered_as_child('50000003', 'Carlos Perez', 14),
                registered_as_child('50000004', 'Clara Perez', 13),
            ],
            as_of=FIVE_YEARS_AGO,
        )

        with pytest.raises(InvalidAge):
            convert_family_to_individual(group.head)

        assert group_sizes() == {group.group_id: 4}

    def test_member_not_in_a_family(self, socio):
        with pytest.raises(NotInFamilyPlan):
            convert_family_to_individual(socio)

    def test_fee_follows_the_new_plan(self, adult_family):
        leaving = adult_family.members[0]

        convert_family_to_individual(leaving)

        leaving.refresh_from_db()
        assert compute_monthly_fee(leaving) == 5000

    def test_cascade_notifies_every_member(self, adult_family, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            convert_family_to_individual(adult_family.members[0])

        recipients = sorted(message.to[0] for message in mail.outbox)
        expected = sorted([adult_family.head.email] + [m.email for m in adult_family.members])
        assert recipients == expected


@pytest.mark.django_db
class TestRemoveMember:

    def test_removing_the_head_removes_the_group(self, family, club_admin):
        ids = [family.head.pk] + [m.pk for m in family.members]

        result = remove_member(family.head, performed_by=club_admin, reason='Baja')

        assert not Member.objects.filter(pk__in=ids).exists()
        assert [c.member_id for c in result.removed][0] == family.head.pk
        assert {c.member_id for c in result.removed} == set(ids)
        assert MemberRemoval.objects.filter(performed_by=club_admin).count() == 3
        assert not User.objects.filter(username=family.head.dni).exists()
        assert group_sizes() == {}

    def test_removing_a_member_of_three_dissolves_the_group(self, adult_family):
        head = adult_family.head
        removed, other = adult_family.members

        result = remove_member(removed)

        assert [c.member_id for c in result.removed] == [removed.pk]
        assert {c.member_id for c in result.cascaded} == {head.pk, other.pk}
        assert plan_state(head.pk) == (Member.INDIVIDUAL, None, None)
        assert plan_state(other.pk) == (Member.INDIVIDUAL, None, None)

    def test_removing_a_member_of_four_keeps_the_group(self, socio):
        group = create_family_group(socio, [
            person('30000002', 'Beatriz Garcia', 25),
            person('30000003', 'Bruno Garcia', 22),
            person('50000004', 'Carla Garcia', 8),
        ])

        result = remove_member(group.members[0])

        assert result.cascaded == []
        assert group_sizes() == {group.group_id: 3}

    def test_removing_an_individual(self, socio):
        result = remove_member(socio, reason='Mudanza')

        assert not Member.objects.filter(pk=socio.pk).exists()
        assert not User.objects.filter(username=socio.dni).exists()
        assert MemberRemoval.objects.get(dni=socio.dni).reason == 'Mudanza'
        assert result.cascaded == []

    def test_removal_emails_reach_the_head_for_dependents(self, family,
                                                          django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            remove_member(family.head)

        assert len(mail.outbox) == 3
        assert all(message.to == [family.head.email] or message.to == [family.members[0].email]
                   for message in mail.outbox)
        dependent_mails = [m for m in mail.outbox if family.members[1].name in m.subject]
        assert dependent_mails and dependent_mails[0].to == [family.head.email]

    def test_removal_emails_are_logged(self, family, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            remove_member(family.head)

        logs = EmailLog.objects.all()
        assert logs.count() == 3
        assert set(logs.values_list('status', flat=True)) == {EmailLog.STATUS_SENT}
        dependent_log = logs.get(email_type=EmailLog.TYPE_DEPENDENT_REMOVED)
        assert dependent_log.recipient == family.head.email

    def test_failed_removal_email_is_logged(self, socio, monkeypatch,
                                            django_capture_on_commit_callbacks):
        def broken_send_mail(*args, **kwargs):
            raise ConnectionRefusedError('SMTP server unavailable')

        monkeypatch.setattr('apps.accounts.notifications.send_mail', broken_send_mail)

        with django_capture_on_commit_callbacks(execute=True):
            remove_member(socio)

        assert not Member.objects.filter(pk=socio.pk).exists()
        log = EmailLog.objects.get()
        assert log.email_type == EmailLog.TYPE_MEMBER_REMOVED
        assert log.status == EmailLog.STATUS_FAILED
        assert log.recipient == socio.email
        assert 'SMTP server unavailable' in log.error

    def test_unknown_member(self):
        with pytest.raises(MemberNotFound):
            remove_member(123456)


@pytest.mark.django_db
class TestGroupInvariant:

    def test_sequence_of_operations_never_leaves_small_groups(self, socio, make_member):
        partner = make_member('30222333', 'Pedro Gomez', 33)
        group = convert_individual_to_family(socio, [
            {'dni': partner.dni},
            person('30000004', 'Lucia Gomez', 18),
            person('50000005', 'Tomas Gomez', 9),
        ])
        assert_groups_consistent()

        convert_family_to_individual(partner)
        assert_groups_consistent()
        assert group_sizes() == {group.group_id: 3}

        other = create_family_group(partner, [
            person('30000006', 'Sofia Diaz', 29),
            person('30000007', 'Mateo Diaz', 27),
        ])
        assert_groups_consistent()

        remove_member(group.members[1])
        assert_groups_consistent()

        convert_family_to_individual(other.members[0])
        assert_groups_consistent()
        assert group_sizes() == {}

    def test_no_individual_member_is_under_twelve(self, family, adult_family):
        register_member(person('30555666', 'Otro Socio', 40))
        convert_family_to_individual(family.members[0])

        individuals = Member.objects.filter(membership_type=Member.INDIVIDUAL)
        assert individuals.exists()
        assert all(m.age >= 12 for m in individuals)
