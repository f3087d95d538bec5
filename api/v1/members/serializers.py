"""
Member, family plan and staff serializers for the Club Manager API.

Field rules come from ``apps.accounts.validators`` so the API rejects the
same input the service layer would.
"""
from dataclasses import asdict

from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from apps.accounts import validators
from apps.accounts.models import EmailLog, Member, MemberRemoval
from apps.practices.models import Practice


def _check(validator, value):
    message = validator(value)
    if message:
        raise serializers.ValidationError(message)
    return value


class MemberSerializer(serializers.ModelSerializer):
    age = serializers.IntegerField(read_only=True)
    contact_email = serializers.EmailField(read_only=True)
    is_family_head = serializers.BooleanField(read_only=True)
    head_name = serializers.CharField(source='head.name', read_only=True, default=None)

    class Meta:
        model = Member
        fields = [
            'id', 'dni', 'name', 'birth_date', 'age', 'email', 'contact_email',
            'phone', 'address', 'role', 'membership_type', 'family_group',
            'head', 'head_name', 'is_family_head', 'is_minor', 'registered_at',
        ]
        read_only_fields = fields


class PersonSerializer(serializers.Serializer):
    """Registration data shared by socios, coaches and administrators."""
    dni = serializers.CharField(max_length=8)
    name = serializers.CharField(max_length=120)
    birth_date = serializers.DateField()
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=20)
    address = serializers.CharField(required=False, allow_blank=True, max_length=200)
    password = serializers.CharField(
        write_only=True,
        required=True,
        validators=[validate_password],
        style={'input_type': 'password'}
    )

    def validate_dni(self, value):
        return _check(validators.validate_dni, value.strip())

    def validate_name(self, value):
        return _check(validators.validate_person_name, value.strip())

    def validate_phone(self, value):
        if value:
            _check(validators.validate_phone, value)
        return value

    def validate_birth_date(self, value):
        return _check(validators.validate_birth_date, value)


class CoachCreateSerializer(PersonSerializer):
    practice_ids = serializers.PrimaryKeyRelatedField(
        queryset=Practice.objects.all(),
        many=True,
        required=False,
        source='practices',
    )


class MemberUpdateSerializer(serializers.Serializer):
    """Contact fields an administrator may change."""
    name = serializers.CharField(required=False, max_length=120)
    email = serializers.EmailField(required=False)
    phone = serializers.CharField(required=False, max_length=20)
    address = serializers.CharField(required=False, allow_blank=True, max_length=200)


class FamilyMemberField(serializers.DictField):
    """
    One family member: ``{"dni": ...}`` to absorb an existing individual
    member, or full registration data for a new one.
    """
    child = serializers.JSONField()

    def to_internal_value(self, data):
        data = super().to_internal_value(data)
        if not data.get('dni'):
            raise serializers.ValidationError('Every family member needs a DNI.')
        return data


class FamilyGroupCreateSerializer(serializers.Serializer):
    head_id = serializers.IntegerField(required=False)
    head = serializers.DictField(child=serializers.JSONField(), required=False)
    members = serializers.ListField(child=FamilyMemberField(), allow_empty=True)

    def validate(self, attrs):
        if ('head_id' in attrs) == ('head' in attrs):
            raise serializers.ValidationError({
                'head': 'Send either head_id for an existing member or head with registration data.'
            })
        return attrs


class ConvertToFamilySerializer(serializers.Serializer):
    members = serializers.ListField(child=FamilyMemberField(), allow_empty=True)


class RemovalRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


def serialize_changes(changes):
    return [asdict(change) for change in changes]


class FamilyGroupResultSerializer(serializers.Serializer):
    group_id = serializers.CharField()
    member_count = serializers.IntegerField()
    head = MemberSerializer()
    members = MemberSerializer(many=True)


class MemberRemovalSerializer(serializers.ModelSerializer):
    performed_by_name = serializers.CharField(source='performed_by.name', read_only=True, default=None)

    class Meta:
        model = MemberRemoval
        fields = [
            'id', 'member_id_snapshot', 'name', 'dni', 'email', 'role',
            'performed_by', 'performed_by_name', 'reason', 'removed_at',
        ]
        read_only_fields = fields


class EmailLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = EmailLog
        fields = ['id', 'recipient', 'subject', 'email_type', 'status', 'error', 'created_at']
        read_only_fields = fields


class CoachSerializer(MemberSerializer):
    practices = serializers.SerializerMethodField()

    class Meta(MemberSerializer.Meta):
        fields = MemberSerializer.Meta.fields + ['practices']
        read_only_fields = fields

    def get_practices(self, obj):
        return [{'id': p.pk, 'name': p.name} for p in obj.coached_practices.all()]
