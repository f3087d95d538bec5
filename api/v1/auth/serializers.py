"""
Authentication serializers for the Club Manager API.
"""
from django.contrib.auth import authenticate
from django.contrib.auth.models import User
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from apps.accounts.models import Member


class MemberSummarySerializer(serializers.ModelSerializer):
    """The logged-in member as returned by login and ``me``."""
    age = serializers.IntegerField(read_only=True)
    is_family_head = serializers.BooleanField(read_only=True)

    class Meta:
        model = Member
        fields = [
            'id', 'dni', 'name', 'email', 'phone', 'birth_date', 'age', 'role',
            'membership_type', 'family_group', 'is_family_head',
        ]
        read_only_fields = fields


class ClubTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    JWT login with either an email address or a dni as the identifier.

    Tokens carry the member's ``role`` claim for clients; permissions are
    still checked against the member record on every request.
    """
    username_field = 'login'

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        member = getattr(user, 'member', None)
        token['role'] = member.role if member else None
        token['member_id'] = member.pk if member else None
        return token

    def validate(self, attrs):
        login = (attrs.get('login') or '').strip()
        password = attrs.get('password')

        if not login or not password:
            raise serializers.ValidationError({
                'detail': 'Email or DNI and password are required.'
            })

        if '@' in login:
            member = Member.objects.select_related('user').filter(email__iexact=login).first()
            user = member.user if member else None
        else:
            user = User.objects.filter(username=login).first()

        if user is None:
            raise serializers.ValidationError({
                'detail': 'Invalid credentials.'
            })

        user = authenticate(
            request=self.context.get('request'),
            username=user.username,
            password=password
        )

        if not user:
            raise serializers.ValidationError({
                'detail': 'Invalid credentials.'
            })

        if not user.is_active:
            raise serializers.ValidationError({
                'detail': 'This account has been disabled.'
            })

        member = getattr(user, 'member', None)
        if member is None:
            raise serializers.ValidationError({
                'detail': 'This account is not linked to a club member.'
            })

        refresh = self.get_token(user)

        return {
            'refresh': str(refresh),
            'access': str(refresh.access_token),
            'role': member.role,
            'member': MemberSummarySerializer(member).data,
        }


class PasswordChangeSerializer(serializers.Serializer):
    """Serializer for changing password."""
    old_password = serializers.CharField(
        required=True,
        write_only=True,
        style={'input_type': 'password'}
    )
    new_password = serializers.CharField(
        required=True,
        write_only=True,
        validators=[validate_password],
        style={'input_type': 'password'}
    )

    def validate_old_password(self, value):
        user = self.context['request'].user
        if not user.check_password(value):
            raise serializers.ValidationError('Current password is incorrect.')
        return value
