"""
Practice, enrollment and attendance serializers for the Club Manager API.
"""
from rest_framework import serializers

from apps.accounts.models import Member
from apps.practices.models import Enrollment, Practice, PracticeSchedule


class ScheduleSerializer(serializers.ModelSerializer):
    start_time = serializers.TimeField(format='%H:%M')
    end_time = serializers.TimeField(format='%H:%M')

    class Meta:
        model = PracticeSchedule
        fields = ['day', 'start_time', 'end_time']


class PracticeSerializer(serializers.ModelSerializer):
    schedules = ScheduleSerializer(many=True, read_only=True)
    coaches = serializers.SerializerMethodField()
    enrolled = serializers.SerializerMethodField()
    spots_left = serializers.IntegerField(read_only=True)

    class Meta:
        model = Practice
        fields = [
            'id', 'name', 'description', 'capacity', 'price', 'enrolled',
            'spots_left', 'schedules', 'coaches',
        ]
        read_only_fields = fields

    def get_coaches(self, obj):
        return [{'id': c.pk, 'name': c.name} for c in obj.coaches.all()]

    def get_enrolled(self, obj):
        return obj.active_enrollment_count()


class ScheduleInputSerializer(serializers.Serializer):
    """Times stay as text; the service layer validates them."""
    day = serializers.CharField()
    start_time = serializers.CharField()
    end_time = serializers.CharField()


class PracticeWriteSerializer(serializers.Serializer):
    name = serializers.CharField(required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    capacity = serializers.IntegerField(required=False)
    price = serializers.IntegerField(required=False)
    schedules = ScheduleInputSerializer(many=True, required=False)
    coach_ids = serializers.PrimaryKeyRelatedField(
        queryset=Member.objects.filter(role=Member.ROLE_COACH),
        many=True,
        required=False,
        source='coaches',
    )


class EnrollmentSerializer(serializers.ModelSerializer):
    member_name = serializers.CharField(source='member.name', read_only=True)
    member_dni = serializers.CharField(source='member.dni', read_only=True)
    practice_name = serializers.CharField(source='practice.name', read_only=True)

    class Meta:
        model = Enrollment
        fields = [
            'id', 'member', 'member_name', 'member_dni', 'practice',
            'practice_name', 'active', 'enrolled_at',
        ]
        read_only_fields = fields


class EnrollRequestSerializer(serializers.Serializer):
    member_id = serializers.IntegerField(required=False)


class AttendanceQuerySerializer(serializers.Serializer):
    date = serializers.DateField()


class AttendanceEntrySerializer(serializers.Serializer):
    enrollment_id = serializers.IntegerField()
    present = serializers.BooleanField()


class AttendanceRecordSerializer(serializers.Serializer):
    date = serializers.DateField()
    entries = AttendanceEntrySerializer(many=True, allow_empty=False)


class ReportQuerySerializer(serializers.Serializer):
    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)

    def validate(self, attrs):
        start, end = attrs.get('start'), attrs.get('end')
        if start and end and start > end:
            raise serializers.ValidationError({'start': 'The start date must not be after the end date.'})
        return attrs
