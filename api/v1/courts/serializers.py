"""
Court and reservation serializers for the Club Manager API.
"""
from rest_framework import serializers

from apps.courts.models import Court, CourtReservation
from apps.practices.models import Practice


class CourtSerializer(serializers.ModelSerializer):
    court_type_display = serializers.CharField(source='get_court_type_display', read_only=True)
    practice_name = serializers.CharField(source='practice.name', read_only=True, default=None)

    class Meta:
        model = Court
        fields = [
            'id', 'number', 'court_type', 'court_type_display', 'location',
            'opens_at', 'closes_at', 'price', 'practice', 'practice_name',
        ]
        read_only_fields = fields


class CourtWriteSerializer(serializers.Serializer):
    """Raw court fields; range and uniqueness rules live in the service layer."""
    number = serializers.IntegerField(required=False)
    court_type = serializers.CharField(required=False)
    location = serializers.CharField(required=False, allow_blank=True)
    opens_at = serializers.CharField(required=False)
    closes_at = serializers.CharField(required=False)
    price = serializers.IntegerField(required=False)
    practice = serializers.PrimaryKeyRelatedField(
        queryset=Practice.objects.all(), required=False, allow_null=True
    )


class SlotQuerySerializer(serializers.Serializer):
    date = serializers.DateField()


class SlotSerializer(serializers.Serializer):
    start = serializers.TimeField(format='%H:%M')
    end = serializers.TimeField(format='%H:%M')
    available = serializers.BooleanField()


class ReservationSerializer(serializers.ModelSerializer):
    court_number = serializers.IntegerField(source='court.number', read_only=True)
    member_name = serializers.CharField(source='member.name', read_only=True)
    start_time = serializers.TimeField(format='%H:%M', read_only=True)
    end_time = serializers.TimeField(format='%H:%M', read_only=True)

    class Meta:
        model = CourtReservation
        fields = [
            'id', 'court', 'court_number', 'member', 'member_name', 'date',
            'start_time', 'end_time', 'paid', 'created_at',
        ]
        read_only_fields = fields


class ReservationCreateSerializer(serializers.Serializer):
    court_id = serializers.PrimaryKeyRelatedField(
        queryset=Court.objects.all(), source='court'
    )
    date = serializers.DateField()
    start_time = serializers.CharField()
    member_id = serializers.IntegerField(required=False)
