"""
Billing serializers for the Club Manager API.
"""
from rest_framework import serializers

from apps.billing.models import Payment


class BillingSettingsSerializer(serializers.Serializer):
    base_fee = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class GenerateDuesSerializer(serializers.Serializer):
    year = serializers.IntegerField(min_value=2000, max_value=2100)
    month = serializers.IntegerField(min_value=1, max_value=12)


class PaymentSerializer(serializers.ModelSerializer):
    member_name = serializers.CharField(source='member.name', read_only=True)

    class Meta:
        model = Payment
        fields = [
            'id', 'member', 'member_name', 'amount', 'status', 'payment_type',
            'due', 'enrollment', 'reservation', 'card_last4', 'token',
            'created_at', 'paid_at',
        ]
        read_only_fields = fields


class PaymentCreateSerializer(serializers.Serializer):
    payment_type = serializers.ChoiceField(choices=Payment.TYPE_CHOICES)
    target_id = serializers.IntegerField(min_value=1)
    card_last4 = serializers.RegexField(
        regex=r'^\d{4}$',
        error_messages={'invalid': 'Send the last 4 digits of the card.'},
    )
