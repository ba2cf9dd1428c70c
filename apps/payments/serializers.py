from rest_framework import serializers

from core.constants import PAYMENT_TYPE_CHOICES
from .models import PaymentOrder


class CreateOrderSerializer(serializers.Serializer):
    contract_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    type = serializers.ChoiceField(choices=PAYMENT_TYPE_CHOICES, default='milestone')
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')


class MilestoneOrderSerializer(serializers.Serializer):
    milestone_index = serializers.IntegerField(min_value=0)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True, default=None)


class VerifyPaymentSerializer(serializers.Serializer):
    tx_ref = serializers.CharField(max_length=100)


class WithdrawSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    bank_details = serializers.DictField(required=False, default=dict)


class PaymentOrderSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentOrder
        fields = [
            'id', 'contract', 'amount', 'currency', 'payment_type', 'milestone_index', 'description',
            'tx_ref', 'external_order_id', 'external_tx_id', 'status', 'created_at', 'updated_at',
        ]
        read_only_fields = fields
