from rest_framework import serializers

from common.serializers import MoneyField
from users.serializers import BankAccountSerializer
from .models import DepositRefund


class DepositRefundSerializer(serializers.ModelSerializer):
    original_deposit_amount = MoneyField(max_digits=14, read_only=True)
    total_penalty_amount = MoneyField(max_digits=14, read_only=True)
    refund_amount = MoneyField(max_digits=14, read_only=True)
    order_number = serializers.CharField(source='order.order_number', read_only=True)
    customer_username = serializers.CharField(source='customer.username', read_only=True)
    status_label = serializers.CharField(source='get_status_display', read_only=True)
    refund_bank_account = BankAccountSerializer(read_only=True)

    class Meta:
        model = DepositRefund
        fields = [
            'id',
            'refund_code',
            'order',
            'order_number',
            'customer',
            'customer_username',
            'original_deposit_amount',
            'total_penalty_amount',
            'refund_amount',
            'status',
            'status_label',
            'refund_bank_account',
            'processed_by',
            'processed_at',
            'notes',
            'external_transaction_id',
            'logs',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class RefundProcessSerializer(serializers.Serializer):
    refund_id = serializers.IntegerField()
    approve = serializers.BooleanField()
    bank_account_id = serializers.IntegerField(required=False, allow_null=True)
    external_transaction_id = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=100)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
