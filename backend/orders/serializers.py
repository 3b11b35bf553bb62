from rest_framework import serializers
from .models import Order, OrderItem, OrderStatusHistory


class OrderItemSerializer(serializers.ModelSerializer):
    deposit_amount = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            'id',
            'product_name',
            'quantity',
            'deposit_per_unit',
            'deposit_amount',
            'daily_rate',
            'rental_days',
        ]


class OrderStatusHistorySerializer(serializers.ModelSerializer):
    operator_username = serializers.CharField(source='operator.username', read_only=True, default=None)

    class Meta:
        model = OrderStatusHistory
        fields = ['id', 'from_status', 'to_status', 'operator', 'operator_username', 'note', 'created_at']


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    status_history = OrderStatusHistorySerializer(many=True, read_only=True)
    customer_username = serializers.CharField(source='customer.username', read_only=True)
    provider_username = serializers.CharField(source='provider.username', read_only=True)
    status_label = serializers.CharField(source='get_status_display', read_only=True)
    total_deposit = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = Order
        fields = [
            'id',
            'order_number',
            'customer',
            'customer_username',
            'provider',
            'provider_username',
            'status',
            'status_label',
            'total_deposit',
            'items',
            'status_history',
            'note',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields
