"""
Custom serializer fields for enhanced input validation and security.

This module provides:
- SecureCharField: Automatically escapes HTML in character fields
- MoneyField: Non-negative currency amount with two decimal places
"""

from rest_framework import serializers
from django.utils.html import escape


class SecureCharField(serializers.CharField):
    """
    A CharField that automatically escapes HTML content to prevent XSS attacks.

    Free text written by one party (claim descriptions, rejection notes,
    escalation reasons) is shown to the other party and to admins.

    Example:
        class ViolationCreateSerializer(serializers.Serializer):
            description = SecureCharField(max_length=2000)
    """

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        if value:
            value = escape(value)
        return value


class MoneyField(serializers.DecimalField):
    """
    A DecimalField for currency amounts.

    Ensures:
    - Amount is not negative
    - Amount has at most 2 decimal places

    Example:
        class ResolutionDecideSerializer(serializers.Serializer):
            customer_fine_amount = MoneyField(required=False, allow_null=True)
    """

    def __init__(self, **kwargs):
        kwargs.setdefault('max_digits', 12)
        kwargs.setdefault('decimal_places', 2)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        if value is not None and value < 0:
            raise serializers.ValidationError('金额不能为负数')
        return value
