from rest_framework import serializers

from common.serializers import SecureCharField, MoneyField
from .models import Violation, ViolationEvidence, ViolationStatusHistory, Resolution


class ViolationEvidenceSerializer(serializers.ModelSerializer):
    class Meta:
        model = ViolationEvidence
        fields = ['id', 'url', 'uploaded_by', 'media_kind', 'uploaded_at']
        read_only_fields = fields


class ViolationStatusHistorySerializer(serializers.ModelSerializer):
    operator_username = serializers.CharField(source='operator.username', read_only=True, default=None)

    class Meta:
        model = ViolationStatusHistory
        fields = ['id', 'from_status', 'to_status', 'operator', 'operator_username', 'note', 'created_at']


class ResolutionSerializer(serializers.ModelSerializer):
    customer_fine_amount = MoneyField(read_only=True)
    provider_compensation_amount = MoneyField(read_only=True)
    resolution_type_label = serializers.CharField(source='get_resolution_type_display', read_only=True)
    status_label = serializers.CharField(source='get_status_display', read_only=True)
    violation_status = serializers.CharField(source='violation.status', read_only=True)
    penalty_amount = MoneyField(source='violation.penalty_amount', read_only=True)

    class Meta:
        model = Resolution
        fields = [
            'id',
            'violation',
            'violation_status',
            'penalty_amount',
            'resolution_type',
            'resolution_type_label',
            'customer_fine_amount',
            'provider_compensation_amount',
            'reason',
            'status',
            'status_label',
            'opened_by',
            'processed_by',
            'processed_at',
            'created_at',
        ]
        read_only_fields = fields


class ViolationSerializer(serializers.ModelSerializer):
    evidence = ViolationEvidenceSerializer(many=True, read_only=True)
    status_history = ViolationStatusHistorySerializer(many=True, read_only=True)
    resolution = ResolutionSerializer(read_only=True)
    penalty_amount = MoneyField(read_only=True)
    order_id = serializers.IntegerField(source='order_item.order_id', read_only=True)
    order_number = serializers.CharField(source='order_item.order.order_number', read_only=True)
    product_name = serializers.CharField(source='order_item.product_name', read_only=True)
    violation_type_label = serializers.CharField(source='get_violation_type_display', read_only=True)
    status_label = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Violation
        fields = [
            'id',
            'order_item',
            'order_id',
            'order_number',
            'product_name',
            'violation_type',
            'violation_type_label',
            'description',
            'damage_percentage',
            'penalty_percentage',
            'penalty_amount',
            'status',
            'status_label',
            'customer_notes',
            'customer_response_at',
            'provider_response',
            'provider_response_at',
            'provider_escalation_reason',
            'customer_escalation_reason',
            'escalated_by',
            'escalated_at',
            'evidence',
            'status_history',
            'resolution',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


# 以下为请求体序列化器：只做类型整理与HTML转义，
# 业务校验（身份、状态、取值范围）统一在服务层按顺序完成。

class EvidenceItemSerializer(serializers.Serializer):
    url = serializers.CharField(max_length=1000)
    media_kind = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ViolationCreateSerializer(serializers.Serializer):
    order_item_id = serializers.IntegerField()
    violation_type = serializers.CharField()
    description = SecureCharField(required=False, allow_blank=True, default='')
    penalty_percentage = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    damage_percentage = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    evidence = EvidenceItemSerializer(many=True, required=False)


class ViolationBatchSerializer(serializers.Serializer):
    order_id = serializers.IntegerField()
    items = ViolationCreateSerializer(many=True, allow_empty=True)


class ViolationRespondSerializer(serializers.Serializer):
    accept = serializers.BooleanField()
    notes = SecureCharField(required=False, allow_blank=True, allow_null=True)
    evidence = EvidenceItemSerializer(many=True, required=False)


class ViolationReviseSerializer(serializers.Serializer):
    penalty_percentage = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    description = SecureCharField(required=False, allow_blank=True, allow_null=True)
    penalty_amount = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class RejectionResponseSerializer(serializers.Serializer):
    response = SecureCharField(required=False, allow_blank=True, default='')


class EscalateSerializer(serializers.Serializer):
    reason = SecureCharField(required=False, allow_blank=True, default='')


class EvidenceCreateSerializer(serializers.Serializer):
    url = serializers.CharField(required=False, allow_blank=True, default='')
    media_kind = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ResolutionDecideSerializer(serializers.Serializer):
    resolution_type = serializers.CharField(required=False, allow_blank=True, default='')
    customer_fine_amount = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    provider_compensation_amount = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    reason = SecureCharField(required=False, allow_blank=True, default='')
