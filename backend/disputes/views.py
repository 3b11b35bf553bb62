from django.db.models import Q
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, mixins, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from common.permissions import IsAdmin, IsOwnerOrAdmin, is_admin
from .evidence import EvidenceLedger
from .models import Violation, Resolution
from .resolution import ResolutionEngine
from .serializers import (
    ViolationSerializer,
    ViolationEvidenceSerializer,
    ResolutionSerializer,
    ViolationCreateSerializer,
    ViolationBatchSerializer,
    ViolationRespondSerializer,
    ViolationReviseSerializer,
    RejectionResponseSerializer,
    EscalateSerializer,
    EvidenceCreateSerializer,
    ResolutionDecideSerializer,
)
from .workflow import ViolationWorkflow


def _payload(serializer_class, request):
    serializer = serializer_class(data=request.data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


@extend_schema(tags=['Violations'])
class ViolationViewSet(mixins.CreateModelMixin, viewsets.ReadOnlyModelViewSet):
    """
    违规申报

    - 出租方：提交、修改、回应拒绝、申请仲裁
    - 租客：接受/拒绝、申请仲裁
    - 管理员：查看全部、受理仲裁

    写操作的身份与状态校验在服务层完成，
    非订单双方调用写操作返回403而不是404。
    """
    serializer_class = ViolationSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['status', 'violation_type', 'order_item', 'order_item__order']
    lookup_value_regex = r'\d+'

    def get_queryset(self):
        user = self.request.user
        qs = Violation.objects.all()
        if not is_admin(user):
            qs = qs.filter(Q(order_item__order__customer=user) | Q(order_item__order__provider=user))
        return qs.select_related(
            'order_item', 'order_item__order', 'resolution'
        ).prefetch_related('evidence', 'status_history').order_by('-created_at')

    def _respond(self, violation, code=status.HTTP_200_OK):
        violation = self.get_queryset().get(id=violation.id)
        return Response(ViolationSerializer(violation).data, status=code)

    @extend_schema(request=ViolationCreateSerializer, responses=ViolationSerializer)
    def create(self, request, *args, **kwargs):
        """出租方提交违规申报"""
        data = _payload(ViolationCreateSerializer, request)
        violation = ViolationWorkflow.file_violation(
            request.user,
            data['order_item_id'],
            data['violation_type'],
            data.get('description'),
            data.get('penalty_percentage'),
            damage_percentage=data.get('damage_percentage'),
            evidence=data.get('evidence'),
        )
        return self._respond(violation, status.HTTP_201_CREATED)

    @extend_schema(request=ViolationBatchSerializer)
    @action(detail=False, methods=['post'])
    def batch(self, request):
        """出租方批量提交同一订单的违规申报，已有申报的商品会被跳过"""
        data = _payload(ViolationBatchSerializer, request)
        result = ViolationWorkflow.file_violations(request.user, data['order_id'], data['items'])
        return Response(
            {
                'created': ViolationSerializer(result['created'], many=True).data,
                'skipped': result['skipped'],
            },
            status=status.HTTP_201_CREATED
        )

    @extend_schema(request=ViolationRespondSerializer, responses=ViolationSerializer)
    @action(detail=True, methods=['post'])
    def respond(self, request, pk=None):
        """租客接受或拒绝违规申报"""
        data = _payload(ViolationRespondSerializer, request)
        violation = ViolationWorkflow.respond_as_customer(
            request.user,
            pk,
            data['accept'],
            notes=data.get('notes'),
            evidence=data.get('evidence'),
        )
        return self._respond(violation)

    @extend_schema(request=ViolationReviseSerializer, responses=ViolationSerializer)
    @action(detail=True, methods=['post'])
    def revise(self, request, pk=None):
        """出租方修改被拒绝的申报"""
        data = _payload(ViolationReviseSerializer, request)
        violation = ViolationWorkflow.revise_claim(
            request.user,
            pk,
            data.get('penalty_percentage'),
            new_description=data.get('description'),
            penalty_amount=data.get('penalty_amount'),
        )
        return self._respond(violation)

    @extend_schema(request=RejectionResponseSerializer, responses=ViolationSerializer)
    @action(detail=True, methods=['post'])
    def respond_to_rejection(self, request, pk=None):
        data = _payload(RejectionResponseSerializer, request)
        violation = ViolationWorkflow.respond_to_rejection(request.user, pk, data.get('response'))
        return self._respond(violation)

    @extend_schema(request=EscalateSerializer, responses=ViolationSerializer)
    @action(detail=True, methods=['post'])
    def escalate(self, request, pk=None):
        """任一方申请管理员仲裁，重复申请不报错"""
        data = _payload(EscalateSerializer, request)
        violation = ViolationWorkflow.escalate(request.user, pk, data.get('reason'))
        return self._respond(violation)

    @extend_schema(request=EvidenceCreateSerializer, responses=ViolationEvidenceSerializer(many=True))
    @action(detail=True, methods=['get', 'post'], permission_classes=[IsOwnerOrAdmin])
    def evidence(self, request, pk=None):
        """查看或追加证据（只追加，不修改不删除）"""
        if request.method == 'GET':
            violation = self.get_object()
            entries = EvidenceLedger.list_for(violation)
            return Response(ViolationEvidenceSerializer(entries, many=True).data)

        data = _payload(EvidenceCreateSerializer, request)
        entry = ViolationWorkflow.add_evidence(request.user, pk, data.get('url'), data.get('media_kind'))
        return Response(ViolationEvidenceSerializer(entry).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses=ResolutionSerializer)
    @action(detail=True, methods=['post'], permission_classes=[IsAdmin])
    def resolution(self, request, pk=None):
        """管理员受理仲裁"""
        resolution = ResolutionEngine.open_resolution(pk, request.user)
        return Response(ResolutionSerializer(resolution).data, status=status.HTTP_201_CREATED)


@extend_schema(tags=['Resolutions'])
class ResolutionViewSet(viewsets.ReadOnlyModelViewSet):
    """仲裁记录（仅管理员）"""
    serializer_class = ResolutionSerializer
    permission_classes = [IsAdmin]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['status', 'resolution_type', 'violation']
    lookup_value_regex = r'\d+'

    def get_queryset(self):
        return Resolution.objects.select_related('violation').order_by('-created_at')

    @extend_schema(request=ResolutionDecideSerializer, responses=ResolutionSerializer)
    @action(detail=True, methods=['put'])
    def decide(self, request, pk=None):
        """作出最终裁决，已裁决的仲裁返回409"""
        data = _payload(ResolutionDecideSerializer, request)
        resolution = ResolutionEngine.decide(
            pk,
            data.get('resolution_type'),
            data.get('customer_fine_amount'),
            data.get('provider_compensation_amount'),
            data.get('reason'),
            request.user,
        )
        resolution = self.get_queryset().get(id=resolution.id)
        return Response(ResolutionSerializer(resolution).data)
