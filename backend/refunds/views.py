from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from common.permissions import IsAdmin, IsOwnerOrAdmin, is_admin
from common.throttles import PayoutRateThrottle
from .models import DepositRefund
from .serializers import DepositRefundSerializer, RefundProcessSerializer
from .settlement import DepositSettlement


@extend_schema(tags=['Deposit Refunds'])
class DepositRefundViewSet(viewsets.ReadOnlyModelViewSet):
    """
    押金退款单

    Permissions:
    - IsOwnerOrAdmin: 租客只能查看自己的退款单，管理员可查看全部
    - 处理、重新打开、重新计算仅限管理员

    Throttling:
    - PayoutRateThrottle: 处理退款会调用打款通道，限制提交频率
    """
    serializer_class = DepositRefundSerializer
    permission_classes = [IsOwnerOrAdmin]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['status', 'customer', 'order']
    lookup_value_regex = r'\d+'

    def get_queryset(self):
        user = self.request.user
        qs = DepositRefund.objects.all() if is_admin(user) else DepositRefund.objects.filter(customer=user)
        return qs.select_related('order', 'customer', 'refund_bank_account').order_by('-created_at')

    @extend_schema(request=RefundProcessSerializer)
    @action(detail=False, methods=['post'], permission_classes=[IsAdmin], throttle_classes=[PayoutRateThrottle])
    def process(self, request):
        """管理员处理退款：通过则打款，拒绝则置为失败

        打款通道失败时返回200，payout_succeeded 为 false，退款单置为 failed。
        """
        serializer = RefundProcessSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = DepositSettlement.process_refund(
            data['refund_id'],
            data['approve'],
            request.user,
            bank_account_id=data.get('bank_account_id'),
            external_transaction_id=data.get('external_transaction_id'),
            notes=data.get('notes'),
        )
        return Response({
            'refund': DepositRefundSerializer(result['refund']).data,
            'payout_succeeded': result['payout_succeeded'],
            'payout_error': result['payout_error'],
        })

    @extend_schema(request=None)
    @action(detail=True, methods=['post'], permission_classes=[IsAdmin])
    def reopen(self, request, pk=None):
        """重新打开已完成或失败的退款单"""
        refund = DepositSettlement.reopen(pk, request.user)
        return Response(DepositRefundSerializer(refund).data)

    @extend_schema(request=None)
    @action(detail=True, methods=['post'], permission_classes=[IsAdmin])
    def recalculate(self, request, pk=None):
        refund = self.get_object()
        refund = DepositSettlement.recalculate_refund(refund.order_id)
        return Response(DepositRefundSerializer(refund).data)

    @action(detail=False, methods=['get'], permission_classes=[IsAdmin])
    def pending_count(self, request):
        return Response({'count': DepositSettlement.pending_count()})
