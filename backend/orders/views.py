from django.db.models import Q
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from .models import Order
from .serializers import OrderSerializer
from . import services
from common.permissions import IsOwnerOrAdmin, is_admin
from common.utils import parse_datetime


@extend_schema(tags=['Orders'])
class OrderViewSet(viewsets.ReadOnlyModelViewSet):
    """
    租赁订单（只读）与归还流程操作。

    Permissions:
    - IsOwnerOrAdmin: 租客与出租方只能查看自己参与的订单，管理员可查看全部
    """
    serializer_class = OrderSerializer
    permission_classes = [IsOwnerOrAdmin]

    def get_queryset(self):
        user = self.request.user
        if is_admin(user):
            qs = Order.objects.all()
        else:
            qs = Order.objects.filter(Q(customer=user) | Q(provider=user))

        qs = qs.select_related('customer', 'provider').prefetch_related('items', 'status_history')

        # 订单状态筛选，支持逗号分隔多个状态
        status_filter = self.request.query_params.get('status')
        if status_filter:
            qs = qs.filter(status__in=[s.strip() for s in status_filter.split(',') if s.strip()])

        order_number = self.request.query_params.get('order_number')
        if order_number:
            qs = qs.filter(order_number__icontains=order_number)

        created_after = parse_datetime(self.request.query_params.get('created_after'))
        if created_after:
            qs = qs.filter(created_at__gte=created_after)
        created_before = parse_datetime(self.request.query_params.get('created_before'))
        if created_before:
            qs = qs.filter(created_at__lte=created_before)

        return qs.order_by('-created_at')

    @action(detail=True, methods=['patch'])
    def start_return(self, request, pk=None):
        """租客发起归还：in_use -> returning"""
        order = self.get_object()
        order = services.start_return(order.id, request.user, note=str(request.data.get('note', '') or ''))
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=['patch'])
    def confirm_return(self, request, pk=None):
        """出租方验收无误：returning -> returned，自动生成押金退款单"""
        order = self.get_object()
        order = services.confirm_return(order.id, request.user, note=str(request.data.get('note', '') or ''))
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=['patch'])
    def cancel(self, request, pk=None):
        """取消订单：仅限交付前"""
        order = self.get_object()
        order = services.cancel_order(order.id, request.user, note=str(request.data.get('note', '') or ''))
        return Response(self.get_serializer(order).data)
