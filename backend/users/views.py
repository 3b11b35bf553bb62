from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.utils.decorators import method_decorator
from rest_framework import viewsets, status, permissions, mixins
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework.decorators import action, api_view, permission_classes
from drf_spectacular.utils import extend_schema

from .models import User, BankAccount, Notification
from .serializers import (
    UserSerializer,
    UserProfileSerializer,
    BankAccountSerializer,
    NotificationSerializer,
)
from common.throttles import LoginRateThrottle
from common.utils import to_bool


@extend_schema(tags=['Authentication'])
@method_decorator(csrf_exempt, name='dispatch')
class PasswordLoginView(APIView):
    """用户名+密码登录，返回JWT。
    - 允许匿名访问
    - 租客、出租方、管理员共用同一入口
    """
    permission_classes = [permissions.AllowAny]
    authentication_classes = []
    throttle_classes = [LoginRateThrottle]

    @extend_schema(
        operation_id='password_login',
        description='Authenticate with username and password to get JWT token.',
    )
    def post(self, request):
        from .services import update_last_login, create_tokens_for_user

        username = request.data.get("username")
        password = request.data.get("password")
        if not username or not password:
            return Response({"error": "用户名与密码必填"}, status=status.HTTP_400_BAD_REQUEST)

        user = User.objects.filter(username=username, is_active=True).first()
        if user is None or not user.check_password(password):
            return Response({"error": "用户名或密码错误"}, status=status.HTTP_401_UNAUTHORIZED)

        update_last_login(user)
        refresh, access = create_tokens_for_user(user)
        return Response(
            {
                "access": access,
                "refresh": refresh,
                "user": UserSerializer(user).data,
            }
        )


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def user_profile(request):
    user = request.user
    if request.method == 'GET':
        serializer = UserProfileSerializer(user)
        return Response(serializer.data)
    serializer = UserProfileSerializer(user, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@extend_schema(tags=['Bank Accounts'])
class BankAccountViewSet(mixins.CreateModelMixin,
                         mixins.ListModelMixin,
                         mixins.RetrieveModelMixin,
                         viewsets.GenericViewSet):
    """
    收款银行账户：用户只能管理自己的账户。

    账户一经创建不允许修改或删除，已完成的退款会引用它。
    """
    serializer_class = BankAccountSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return BankAccount.objects.filter(user=self.request.user).order_by('-is_primary', '-created_at')

    def perform_create(self, serializer):
        from .services import set_primary_bank_account

        account = serializer.save(user=self.request.user)
        # 第一个账户自动成为默认收款账户
        if not BankAccount.objects.filter(user=self.request.user, is_primary=True).exists():
            set_primary_bank_account(account)

    @action(detail=True, methods=['post'])
    def set_primary(self, request, pk=None):
        from .services import set_primary_bank_account

        account = set_primary_bank_account(self.get_object())
        return Response(self.get_serializer(account).data)


@extend_schema(tags=['Notifications'])
class NotificationViewSet(viewsets.ReadOnlyModelViewSet):
    """站内通知：列表、标记已读、未读统计"""
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        qs = Notification.objects.filter(user=self.request.user)

        ntype = self.request.query_params.get('type')
        if ntype:
            qs = qs.filter(type=ntype)

        read = to_bool(self.request.query_params.get('read'))
        if read is True:
            qs = qs.filter(read_at__isnull=False)
        elif read is False:
            qs = qs.filter(read_at__isnull=True)

        return qs.order_by('-created_at')

    @action(detail=True, methods=['post'])
    def mark_read(self, request, pk=None):
        notif = self.get_object()
        notif.mark_read()
        return Response(self.get_serializer(notif).data)

    @action(detail=False, methods=['post'])
    def mark_all_read(self, request):
        updated = Notification.objects.filter(user=request.user, read_at__isnull=True).update(read_at=timezone.now())
        return Response({'updated': updated})

    @action(detail=False, methods=['get'])
    def stats(self, request):
        qs = Notification.objects.filter(user=request.user)
        return Response({
            'total': qs.count(),
            'unread_count': qs.filter(read_at__isnull=True).count(),
        })
