from rest_framework import serializers
from .models import User, BankAccount, Notification


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'phone',
            'email',
            'role',
            'is_staff',
            'date_joined',
            'last_login_at',
        ]
        read_only_fields = ['id', 'role', 'is_staff', 'date_joined', 'last_login_at']


class UserProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'phone', 'email', 'role']
        read_only_fields = ['id', 'username', 'role']


class BankAccountSerializer(serializers.ModelSerializer):
    """收款银行账户序列化器，列表中仅展示脱敏账号。"""
    masked_account_number = serializers.CharField(read_only=True)

    class Meta:
        model = BankAccount
        fields = [
            'id',
            'bank_name',
            'account_number',
            'masked_account_number',
            'account_holder_name',
            'routing_number',
            'is_primary',
            'created_at',
        ]
        read_only_fields = ['id', 'is_primary', 'created_at']
        extra_kwargs = {'account_number': {'write_only': True}}


class NotificationSerializer(serializers.ModelSerializer):
    """通知序列化器，用于站内信中心。"""
    is_read = serializers.SerializerMethodField()
    type_display = serializers.CharField(source='get_type_display', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Notification
        fields = [
            'id',
            'title',
            'content',
            'type',
            'type_display',
            'status',
            'status_display',
            'metadata',
            'created_at',
            'sent_at',
            'read_at',
            'is_read',
        ]
        read_only_fields = fields

    def get_is_read(self, obj) -> bool:
        return bool(getattr(obj, 'read_at', None))
