from django.db import models
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.utils import timezone


class UserManager(BaseUserManager):
    def create_user(self, username=None, password=None, **extra_fields):
        if not username:
            raise ValueError("Username must be set")

        user = self.model(username=username, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, username=None, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("role", "admin")
        return self.create_user(username, password, **extra_fields)


class User(AbstractUser):
    id = models.BigAutoField(primary_key=True)
    phone = models.CharField(
        max_length=20, blank=True, null=True, verbose_name="手机号"
    )

    # 租赁平台角色：租客、出租方、管理员
    ROLE_CHOICES = [
        ('customer', '租客'),
        ('provider', '出租方'),
        ('admin', '管理员'),
    ]
    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default='customer',
        verbose_name='用户角色'
    )

    last_login_at = models.DateTimeField(null=True, blank=True, verbose_name='最后登录时间')

    objects = UserManager()

    USERNAME_FIELD = "username"
    REQUIRED_FIELDS = []

    def __str__(self):
        return self.username


class BankAccount(models.Model):
    """收款银行账户 - 押金退款的打款目标"""
    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bank_accounts', verbose_name='用户')
    bank_name = models.CharField(max_length=100, verbose_name='开户银行')
    account_number = models.CharField(max_length=50, verbose_name='银行账号')
    account_holder_name = models.CharField(max_length=100, verbose_name='户名')
    routing_number = models.CharField(max_length=50, blank=True, default='', verbose_name='联行号')
    is_primary = models.BooleanField(default=False, verbose_name='默认收款账户')
    created_at = models.DateTimeField(auto_now_add=True, verbose_name='创建时间')

    class Meta:
        verbose_name = '银行账户'
        verbose_name_plural = '银行账户'
        indexes = [
            models.Index(fields=['user', 'is_primary'], name='bankacct_user_primary_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['user'],
                condition=models.Q(is_primary=True),
                name='uniq_primary_bank_account_per_user',
            ),
        ]

    def __str__(self):
        return f'{self.bank_name} {self.masked_account_number}'

    @property
    def masked_account_number(self) -> str:
        tail = self.account_number[-4:]
        return f'****{tail}'


class Notification(models.Model):
    STATUS_CHOICES = [
        ('pending', '待发送'),
        ('sent', '已发送'),
        ('failed', '发送失败'),
    ]

    TYPE_CHOICES = [
        ('order', '订单'),
        ('violation', '违规申报'),
        ('resolution', '仲裁'),
        ('refund', '押金退款'),
        ('system', '系统'),
    ]

    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey('users.User', on_delete=models.CASCADE, related_name='notifications', verbose_name='用户')
    title = models.CharField(max_length=100, verbose_name='标题')
    content = models.TextField(verbose_name='内容')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='system', verbose_name='类型')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', verbose_name='状态')
    metadata = models.JSONField(default=dict, blank=True, verbose_name='元数据')
    created_at = models.DateTimeField(auto_now_add=True, verbose_name='创建时间')
    sent_at = models.DateTimeField(null=True, blank=True, verbose_name='发送时间')
    read_at = models.DateTimeField(null=True, blank=True, verbose_name='阅读时间')

    class Meta:
        verbose_name = '通知'
        verbose_name_plural = '通知'
        indexes = [
            models.Index(fields=['user', 'status'], name='notif_user_status_idx'),
            models.Index(fields=['type'], name='notif_type_idx'),
            models.Index(fields=['created_at'], name='notif_created_idx'),
            models.Index(fields=['read_at'], name='notif_read_idx'),
        ]

    def mark_read(self):
        if self.read_at:
            return
        self.read_at = timezone.now()
        self.save(update_fields=['read_at'])

    @property
    def is_read(self) -> bool:
        return bool(self.read_at)
