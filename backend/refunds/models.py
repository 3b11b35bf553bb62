import uuid
import random
import string
from django.db import models
from django.core.validators import MinValueValidator
from django.utils import timezone


def generate_refund_code():
    return 'RF-' + ''.join(random.choices(string.ascii_uppercase + string.digits, k=8))


def generate_idempotency_key():
    return uuid.uuid4().hex


class DepositRefund(models.Model):
    STATUS_INITIATED = 'initiated'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'
    STATUS_CHOICES = [
        (STATUS_INITIATED, '待处理'),
        (STATUS_COMPLETED, '已退款'),
        (STATUS_FAILED, '退款失败'),
    ]

    id = models.BigAutoField(primary_key=True)
    refund_code = models.CharField(max_length=20, unique=True, default=generate_refund_code, verbose_name='退款单号')
    order = models.OneToOneField('orders.Order', on_delete=models.PROTECT, related_name='deposit_refund', verbose_name='订单')
    customer = models.ForeignKey('users.User', on_delete=models.PROTECT, related_name='deposit_refunds', verbose_name='租客')
    original_deposit_amount = models.DecimalField(
        max_digits=14, decimal_places=2, validators=[MinValueValidator(0)], verbose_name='原始押金'
    )
    total_penalty_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=0, validators=[MinValueValidator(0)], verbose_name='扣款合计'
    )
    refund_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=0, validators=[MinValueValidator(0)], verbose_name='应退金额'
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_INITIATED, verbose_name='状态')
    refund_bank_account = models.ForeignKey(
        'users.BankAccount', null=True, blank=True, on_delete=models.SET_NULL,
        related_name='deposit_refunds', verbose_name='收款账户'
    )
    processed_by = models.ForeignKey(
        'users.User', null=True, blank=True, on_delete=models.SET_NULL,
        related_name='processed_refunds', verbose_name='处理人'
    )
    notes = models.TextField(blank=True, default='', verbose_name='备注')
    external_transaction_id = models.CharField(max_length=100, blank=True, default='', verbose_name='外部交易号')
    payout_idempotency_key = models.CharField(max_length=64, default=generate_idempotency_key, verbose_name='打款幂等键')
    logs = models.JSONField(default=list, blank=True, verbose_name='处理日志')
    created_at = models.DateTimeField(auto_now_add=True, verbose_name='创建时间')
    updated_at = models.DateTimeField(auto_now=True, verbose_name='更新时间')
    processed_at = models.DateTimeField(null=True, blank=True, verbose_name='处理时间')

    class Meta:
        verbose_name = '押金退款'
        verbose_name_plural = '押金退款'
        indexes = [
            models.Index(fields=['status'], name='refund_status_idx'),
            models.Index(fields=['created_at'], name='refund_created_idx'),
        ]

    def __str__(self):
        return f'{self.refund_code} 订单:{self.order_id} 状态:{self.status}'

    def add_log(self, event: str, detail: str = '', **extra):
        entry = {'t': timezone.now().isoformat(), 'event': event, 'detail': detail}
        entry.update({k: str(v) for k, v in extra.items()})
        self.logs = list(self.logs or []) + [entry]
