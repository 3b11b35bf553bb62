from django.db import models
from django.db.models import Q
from django.core.validators import MinValueValidator, MaxValueValidator


class Violation(models.Model):
    TYPE_DAMAGED = 'damaged'
    TYPE_LATE_RETURN = 'late_return'
    TYPE_NOT_RETURNED = 'not_returned'
    TYPE_CHOICES = [
        (TYPE_DAMAGED, '损坏'),
        (TYPE_LATE_RETURN, '逾期归还'),
        (TYPE_NOT_RETURNED, '未归还'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_CUSTOMER_ACCEPTED = 'customer_accepted'
    STATUS_CUSTOMER_REJECTED = 'customer_rejected'
    STATUS_ESCALATED = 'escalated'
    STATUS_RESOLVED = 'resolved'
    STATUS_CHOICES = [
        (STATUS_PENDING, '待客户确认'),
        (STATUS_CUSTOMER_ACCEPTED, '客户已接受'),
        (STATUS_CUSTOMER_REJECTED, '客户已拒绝'),
        (STATUS_ESCALATED, '仲裁中'),
        (STATUS_RESOLVED, '已裁决'),
    ]

    # 未结：同一订单商品同时只能存在一条
    OUTSTANDING_STATUSES = (STATUS_PENDING, STATUS_CUSTOMER_REJECTED, STATUS_ESCALATED)
    # 已结：计入押金扣款
    SETTLED_STATUSES = (STATUS_CUSTOMER_ACCEPTED, STATUS_RESOLVED)

    ESCALATED_BY_CHOICES = [
        ('provider', '出租方'),
        ('customer', '租客'),
    ]

    id = models.BigAutoField(primary_key=True)
    order_item = models.ForeignKey(
        'orders.OrderItem', on_delete=models.PROTECT, related_name='violations', verbose_name='订单商品'
    )
    violation_type = models.CharField(max_length=20, choices=TYPE_CHOICES, verbose_name='违规类型')
    description = models.TextField(max_length=2000, verbose_name='违规描述')
    damage_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)], verbose_name='损坏程度(%)'
    )
    penalty_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)], verbose_name='扣款比例(%)'
    )
    penalty_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)], verbose_name='扣款金额'
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, verbose_name='状态')

    customer_notes = models.TextField(blank=True, default='', verbose_name='客户拒绝理由')
    customer_response_at = models.DateTimeField(null=True, blank=True, verbose_name='客户答复时间')
    provider_response = models.TextField(blank=True, default='', verbose_name='出租方回应')
    provider_response_at = models.DateTimeField(null=True, blank=True, verbose_name='出租方回应时间')

    provider_escalation_reason = models.TextField(blank=True, default='', verbose_name='出租方申请仲裁理由')
    customer_escalation_reason = models.TextField(blank=True, default='', verbose_name='租客申请仲裁理由')
    escalated_by = models.CharField(max_length=20, choices=ESCALATED_BY_CHOICES, blank=True, default='', verbose_name='发起仲裁方')
    escalated_at = models.DateTimeField(null=True, blank=True, verbose_name='申请仲裁时间')

    created_at = models.DateTimeField(auto_now_add=True, verbose_name='创建时间')
    updated_at = models.DateTimeField(auto_now=True, verbose_name='更新时间')

    class Meta:
        verbose_name = '违规申报'
        verbose_name_plural = '违规申报'
        indexes = [
            models.Index(fields=['status'], name='violation_status_idx'),
            models.Index(fields=['order_item', 'status'], name='violation_item_status_idx'),
            models.Index(fields=['created_at'], name='violation_created_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['order_item'],
                condition=Q(status__in=['pending', 'customer_rejected', 'escalated']),
                name='uniq_outstanding_violation_per_item',
            ),
        ]

    def __str__(self):
        return f'违规#{self.id} 商品:{self.order_item_id} {self.get_violation_type_display()} {self.status}'

    @property
    def order(self):
        return self.order_item.order

    @property
    def is_outstanding(self) -> bool:
        return self.status in self.OUTSTANDING_STATUSES


class ViolationEvidence(models.Model):
    UPLOADER_CHOICES = [
        ('provider', '出租方'),
        ('customer', '租客'),
    ]
    MEDIA_KIND_CHOICES = [
        ('image', '图片'),
        ('video', '视频'),
    ]

    id = models.BigAutoField(primary_key=True)
    violation = models.ForeignKey(Violation, on_delete=models.CASCADE, related_name='evidence', verbose_name='违规申报')
    url = models.URLField(max_length=500, verbose_name='文件地址')
    uploaded_by = models.CharField(max_length=20, choices=UPLOADER_CHOICES, verbose_name='上传方')
    media_kind = models.CharField(max_length=10, choices=MEDIA_KIND_CHOICES, null=True, blank=True, verbose_name='媒体类型')
    uploaded_at = models.DateTimeField(auto_now_add=True, verbose_name='上传时间')

    class Meta:
        verbose_name = '违规证据'
        verbose_name_plural = '违规证据'
        ordering = ['uploaded_at', 'id']
        indexes = [
            models.Index(fields=['violation', 'uploaded_at'], name='evidence_violation_time_idx'),
        ]

    def __str__(self):
        return f'证据#{self.id} 违规:{self.violation_id} {self.uploaded_by}'


class ViolationStatusHistory(models.Model):
    """违规申报状态变更历史"""
    id = models.BigAutoField(primary_key=True)
    violation = models.ForeignKey(
        Violation,
        on_delete=models.CASCADE,
        related_name='status_history',
        verbose_name='违规申报'
    )
    from_status = models.CharField(max_length=20, verbose_name='原状态')
    to_status = models.CharField(max_length=20, verbose_name='新状态')
    operator = models.ForeignKey(
        'users.User',
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        verbose_name='操作人'
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name='创建时间')
    note = models.TextField(blank=True, default='', verbose_name='备注')

    class Meta:
        verbose_name = '违规状态历史'
        verbose_name_plural = '违规状态历史'
        indexes = [
            models.Index(fields=['violation', 'created_at'], name='vhist_violation_created_idx'),
        ]

    def __str__(self):
        return f'违规#{self.violation_id} {self.from_status} -> {self.to_status}'


class Resolution(models.Model):
    TYPE_UPHOLD = 'uphold_claim'
    TYPE_REJECT = 'reject_claim'
    TYPE_COMPROMISE = 'compromise'
    TYPE_CHOICES = [
        (TYPE_UPHOLD, '支持出租方'),
        (TYPE_REJECT, '驳回申报'),
        (TYPE_COMPROMISE, '折中处理'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_UNDER_REVIEW = 'under_review'
    STATUS_COMPLETED = 'completed'
    STATUS_CHOICES = [
        (STATUS_PENDING, '待处理'),
        (STATUS_UNDER_REVIEW, '审理中'),
        (STATUS_COMPLETED, '已裁决'),
    ]

    id = models.BigAutoField(primary_key=True)
    violation = models.OneToOneField(Violation, on_delete=models.PROTECT, related_name='resolution', verbose_name='违规申报')
    customer_fine_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)], verbose_name='租客罚金'
    )
    provider_compensation_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)], verbose_name='出租方补偿'
    )
    resolution_type = models.CharField(max_length=20, choices=TYPE_CHOICES, blank=True, default='', verbose_name='裁决类型')
    reason = models.TextField(max_length=3000, blank=True, default='', verbose_name='裁决理由')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, verbose_name='状态')
    opened_by = models.ForeignKey(
        'users.User', null=True, blank=True, on_delete=models.SET_NULL,
        related_name='opened_resolutions', verbose_name='受理管理员'
    )
    processed_by = models.ForeignKey(
        'users.User', null=True, blank=True, on_delete=models.SET_NULL,
        related_name='processed_resolutions', verbose_name='裁决管理员'
    )
    processed_at = models.DateTimeField(null=True, blank=True, verbose_name='裁决时间')
    created_at = models.DateTimeField(auto_now_add=True, verbose_name='创建时间')

    class Meta:
        verbose_name = '仲裁结果'
        verbose_name_plural = '仲裁结果'
        indexes = [
            models.Index(fields=['status'], name='resolution_status_idx'),
            models.Index(fields=['created_at'], name='resolution_created_idx'),
        ]

    def __str__(self):
        return f'仲裁#{self.id} 违规:{self.violation_id} {self.status}'

    @property
    def is_completed(self) -> bool:
        return self.status == self.STATUS_COMPLETED
