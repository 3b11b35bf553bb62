import time
import random
from decimal import Decimal
from django.db import models
from django.core.validators import MinValueValidator


def generate_order_number():
    return f"{int(time.time())}{random.randint(100000, 999999)}"


class Order(models.Model):
    STATUS_CHOICES = [
        ('pending', '待确认'),
        ('approved', '已确认'),
        ('in_use', '租用中'),
        ('returning', '归还中'),
        ('returned_with_issue', '归还有争议'),
        ('returned', '已归还'),
        ('cancelled', '已取消'),
    ]

    id = models.BigAutoField(primary_key=True)
    order_number = models.CharField(max_length=100, unique=True, default=generate_order_number, verbose_name='订单号')
    customer = models.ForeignKey('users.User', on_delete=models.PROTECT, related_name='rental_orders', verbose_name='租客')
    provider = models.ForeignKey('users.User', on_delete=models.PROTECT, related_name='provided_orders', verbose_name='出租方')
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='pending', verbose_name='订单状态')
    note = models.TextField(blank=True, default='', verbose_name='备注')
    created_at = models.DateTimeField(auto_now_add=True, verbose_name='创建时间')
    updated_at = models.DateTimeField(auto_now=True, verbose_name='更新时间')

    class Meta:
        verbose_name = '租赁订单'
        verbose_name_plural = '租赁订单'
        indexes = [
            models.Index(fields=['status'], name='order_status_idx'),
            models.Index(fields=['created_at'], name='order_created_idx'),
        ]

    def __str__(self):
        return self.order_number

    @property
    def total_deposit(self) -> Decimal:
        """订单押金合计 = Σ 单件押金 × 数量"""
        return sum((item.deposit_amount for item in self.items.all()), Decimal('0'))


class OrderItem(models.Model):
    id = models.BigAutoField(primary_key=True)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items', verbose_name='订单')
    product_name = models.CharField(max_length=200, verbose_name='商品名称')
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)], verbose_name='数量')
    deposit_per_unit = models.DecimalField(
        max_digits=12, decimal_places=2, validators=[MinValueValidator(0)], verbose_name='单件押金'
    )
    daily_rate = models.DecimalField(
        max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)], verbose_name='日租金'
    )
    rental_days = models.PositiveIntegerField(default=1, verbose_name='租期（天）')

    class Meta:
        verbose_name = '订单商品'
        verbose_name_plural = '订单商品'

    def __str__(self):
        return f'{self.product_name} x{self.quantity}'

    @property
    def deposit_amount(self) -> Decimal:
        return self.deposit_per_unit * self.quantity


class OrderStatusHistory(models.Model):
    """订单状态变更历史"""
    id = models.BigAutoField(primary_key=True)
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='status_history',
        verbose_name='订单'
    )
    from_status = models.CharField(max_length=30, verbose_name='原状态')
    to_status = models.CharField(max_length=30, verbose_name='新状态')
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
        verbose_name = '订单状态历史'
        verbose_name_plural = '订单状态历史'
        indexes = [
            models.Index(fields=['order', 'created_at'], name='orderhist_order_created_idx'),
            models.Index(fields=['from_status', 'to_status'], name='orderhist_transition_idx'),
        ]

    def __str__(self):
        return f'订单#{self.order_id} {self.from_status} -> {self.to_status}'
