import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import refunds.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('orders', '0001_initial'),
        ('users', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='DepositRefund',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('refund_code', models.CharField(default=refunds.models.generate_refund_code, max_length=20, unique=True, verbose_name='退款单号')),
                ('original_deposit_amount', models.DecimalField(decimal_places=2, max_digits=14, validators=[django.core.validators.MinValueValidator(0)], verbose_name='原始押金')),
                ('total_penalty_amount', models.DecimalField(decimal_places=2, default=0, max_digits=14, validators=[django.core.validators.MinValueValidator(0)], verbose_name='扣款合计')),
                ('refund_amount', models.DecimalField(decimal_places=2, default=0, max_digits=14, validators=[django.core.validators.MinValueValidator(0)], verbose_name='应退金额')),
                ('status', models.CharField(choices=[('initiated', '待处理'), ('completed', '已退款'), ('failed', '退款失败')], default='initiated', max_length=20, verbose_name='状态')),
                ('notes', models.TextField(blank=True, default='', verbose_name='备注')),
                ('external_transaction_id', models.CharField(blank=True, default='', max_length=100, verbose_name='外部交易号')),
                ('payout_idempotency_key', models.CharField(default=refunds.models.generate_idempotency_key, max_length=64, verbose_name='打款幂等键')),
                ('logs', models.JSONField(blank=True, default=list, verbose_name='处理日志')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='创建时间')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='更新时间')),
                ('processed_at', models.DateTimeField(blank=True, null=True, verbose_name='处理时间')),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='deposit_refunds', to=settings.AUTH_USER_MODEL, verbose_name='租客')),
                ('order', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='deposit_refund', to='orders.order', verbose_name='订单')),
                ('processed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='processed_refunds', to=settings.AUTH_USER_MODEL, verbose_name='处理人')),
                ('refund_bank_account', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='deposit_refunds', to='users.bankaccount', verbose_name='收款账户')),
            ],
            options={
                'verbose_name': '押金退款',
                'verbose_name_plural': '押金退款',
                'indexes': [
                    models.Index(fields=['status'], name='refund_status_idx'),
                    models.Index(fields=['created_at'], name='refund_created_idx'),
                ],
            },
        ),
    ]
