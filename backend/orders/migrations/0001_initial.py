import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import orders.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('order_number', models.CharField(default=orders.models.generate_order_number, max_length=100, unique=True, verbose_name='订单号')),
                ('status', models.CharField(choices=[('pending', '待确认'), ('approved', '已确认'), ('in_use', '租用中'), ('returning', '归还中'), ('returned_with_issue', '归还有争议'), ('returned', '已归还'), ('cancelled', '已取消')], default='pending', max_length=30, verbose_name='订单状态')),
                ('note', models.TextField(blank=True, default='', verbose_name='备注')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='创建时间')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='更新时间')),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='rental_orders', to=settings.AUTH_USER_MODEL, verbose_name='租客')),
                ('provider', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='provided_orders', to=settings.AUTH_USER_MODEL, verbose_name='出租方')),
            ],
            options={
                'verbose_name': '租赁订单',
                'verbose_name_plural': '租赁订单',
                'indexes': [
                    models.Index(fields=['status'], name='order_status_idx'),
                    models.Index(fields=['created_at'], name='order_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OrderItem',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('product_name', models.CharField(max_length=200, verbose_name='商品名称')),
                ('quantity', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)], verbose_name='数量')),
                ('deposit_per_unit', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(0)], verbose_name='单件押金')),
                ('daily_rate', models.DecimalField(decimal_places=2, default=0, max_digits=12, validators=[django.core.validators.MinValueValidator(0)], verbose_name='日租金')),
                ('rental_days', models.PositiveIntegerField(default=1, verbose_name='租期（天）')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='orders.order', verbose_name='订单')),
            ],
            options={
                'verbose_name': '订单商品',
                'verbose_name_plural': '订单商品',
            },
        ),
        migrations.CreateModel(
            name='OrderStatusHistory',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('from_status', models.CharField(max_length=30, verbose_name='原状态')),
                ('to_status', models.CharField(max_length=30, verbose_name='新状态')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='创建时间')),
                ('note', models.TextField(blank=True, default='', verbose_name='备注')),
                ('operator', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL, verbose_name='操作人')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='status_history', to='orders.order', verbose_name='订单')),
            ],
            options={
                'verbose_name': '订单状态历史',
                'verbose_name_plural': '订单状态历史',
                'indexes': [
                    models.Index(fields=['order', 'created_at'], name='orderhist_order_created_idx'),
                    models.Index(fields=['from_status', 'to_status'], name='orderhist_transition_idx'),
                ],
            },
        ),
    ]
