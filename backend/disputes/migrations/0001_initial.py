import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('orders', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Violation',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('violation_type', models.CharField(choices=[('damaged', '损坏'), ('late_return', '逾期归还'), ('not_returned', '未归还')], max_length=20, verbose_name='违规类型')),
                ('description', models.TextField(max_length=2000, verbose_name='违规描述')),
                ('damage_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)], verbose_name='损坏程度(%)')),
                ('penalty_percentage', models.DecimalField(decimal_places=2, default=0, max_digits=5, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)], verbose_name='扣款比例(%)')),
                ('penalty_amount', models.DecimalField(decimal_places=2, default=0, max_digits=12, validators=[django.core.validators.MinValueValidator(0)], verbose_name='扣款金额')),
                ('status', models.CharField(choices=[('pending', '待客户确认'), ('customer_accepted', '客户已接受'), ('customer_rejected', '客户已拒绝'), ('escalated', '仲裁中'), ('resolved', '已裁决')], default='pending', max_length=20, verbose_name='状态')),
                ('customer_notes', models.TextField(blank=True, default='', verbose_name='客户拒绝理由')),
                ('customer_response_at', models.DateTimeField(blank=True, null=True, verbose_name='客户答复时间')),
                ('provider_response', models.TextField(blank=True, default='', verbose_name='出租方回应')),
                ('provider_response_at', models.DateTimeField(blank=True, null=True, verbose_name='出租方回应时间')),
                ('provider_escalation_reason', models.TextField(blank=True, default='', verbose_name='出租方申请仲裁理由')),
                ('customer_escalation_reason', models.TextField(blank=True, default='', verbose_name='租客申请仲裁理由')),
                ('escalated_by', models.CharField(blank=True, choices=[('provider', '出租方'), ('customer', '租客')], default='', max_length=20, verbose_name='发起仲裁方')),
                ('escalated_at', models.DateTimeField(blank=True, null=True, verbose_name='申请仲裁时间')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='创建时间')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='更新时间')),
                ('order_item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='violations', to='orders.orderitem', verbose_name='订单商品')),
            ],
            options={
                'verbose_name': '违规申报',
                'verbose_name_plural': '违规申报',
                'indexes': [
                    models.Index(fields=['status'], name='violation_status_idx'),
                    models.Index(fields=['order_item', 'status'], name='violation_item_status_idx'),
                    models.Index(fields=['created_at'], name='violation_created_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status__in', ['pending', 'customer_rejected', 'escalated'])), fields=('order_item',), name='uniq_outstanding_violation_per_item'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ViolationEvidence',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('url', models.URLField(max_length=500, verbose_name='文件地址')),
                ('uploaded_by', models.CharField(choices=[('provider', '出租方'), ('customer', '租客')], max_length=20, verbose_name='上传方')),
                ('media_kind', models.CharField(blank=True, choices=[('image', '图片'), ('video', '视频')], max_length=10, null=True, verbose_name='媒体类型')),
                ('uploaded_at', models.DateTimeField(auto_now_add=True, verbose_name='上传时间')),
                ('violation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='evidence', to='disputes.violation', verbose_name='违规申报')),
            ],
            options={
                'verbose_name': '违规证据',
                'verbose_name_plural': '违规证据',
                'ordering': ['uploaded_at', 'id'],
                'indexes': [
                    models.Index(fields=['violation', 'uploaded_at'], name='evidence_violation_time_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ViolationStatusHistory',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('from_status', models.CharField(max_length=20, verbose_name='原状态')),
                ('to_status', models.CharField(max_length=20, verbose_name='新状态')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='创建时间')),
                ('note', models.TextField(blank=True, default='', verbose_name='备注')),
                ('operator', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL, verbose_name='操作人')),
                ('violation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='status_history', to='disputes.violation', verbose_name='违规申报')),
            ],
            options={
                'verbose_name': '违规状态历史',
                'verbose_name_plural': '违规状态历史',
                'indexes': [
                    models.Index(fields=['violation', 'created_at'], name='vhist_violation_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Resolution',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('customer_fine_amount', models.DecimalField(decimal_places=2, default=0, max_digits=12, validators=[django.core.validators.MinValueValidator(0)], verbose_name='租客罚金')),
                ('provider_compensation_amount', models.DecimalField(decimal_places=2, default=0, max_digits=12, validators=[django.core.validators.MinValueValidator(0)], verbose_name='出租方补偿')),
                ('resolution_type', models.CharField(blank=True, choices=[('uphold_claim', '支持出租方'), ('reject_claim', '驳回申报'), ('compromise', '折中处理')], default='', max_length=20, verbose_name='裁决类型')),
                ('reason', models.TextField(blank=True, default='', max_length=3000, verbose_name='裁决理由')),
                ('status', models.CharField(choices=[('pending', '待处理'), ('under_review', '审理中'), ('completed', '已裁决')], default='pending', max_length=20, verbose_name='状态')),
                ('processed_at', models.DateTimeField(blank=True, null=True, verbose_name='裁决时间')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='创建时间')),
                ('opened_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='opened_resolutions', to=settings.AUTH_USER_MODEL, verbose_name='受理管理员')),
                ('processed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='processed_resolutions', to=settings.AUTH_USER_MODEL, verbose_name='裁决管理员')),
                ('violation', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='resolution', to='disputes.violation', verbose_name='违规申报')),
            ],
            options={
                'verbose_name': '仲裁结果',
                'verbose_name_plural': '仲裁结果',
                'indexes': [
                    models.Index(fields=['status'], name='resolution_status_idx'),
                    models.Index(fields=['created_at'], name='resolution_created_idx'),
                ],
            },
        ),
    ]
