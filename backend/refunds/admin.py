from django.contrib import admin
from .models import DepositRefund


@admin.register(DepositRefund)
class DepositRefundAdmin(admin.ModelAdmin):
    list_display = ('refund_code', 'order', 'customer', 'original_deposit_amount', 'total_penalty_amount', 'refund_amount', 'status', 'processed_at')
    list_filter = ('status',)
    search_fields = ('refund_code', 'order__order_number', 'customer__username', 'external_transaction_id')
    # 金额与状态只能通过结算服务变更
    readonly_fields = [f.name for f in DepositRefund._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
