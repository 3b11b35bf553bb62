from django.contrib import admin
from .models import Order, OrderItem, OrderStatusHistory


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ("from_status", "to_status", "operator", "note", "created_at")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "customer", "provider", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("order_number", "customer__username", "provider__username")
    # 状态只能通过状态机流转
    readonly_fields = ("status",)
    inlines = [OrderItemInline, OrderStatusHistoryInline]
