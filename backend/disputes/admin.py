from django.contrib import admin
from .models import Violation, ViolationEvidence, ViolationStatusHistory, Resolution


class ViolationEvidenceInline(admin.TabularInline):
    model = ViolationEvidence
    extra = 0
    can_delete = False
    readonly_fields = ('url', 'uploaded_by', 'media_kind', 'uploaded_at')

    def has_add_permission(self, request, obj=None):
        return False


class ViolationStatusHistoryInline(admin.TabularInline):
    model = ViolationStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ('from_status', 'to_status', 'operator', 'note', 'created_at')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Violation)
class ViolationAdmin(admin.ModelAdmin):
    list_display = ('id', 'order_item', 'violation_type', 'penalty_amount', 'status', 'created_at')
    list_filter = ('status', 'violation_type')
    search_fields = ('order_item__order__order_number', 'description')
    # 违规申报只能通过流程操作变更
    readonly_fields = [f.name for f in Violation._meta.fields]
    inlines = [ViolationEvidenceInline, ViolationStatusHistoryInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Resolution)
class ResolutionAdmin(admin.ModelAdmin):
    list_display = ('id', 'violation', 'resolution_type', 'customer_fine_amount', 'provider_compensation_amount', 'status', 'processed_at')
    list_filter = ('status', 'resolution_type')
    readonly_fields = [f.name for f in Resolution._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
