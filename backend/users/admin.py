from django.contrib import admin
from .models import User, BankAccount, Notification


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("username", "role", "phone", "is_staff", "is_active")
    search_fields = ("username", "phone")
    list_filter = ("is_staff", "is_superuser", "is_active", "role")

    fields = ("username", "phone", "email", "role", "is_staff", "is_superuser", "is_active", "date_joined", "last_login")
    readonly_fields = ("date_joined", "last_login")


@admin.register(BankAccount)
class BankAccountAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "bank_name", "masked_account_number", "account_holder_name", "is_primary", "created_at")
    list_filter = ("is_primary", "bank_name")
    search_fields = ("user__username", "account_holder_name")
    readonly_fields = ("created_at",)


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "title", "type", "status", "created_at", "read_at")
    list_filter = ("type", "status")
    search_fields = ("user__username", "title")
