from django.contrib import admin

from .models import (
    AuditLog,
    Item,
    ItemGroup,
    Notification,
    SalesTransaction,
    SalesTransactionItem,
    StockLedgerEntry,
)


@admin.register(ItemGroup)
class ItemGroupAdmin(admin.ModelAdmin):
    search_fields = ["name"]


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ["name", "group", "item_type", "unit", "current_quantity", "min_stock_level", "stock_tracking_enabled"]
    list_filter = ["item_type", "group", "stock_tracking_enabled"]
    search_fields = ["name"]
    # quantities only move through the stock service so the ledger stays complete
    readonly_fields = ["current_quantity", "last_restocked_at"]


@admin.register(StockLedgerEntry)
class StockLedgerEntryAdmin(admin.ModelAdmin):
    list_display = ["item", "entry_type", "quantity", "previous_quantity", "new_quantity", "created_by", "created_at"]
    list_filter = ["entry_type", "created_at"]
    search_fields = ["item__name", "reason"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class SalesTransactionItemInline(admin.TabularInline):
    model = SalesTransactionItem
    extra = 0
    can_delete = False
    readonly_fields = ["item", "quantity", "unit_price", "total_price"]


@admin.register(SalesTransaction)
class SalesTransactionAdmin(admin.ModelAdmin):
    list_display = ["id", "payment_method", "total_amount", "created_by", "created_at"]
    list_filter = ["payment_method", "created_at"]
    inlines = [SalesTransactionItemInline]


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ["title", "ntype", "item", "priority", "is_read", "created_at"]
    list_filter = ["ntype", "priority", "is_read"]
    search_fields = ["title", "message", "item__name"]


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ["action", "object_type", "object_id", "created_by", "created_at"]
    list_filter = ["action", "object_type", "created_at"]
    search_fields = ["action", "object_type", "object_id", "summary", "created_by__username"]
