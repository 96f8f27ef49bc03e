"""Admin registrations for inventory app."""

from django.contrib import admin

from .models import StockItem, StockMovement


@admin.register(StockItem)
class StockItemAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "warehouse", "quantity", "updated_at")
    search_fields = ("product__name", "warehouse__code")
    readonly_fields = ("quantity",)


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("movement_id", "product", "warehouse_name", "movement_type", "quantity", "new_stock", "created_at")
    list_filter = ("movement_type",)
    search_fields = ("movement_id", "product__name", "order_number")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# EOF
