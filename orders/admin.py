from django.contrib import admin

from .models import Order, OrderItem, OrderServiceItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("product", "warehouse", "product_name", "quantity", "price", "total")


class OrderServiceItemInline(admin.TabularInline):
    model = OrderServiceItem
    extra = 0
    readonly_fields = ("service", "service_name", "quantity", "price", "total")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Read-mostly admin; stock-affecting changes go through the API services."""

    list_display = ("id", "order_number", "project", "customer_name", "type", "status", "payment", "total_amount")
    list_filter = ("status", "type", "payment", "created_at")
    search_fields = ("order_number", "customer_name", "customer_email")
    date_hierarchy = "created_at"
    readonly_fields = ("order_number", "type", "total_amount", "status")
    inlines = [OrderItemInline, OrderServiceItemInline]
