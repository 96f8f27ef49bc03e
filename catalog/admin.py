"""Admin registration for catalog models."""

from django.contrib import admin

from .models import Category, Product, ProductFile, Service, ServiceFile, Warehouse


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "project", "is_active")
    search_fields = ("name",)
    list_filter = ("is_active",)


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "project", "is_default", "is_active")
    search_fields = ("code", "name")
    list_filter = ("is_default", "is_active")
    readonly_fields = ("code",)


class ProductFileInline(admin.TabularInline):
    model = ProductFile
    extra = 0


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    # Stock is edited through the API so every change reaches the ledger.
    list_display = ("name", "project", "price", "is_active", "created_at")
    search_fields = ("name",)
    list_filter = ("is_active", "categories")
    inlines = [ProductFileInline]


class ServiceFileInline(admin.TabularInline):
    model = ServiceFile
    extra = 0


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ("name", "project", "price", "is_active")
    search_fields = ("name",)
    list_filter = ("is_active",)
    inlines = [ServiceFileInline]
