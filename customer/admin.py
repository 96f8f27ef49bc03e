from django.contrib import admin

from .models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "email", "phone", "project", "created_at")
    search_fields = ("name", "email", "phone")
    list_filter = ("project",)
