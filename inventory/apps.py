from django.apps import AppConfig


class InventoryConfig(AppConfig):
    """Per-warehouse stock and the stock movement ledger."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "inventory"
