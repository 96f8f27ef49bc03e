from django.apps import AppConfig


class CustomerConfig(AppConfig):
    """Customers that orders are placed for."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "customer"
    verbose_name = "Customer"
