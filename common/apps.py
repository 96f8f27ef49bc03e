from django.apps import AppConfig


class CommonConfig(AppConfig):
    """Shared building blocks: sequence counters, pagination, transactions."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "common"
