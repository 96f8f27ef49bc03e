"""Shared enumerations and choices used across apps."""

from django.db import models


class ProjectRole(models.TextChoices):
    """Membership roles inside a project."""

    ADMIN = "ADMIN", "Admin"
    MEMBER = "MEMBER", "Member"


class MovementType(models.TextChoices):
    PRODUCT_CREATE = "PRODUCT_CREATE", "Product create"
    PRODUCT_UPDATE = "PRODUCT_UPDATE", "Product update"
    ORDER_CREATE = "ORDER_CREATE", "Order create"
    ORDER_UPDATE = "ORDER_UPDATE", "Order update"
    ORDER_CANCELLED = "ORDER_CANCELLED", "Order cancelled"
    ORDER_DELETE = "ORDER_DELETE", "Order delete"


class OrderStatus(models.TextChoices):
    """Lifecycle statuses for orders."""

    NEW = "NEW", "New"
    PENDING = "PENDING", "Pending"
    SHIPPING = "SHIPPING", "Shipping"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"


# Orders in these statuses still hold stock that catalog changes must respect.
ACTIVE_ORDER_STATUSES = (OrderStatus.NEW, OrderStatus.PENDING, OrderStatus.SHIPPING)


class OrderType(models.TextChoices):
    PRODUCT = "PRODUCT", "Product"
    SERVICE = "SERVICE", "Service"
    MIXED = "MIXED", "Mixed"


class PaymentStatus(models.TextChoices):
    PAID = "PAID", "Paid"
    UNPAID = "UNPAID", "Unpaid"
    COD = "COD", "Cash on delivery"
