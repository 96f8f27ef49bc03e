from decimal import Decimal

from common.choices import OrderStatus, OrderType, PaymentStatus
from django.conf import settings
from django.db import models
from django.utils import timezone


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Order(TimeStampedModel):
    """Customer order inside a project.

    ``type`` and ``total_amount`` are derived from the line items and are
    recomputed by the order services on every mutation. Customer name and
    email are copied at order time and survive later customer edits.
    """

    STATUS_NEW = OrderStatus.NEW
    STATUS_PENDING = OrderStatus.PENDING
    STATUS_SHIPPING = OrderStatus.SHIPPING
    STATUS_DELIVERED = OrderStatus.DELIVERED
    STATUS_CANCELLED = OrderStatus.CANCELLED
    STATUS_CHOICES = OrderStatus.choices

    TYPE_PRODUCT = OrderType.PRODUCT
    TYPE_SERVICE = OrderType.SERVICE
    TYPE_MIXED = OrderType.MIXED
    TYPE_CHOICES = OrderType.choices

    PAYMENT_PAID = PaymentStatus.PAID
    PAYMENT_UNPAID = PaymentStatus.UNPAID
    PAYMENT_COD = PaymentStatus.COD
    PAYMENT_CHOICES = PaymentStatus.choices

    project = models.ForeignKey("projects.Project", related_name="orders", on_delete=models.CASCADE)
    order_number = models.CharField(max_length=16)
    order_date = models.DateTimeField(default=timezone.now)
    delivered_date = models.DateTimeField(null=True, blank=True)
    customer = models.ForeignKey(
        "customer.Customer", null=True, blank=True, related_name="orders", on_delete=models.SET_NULL
    )
    customer_name = models.CharField(max_length=200, blank=True)
    customer_email = models.EmailField(blank=True)
    type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=TYPE_PRODUCT)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_NEW, db_index=True)
    payment = models.CharField(max_length=16, choices=PAYMENT_CHOICES, default=PAYMENT_UNPAID)
    tax_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, related_name="+", on_delete=models.SET_NULL
    )

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(fields=["project", "order_number"], name="unique_order_number_per_project"),
            models.CheckConstraint(
                name="order_tax_percentage_range",
                condition=models.Q(tax_percentage__gte=0, tax_percentage__lte=100),
            ),
            models.CheckConstraint(name="order_total_non_negative", condition=models.Q(total_amount__gte=0)),
        ]
        indexes = [
            models.Index(fields=["project", "status", "created_at"], name="orders_project_status_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Order {self.order_number} project={self.project_id} status={self.status}"

    @property
    def holds_stock(self) -> bool:
        """Whether the product lines are currently deducted from stock."""
        return self.status != self.STATUS_CANCELLED


class OrderItem(TimeStampedModel):
    """Product line; price is captured when the line is written."""

    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey(
        "catalog.Product", null=True, blank=True, related_name="order_items", on_delete=models.SET_NULL
    )
    warehouse = models.ForeignKey(
        "catalog.Warehouse", null=True, blank=True, related_name="order_items", on_delete=models.SET_NULL
    )
    product_name = models.CharField(max_length=200, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["order", "product"], name="orders_item_product_idx"),
        ]
        constraints = [
            models.CheckConstraint(name="orderitem_quantity_positive", condition=models.Q(quantity__gte=1)),
            models.CheckConstraint(name="orderitem_price_non_negative", condition=models.Q(price__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"OrderItem#{self.id} order={self.order_id} product={self.product_id} qty={self.quantity}"


class OrderServiceItem(TimeStampedModel):
    """Service line; price is captured when the line is written."""

    order = models.ForeignKey(Order, related_name="services", on_delete=models.CASCADE)
    service = models.ForeignKey(
        "catalog.Service", null=True, blank=True, related_name="order_lines", on_delete=models.SET_NULL
    )
    service_name = models.CharField(max_length=200, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(name="orderservice_quantity_positive", condition=models.Q(quantity__gte=1)),
            models.CheckConstraint(name="orderservice_price_non_negative", condition=models.Q(price__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"OrderServiceItem#{self.id} order={self.order_id} service={self.service_id} qty={self.quantity}"
