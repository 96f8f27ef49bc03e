"""Inventory models (per-warehouse stock and its ledger).

``StockItem`` holds the current quantity of a product in a warehouse.
``StockMovement`` is the append-only history of every change to it.
"""

from common.choices import MovementType
from django.db import models


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class StockItem(TimeStampedModel):
    product = models.ForeignKey("catalog.Product", related_name="stock_items", on_delete=models.CASCADE)
    warehouse = models.ForeignKey("catalog.Warehouse", related_name="stock_items", on_delete=models.CASCADE)
    quantity = models.IntegerField(default=0)

    class Meta:
        ordering = ["product_id", "warehouse_id"]
        constraints = [
            models.CheckConstraint(name="stock_non_negative", condition=models.Q(quantity__gte=0)),
            models.UniqueConstraint(fields=["product", "warehouse"], name="unique_stockitem_per_warehouse"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"StockItem<{self.product_id}@{self.warehouse_id}> q={self.quantity}"


class StockMovement(models.Model):
    """Immutable ledger entry; ``new_stock`` always equals ``previous_stock + quantity``."""

    TYPE_PRODUCT_CREATE = MovementType.PRODUCT_CREATE
    TYPE_PRODUCT_UPDATE = MovementType.PRODUCT_UPDATE
    TYPE_ORDER_CREATE = MovementType.ORDER_CREATE
    TYPE_ORDER_UPDATE = MovementType.ORDER_UPDATE
    TYPE_ORDER_CANCELLED = MovementType.ORDER_CANCELLED
    TYPE_ORDER_DELETE = MovementType.ORDER_DELETE
    TYPE_CHOICES = MovementType.choices

    movement_id = models.CharField(max_length=16)
    product = models.ForeignKey("catalog.Product", related_name="movements", on_delete=models.CASCADE)
    warehouse = models.ForeignKey(
        "catalog.Warehouse", null=True, blank=True, related_name="movements", on_delete=models.SET_NULL
    )
    warehouse_name = models.CharField(max_length=120, blank=True)
    movement_type = models.CharField(max_length=24, choices=TYPE_CHOICES)
    quantity = models.IntegerField()  # signed: +restock/restore, -order
    previous_stock = models.IntegerField()
    new_stock = models.IntegerField()
    order = models.ForeignKey(
        "orders.Order", null=True, blank=True, related_name="movements", on_delete=models.SET_NULL
    )
    order_number = models.CharField(max_length=16, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(name="movement_non_zero", condition=~models.Q(quantity=0)),
            models.CheckConstraint(
                name="movement_balance",
                condition=models.Q(new_stock=models.F("previous_stock") + models.F("quantity")),
            ),
            models.UniqueConstraint(fields=["product", "movement_id"], name="unique_movement_id_per_product"),
        ]
        indexes = [
            models.Index(fields=["product", "created_at"], name="inventory_movement_prod_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.movement_id} {self.movement_type} {self.quantity} for {self.product_id}"
