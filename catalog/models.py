"""Catalog app models.

Defines the project-scoped catalog: categories, warehouses, products with
their stored files, and billable services. Per-warehouse stock lives in
``inventory.StockItem``.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Category(TimeStampedModel):
    project = models.ForeignKey("projects.Project", related_name="categories", on_delete=models.CASCADE)
    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["name", "id"]
        constraints = [
            models.UniqueConstraint(fields=["project", "name"], name="unique_category_name_per_project"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class Warehouse(TimeStampedModel):
    """Stock location inside a project, coded "a001", "a002", ..."""

    project = models.ForeignKey("projects.Project", related_name="warehouses", on_delete=models.CASCADE)
    code = models.CharField(max_length=16)
    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    is_default = models.BooleanField(default=False)

    class Meta:
        ordering = ["code", "id"]
        constraints = [
            models.UniqueConstraint(fields=["project", "code"], name="unique_warehouse_code_per_project"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.name} ({self.code})"

    @property
    def label(self) -> str:
        return f"{self.name} ({self.code})"


class Product(TimeStampedModel):
    """Sellable product; stock is tracked per warehouse only."""

    project = models.ForeignKey("projects.Project", related_name="products", on_delete=models.CASCADE)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    image_url = models.URLField(blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    categories = models.ManyToManyField(Category, related_name="products", blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, related_name="+", on_delete=models.SET_NULL
    )

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(name="product_price_non_negative", condition=models.Q(price__gte=0)),
        ]
        indexes = [
            models.Index(fields=["project", "is_active"], name="catalog_product_active_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class ProductFile(TimeStampedModel):
    """File attached to a product; ``storage_key`` names it in default storage."""

    product = models.ForeignKey(Product, related_name="files", on_delete=models.CASCADE)
    url = models.URLField()
    storage_key = models.CharField(max_length=255, blank=True)
    name = models.CharField(max_length=200, blank=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name or self.url


class Service(TimeStampedModel):
    """Billable service that can be attached to orders."""

    project = models.ForeignKey("projects.Project", related_name="services", on_delete=models.CASCADE)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["name", "id"]
        constraints = [
            models.CheckConstraint(name="service_price_non_negative", condition=models.Q(price__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class ServiceFile(TimeStampedModel):
    service = models.ForeignKey(Service, related_name="files", on_delete=models.CASCADE)
    url = models.URLField()
    name = models.CharField(max_length=200, blank=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name or self.url
