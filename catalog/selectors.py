"""Selectors for the catalog domain.

Expose read-only query helpers to keep views thin and allow reuse across
APIs and services. Selectors should return querysets or lightweight data
structures and avoid side effects.
"""

from django.db.models import Prefetch, QuerySet
from django.http import Http404
from inventory.models import StockItem

from .models import Product, Service, Warehouse


def _product_prefetches():
    return (
        "categories",
        "files",
        Prefetch("stock_items", queryset=StockItem.objects.select_related("warehouse").order_by("warehouse__code")),
    )


def list_products(*, project_id: int) -> QuerySet[Product]:
    """Return a project's products, newest first.

    List filters (search, categories, price range) live in
    ``catalog.filters.ProductFilterSet``.
    """

    return (
        Product.objects.filter(project_id=project_id)
        .prefetch_related(*_product_prefetches())
        .order_by("-created_at", "-id")
    )


def get_product(product_id: int) -> Product:
    try:
        return Product.objects.prefetch_related(*_product_prefetches()).get(id=product_id)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise Http404("Product not found")


def list_warehouses(*, project_id: int) -> QuerySet[Warehouse]:
    return Warehouse.objects.filter(project_id=project_id).order_by("code", "id")


def get_active_service(*, project_id: int, service_id: int) -> Service:
    """Return an active service of the project, else raise 404."""

    try:
        return Service.objects.get(id=service_id, project_id=project_id, is_active=True)
    except (Service.DoesNotExist, ValueError, TypeError):
        raise Http404("Service not found or not active in this project")
