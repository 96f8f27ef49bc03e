"""Catalog services: product and warehouse mutations.

Product writes seed and adjust per-warehouse stock through the inventory
services so every quantity change leaves a ledger entry. Removals are
refused while orders that still hold stock reference the product.
"""

import logging
from decimal import Decimal
from typing import Iterable, Mapping

from common.choices import ACTIVE_ORDER_STATUSES, MovementType
from common.sequences import drop_scope, movement_scope, next_identifier, warehouse_scope
from django.db import transaction
from django.http import Http404
from django.shortcuts import get_object_or_404
from inventory.models import StockItem, StockMovement
from inventory.services import close_stock_item, open_stock_item, set_stock_level
from orders.models import OrderItem
from projects.access import require_project_access, require_project_admin
from projects.selectors import agents_using_product

from .models import Category, Product, ProductFile, Warehouse
from .storage import delete_stored_files

logger = logging.getLogger("opsdesk.catalog")


class CatalogError(Exception):
    """Raised when a catalog mutation conflicts with existing data."""


def _active_order_numbers(items) -> list[str]:
    return sorted({item.order.order_number for item in items})


def _resolve_categories(*, project_id: int, category_ids: Iterable[int]) -> list[Category]:
    ids = {int(pk) for pk in category_ids or []}
    categories = list(Category.objects.filter(project_id=project_id, id__in=ids))
    if len(categories) != len(ids):
        raise Http404("Category not found")
    return categories


def _resolve_warehouses(*, project_id: int, stock_by_warehouse: Mapping[int, int]) -> dict[int, Warehouse]:
    ids = {int(pk) for pk in stock_by_warehouse}
    warehouses = {w.id: w for w in Warehouse.objects.filter(project_id=project_id, id__in=ids)}
    if len(warehouses) != len(ids):
        raise Http404("Warehouse not found")
    return warehouses


def _validate_product_fields(*, price, is_active: bool, stock_by_warehouse: Mapping[int, int]) -> None:
    if Decimal(str(price)) < 0:
        raise CatalogError("Price cannot be negative")
    if is_active and not stock_by_warehouse:
        raise CatalogError("An active product must be available in at least one warehouse")
    for warehouse_id, quantity in stock_by_warehouse.items():
        if int(quantity) < 0:
            raise CatalogError(f"Stock for warehouse {warehouse_id} cannot be negative")


@transaction.atomic
def create_product(
    *,
    user,
    project_id: int,
    name: str,
    price,
    description: str = "",
    image_url: str = "",
    is_active: bool = True,
    category_ids: Iterable[int] = (),
    stock_by_warehouse: Mapping[int, int],
) -> Product:
    """Create a product with its categories and opening stock per warehouse.

    Each positive opening quantity is recorded as a PRODUCT_CREATE movement
    from 0.
    """

    require_project_access(user=user, project_id=project_id)
    stock_by_warehouse = {int(k): int(v) for k, v in (stock_by_warehouse or {}).items()}
    _validate_product_fields(price=price, is_active=is_active, stock_by_warehouse=stock_by_warehouse)
    categories = _resolve_categories(project_id=project_id, category_ids=category_ids)
    warehouses = _resolve_warehouses(project_id=project_id, stock_by_warehouse=stock_by_warehouse)

    product = Product.objects.create(
        project_id=project_id,
        name=name,
        description=description or "",
        price=Decimal(str(price)),
        image_url=image_url or "",
        is_active=is_active,
        created_by=user,
    )
    product.categories.set(categories)
    for warehouse_id in sorted(stock_by_warehouse):
        open_stock_item(
            product=product,
            warehouse=warehouses[warehouse_id],
            quantity=stock_by_warehouse[warehouse_id],
            movement_type=MovementType.PRODUCT_CREATE,
        )
    logger.info(
        "catalog.product_created",
        extra={
            "event": "catalog.product_created",
            "product_id": product.id,
            "project_id": project_id,
            "warehouses": len(stock_by_warehouse),
        },
    )
    return product


@transaction.atomic
def update_product(
    *,
    user,
    product_id: int,
    name: str,
    price,
    description: str = "",
    image_url: str = "",
    is_active: bool = True,
    category_ids: Iterable[int] = (),
    stock_by_warehouse: Mapping[int, int],
) -> Product:
    """Replace a product's fields, categories and per-warehouse stock.

    Warehouses missing from ``stock_by_warehouse`` are removed; that is
    refused while an order in NEW, PENDING or SHIPPING holds the product in
    one of them. Removed and changed quantities are recorded as
    PRODUCT_UPDATE movements.
    """

    product = get_object_or_404(Product.objects.select_for_update(), id=product_id)
    require_project_access(user=user, project_id=product.project_id)
    stock_by_warehouse = {int(k): int(v) for k, v in (stock_by_warehouse or {}).items()}
    _validate_product_fields(price=price, is_active=is_active, stock_by_warehouse=stock_by_warehouse)
    categories = _resolve_categories(project_id=product.project_id, category_ids=category_ids)
    warehouses = _resolve_warehouses(project_id=product.project_id, stock_by_warehouse=stock_by_warehouse)

    current = {
        item.warehouse_id: item
        for item in StockItem.objects.select_for_update(of=("self",))
        .select_related("product", "warehouse")
        .filter(product=product)
        .order_by("warehouse_id")
    }
    removed = [current[wid] for wid in sorted(current) if wid not in stock_by_warehouse]
    if removed:
        blocking = list(
            OrderItem.objects.select_related("order", "warehouse").filter(
                product=product,
                warehouse_id__in=[item.warehouse_id for item in removed],
                order__status__in=ACTIVE_ORDER_STATUSES,
            )
        )
        if blocking:
            labels = ", ".join(sorted({item.warehouse.label for item in blocking}))
            orders = ", ".join(_active_order_numbers(blocking))
            raise CatalogError(
                f"Cannot remove warehouse(s): {labels}. These warehouses have active orders ({orders}) "
                "and their stock is needed. Complete or cancel these orders first."
            )

    product.name = name
    product.description = description or ""
    product.price = Decimal(str(price))
    product.image_url = image_url or ""
    product.is_active = is_active
    product.save(update_fields=["name", "description", "price", "image_url", "is_active", "updated_at"])
    product.categories.set(categories)

    for item in removed:
        close_stock_item(stock_item=item, movement_type=MovementType.PRODUCT_UPDATE)
    for warehouse_id in sorted(stock_by_warehouse):
        quantity = stock_by_warehouse[warehouse_id]
        item = current.get(warehouse_id)
        if item is None:
            open_stock_item(
                product=product,
                warehouse=warehouses[warehouse_id],
                quantity=quantity,
                movement_type=MovementType.PRODUCT_UPDATE,
            )
        else:
            set_stock_level(stock_item=item, quantity=quantity, movement_type=MovementType.PRODUCT_UPDATE)

    logger.info(
        "catalog.product_updated",
        extra={
            "event": "catalog.product_updated",
            "product_id": product.id,
            "project_id": product.project_id,
            "removed_warehouses": [item.warehouse_id for item in removed],
        },
    )
    return product


def delete_product(*, user, product_id: int) -> None:
    """Delete a product with its files, stock rows and ledger history.

    Refused while orders in NEW, PENDING or SHIPPING reference the product
    or an active agent workflow uses it. Stored files are removed after the
    transaction commits; a storage failure is logged, not raised.
    """

    with transaction.atomic():
        product = get_object_or_404(Product.objects.select_for_update(), id=product_id)
        require_project_access(user=user, project_id=product.project_id)

        active_items = list(
            OrderItem.objects.select_related("order").filter(product=product, order__status__in=ACTIVE_ORDER_STATUSES)
        )
        if active_items:
            orders = ", ".join(_active_order_numbers(active_items))
            raise CatalogError(
                f"Cannot delete product. There are {len(active_items)} active order items in orders: {orders}. "
                "Complete or cancel these orders first."
            )
        agents = agents_using_product(project_id=product.project_id, product_id=product.id)
        if agents:
            names = ", ".join(agent.name or "Unnamed Agent" for agent in agents)
            raise CatalogError(
                f"Cannot delete product. It is being used in {len(agents)} agent workflow(s): {names}. "
                "Remove the product from these workflows first."
            )

        files = list(ProductFile.objects.filter(product=product))
        storage_keys = [f.storage_key for f in files if f.storage_key]
        ProductFile.objects.filter(id__in=[f.id for f in files]).delete()
        StockMovement.objects.filter(product=product).delete()
        StockItem.objects.filter(product=product).delete()
        drop_scope(movement_scope(product.id))
        product.delete()
        if storage_keys:
            transaction.on_commit(lambda: delete_stored_files(storage_keys))

    logger.info(
        "catalog.product_deleted",
        extra={"event": "catalog.product_deleted", "product_id": product_id, "files": len(storage_keys)},
    )


@transaction.atomic
def create_warehouse(*, user, project_id: int, name: str, description: str = "", is_default: bool = False) -> Warehouse:
    """Create a warehouse coded with the project's next "aNNN" number."""

    require_project_admin(user=user, project_id=project_id, message="Only project administrators can add warehouses")
    if is_default:
        Warehouse.objects.filter(project_id=project_id, is_default=True).update(is_default=False)
    return Warehouse.objects.create(
        project_id=project_id,
        code=next_identifier(scope=warehouse_scope(project_id), prefix="a"),
        name=name,
        description=description or "",
        is_default=is_default,
    )


@transaction.atomic
def delete_warehouse(*, user, warehouse_id: int) -> None:
    warehouse = get_object_or_404(Warehouse.objects.select_for_update(), id=warehouse_id)
    require_project_admin(
        user=user, project_id=warehouse.project_id, message="Only project administrators can delete warehouses"
    )
    if warehouse.is_default:
        raise CatalogError(f"Cannot delete the default warehouse {warehouse.label}")
    stocked = StockItem.objects.filter(warehouse=warehouse).count()
    if stocked:
        raise CatalogError(
            f"Cannot delete warehouse {warehouse.label}. It still holds stock for {stocked} product(s)."
        )
    warehouse.delete()


# EOF
