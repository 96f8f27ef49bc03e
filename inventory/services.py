"""Inventory services: per-warehouse stock changes and their ledger entries.

Every change to a ``StockItem`` goes through ``apply_stock_change`` (or
``open_stock_item`` / ``close_stock_item`` for rows being added or removed),
which writes exactly one ``StockMovement`` per non-zero delta. Callers wrap
multi-row operations in a single transaction.
"""

import logging
from typing import Iterable

from common.sequences import movement_scope, next_identifier
from django.db import transaction
from django.db.models import Q
from django.http import Http404

from .models import StockItem, StockMovement

logger = logging.getLogger("opsdesk.inventory")


class MovementError(Exception):
    """Raised when a stock change cannot be applied."""


class InsufficientStock(MovementError):
    """Raised when a decrement would take stock below zero."""

    def __init__(self, *, product_name: str, warehouse_name: str, available: int, requested: int):
        self.product_name = product_name
        self.warehouse_name = warehouse_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {product_name} in {warehouse_name}. "
            f"Available: {available}, Requested: {requested}"
        )


def append_movement(
    *, product, warehouse, movement_type: str, quantity: int, previous_stock: int, order=None
) -> StockMovement | None:
    """Write one ledger entry and return it; zero deltas are not recorded.

    The movement id ("m001", ...) comes from the product's sequence counter,
    allocated in the caller's transaction.
    """

    quantity = int(quantity)
    if quantity == 0:
        return None
    previous_stock = int(previous_stock)
    movement = StockMovement.objects.create(
        movement_id=next_identifier(scope=movement_scope(product.id), prefix="m"),
        product=product,
        warehouse=warehouse,
        warehouse_name=getattr(warehouse, "name", "") or "",
        movement_type=movement_type,
        quantity=quantity,
        previous_stock=previous_stock,
        new_stock=previous_stock + quantity,
        order=order,
        order_number=getattr(order, "order_number", "") or "",
    )
    logger.info(
        "inventory.movement_recorded",
        extra={
            "event": "inventory.movement_recorded",
            "product_id": product.id,
            "warehouse_id": getattr(warehouse, "id", None),
            "movement_id": movement.movement_id,
            "movement_type": movement_type,
            "quantity": quantity,
            "order_id": getattr(order, "id", None),
        },
    )
    return movement


def lock_stock_items(pairs: Iterable[tuple[int, int]]) -> dict[tuple[int, int], StockItem]:
    """Lock the stock rows for ``(product_id, warehouse_id)`` pairs.

    Rows are locked in ``(product_id, warehouse_id)`` order so concurrent
    orders touching the same rows cannot deadlock. Missing pairs are simply
    absent from the result.
    """

    wanted = sorted({(int(p), int(w)) for p, w in pairs})
    if not wanted:
        return {}
    condition = Q()
    for product_id, warehouse_id in wanted:
        condition |= Q(product_id=product_id, warehouse_id=warehouse_id)
    rows = (
        StockItem.objects.select_for_update(of=("self",))
        .select_related("product", "warehouse")
        .filter(condition)
        .order_by("product_id", "warehouse_id")
    )
    return {(row.product_id, row.warehouse_id): row for row in rows}


def lock_stock(*, product_id: int, warehouse_id: int) -> StockItem:
    item = lock_stock_items([(product_id, warehouse_id)]).get((int(product_id), int(warehouse_id)))
    if item is None:
        raise Http404("Product not available in the selected warehouse")
    return item


def current_stock(*, product_id: int, warehouse_id: int) -> int:
    item = StockItem.objects.filter(product_id=product_id, warehouse_id=warehouse_id).only("quantity").first()
    return int(item.quantity) if item else 0


def ensure_available(stock_item: StockItem, requested: int) -> None:
    """Raise ``InsufficientStock`` unless ``requested`` units can be taken."""

    available = int(stock_item.quantity)
    if int(requested) > available:
        raise InsufficientStock(
            product_name=stock_item.product.name,
            warehouse_name=stock_item.warehouse.label,
            available=available,
            requested=int(requested),
        )


def apply_stock_change(*, stock_item: StockItem, delta: int, movement_type: str, order=None) -> StockMovement | None:
    """Apply a signed delta to a locked stock row and record it in the ledger.

    The caller must hold the row lock (see ``lock_stock_items``). Decrements
    are checked explicitly before anything is written.
    """

    delta = int(delta)
    if delta == 0:
        return None
    if delta < 0:
        ensure_available(stock_item, -delta)
    previous = int(stock_item.quantity)
    stock_item.quantity = previous + delta
    stock_item.save(update_fields=["quantity", "updated_at"])
    return append_movement(
        product=stock_item.product,
        warehouse=stock_item.warehouse,
        movement_type=movement_type,
        quantity=delta,
        previous_stock=previous,
        order=order,
    )


def set_stock_level(*, stock_item: StockItem, quantity: int, movement_type: str) -> StockMovement | None:
    if int(quantity) < 0:
        raise MovementError("Stock quantity cannot be negative")
    return apply_stock_change(
        stock_item=stock_item, delta=int(quantity) - int(stock_item.quantity), movement_type=movement_type
    )


def open_stock_item(*, product, warehouse, quantity: int, movement_type: str) -> StockItem:
    """Create the stock row for a new (product, warehouse) pairing.

    A positive opening quantity is recorded as a movement from 0.
    """

    if int(quantity) < 0:
        raise MovementError("Stock quantity cannot be negative")
    item = StockItem.objects.create(product=product, warehouse=warehouse, quantity=int(quantity))
    append_movement(
        product=product,
        warehouse=warehouse,
        movement_type=movement_type,
        quantity=int(quantity),
        previous_stock=0,
    )
    return item


@transaction.atomic
def close_stock_item(*, stock_item: StockItem, movement_type: str) -> None:
    """Zero out and delete a stock row, recording the removal when non-zero."""

    previous = int(stock_item.quantity)
    append_movement(
        product=stock_item.product,
        warehouse=stock_item.warehouse,
        movement_type=movement_type,
        quantity=-previous,
        previous_stock=previous,
    )
    stock_item.delete()


# EOF
