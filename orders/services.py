"""Order services: the order aggregate and its line items.

Every mutation runs in one transaction that covers the order row, its
lines, the stock rows and the ledger. Stock and lifecycle checks run before
the first write, so a failure leaves nothing behind. ``type`` and
``total_amount`` are always recomputed from the stored lines.
"""

import logging
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping

from catalog.models import Product
from catalog.selectors import get_active_service
from common.choices import MovementType
from common.db import atomic_with_timeout
from common.sequences import next_identifier, order_scope
from customer.selectors import get_project_customer
from django.conf import settings
from django.db import transaction
from django.http import Http404
from django.shortcuts import get_object_or_404
from inventory.services import apply_stock_change, ensure_available, lock_stock, lock_stock_items
from projects.access import require_project_access, require_project_admin

from .models import Order, OrderItem, OrderServiceItem

logger = logging.getLogger("opsdesk.orders")

MONEY = Decimal("0.01")
ORDER_FIELDS = ("status", "payment", "tax_percentage", "order_date", "delivered_date")


class OrderError(Exception):
    """Raised for order mutations that break lifecycle or stock rules."""


def quantize_money(value) -> Decimal:
    return Decimal(str(value)).quantize(MONEY, rounding=ROUND_HALF_UP)


def line_total(quantity: int, price) -> Decimal:
    return quantize_money(Decimal(int(quantity)) * Decimal(str(price)))


def derive_order_type(*, has_items: bool, has_services: bool) -> str:
    if has_items and has_services:
        return Order.TYPE_MIXED
    if has_services:
        return Order.TYPE_SERVICE
    return Order.TYPE_PRODUCT


def compute_order_total(*, item_totals: Iterable, service_totals: Iterable, tax_percentage) -> Decimal:
    """Sum of line totals with tax applied, rounded half-up to cents."""

    subtotal = sum((Decimal(str(t)) for t in item_totals), Decimal("0")) + sum(
        (Decimal(str(t)) for t in service_totals), Decimal("0")
    )
    return quantize_money(subtotal * (Decimal("1") + Decimal(str(tax_percentage)) / Decimal("100")))


def refresh_order_totals(order: Order) -> Order:
    """Recompute and persist ``type`` and ``total_amount`` from the stored lines."""

    item_totals = list(OrderItem.objects.filter(order=order).values_list("total", flat=True))
    service_totals = list(OrderServiceItem.objects.filter(order=order).values_list("total", flat=True))
    order.type = derive_order_type(has_items=bool(item_totals), has_services=bool(service_totals))
    order.total_amount = compute_order_total(
        item_totals=item_totals, service_totals=service_totals, tax_percentage=order.tax_percentage
    )
    order.save(update_fields=["type", "total_amount", "updated_at"])
    return order


def _order_timeout() -> float:
    return getattr(settings, "ORDER_TRANSACTION_TIMEOUT_SECONDS", 10)


def _validate_tax(tax_percentage) -> Decimal:
    value = Decimal(str(tax_percentage))
    if value < 0 or value > 100:
        raise OrderError("Tax percentage must be between 0 and 100")
    return value


def _validate_line(*, quantity, price) -> None:
    if int(quantity) < 1:
        raise OrderError("Quantity must be at least 1")
    if price is not None and Decimal(str(price)) < 0:
        raise OrderError("Price cannot be negative")


def _lock_for_lines(lines: list[OrderItem], requested: Mapping[tuple[int, int], int]):
    """Lock stock rows for ``requested`` pairs and check every pair up front."""

    stock = lock_stock_items(requested.keys())
    names = {(line.product_id, line.warehouse_id): line.product_name for line in lines}
    for pair in sorted(requested):
        item = stock.get(pair)
        if item is None:
            raise Http404(f"Product {names.get(pair) or pair[0]} is not available in the selected warehouse")
        ensure_available(item, requested[pair])
    return stock


def _take_stock(order: Order, movement_type: str) -> None:
    """Deduct every product line from stock; all pairs are checked before writing."""

    lines = list(order.items.select_related("product", "warehouse"))
    for line in lines:
        if line.product_id is None or line.warehouse_id is None:
            raise OrderError(
                f"Cannot restore order {order.order_number}: {line.product_name or 'a product'} is no longer available"
            )
    requested = defaultdict(int)
    for line in lines:
        requested[(line.product_id, line.warehouse_id)] += int(line.quantity)
    stock = _lock_for_lines(lines, requested)
    for line in lines:
        apply_stock_change(
            stock_item=stock[(line.product_id, line.warehouse_id)],
            delta=-int(line.quantity),
            movement_type=movement_type,
            order=order,
        )


def _give_back_stock(order: Order, movement_type: str) -> None:
    """Return every product line to stock; lines whose stock row is gone are skipped."""

    lines = list(order.items.select_related("product", "warehouse"))
    stock = lock_stock_items(
        (line.product_id, line.warehouse_id) for line in lines if line.product_id and line.warehouse_id
    )
    for line in lines:
        item = stock.get((line.product_id, line.warehouse_id))
        if item is None:
            logger.warning(
                "order.stock_restore_skipped",
                extra={
                    "event": "order.stock_restore_skipped",
                    "order_id": order.id,
                    "order_item_id": line.id,
                    "product_id": line.product_id,
                    "warehouse_id": line.warehouse_id,
                },
            )
            continue
        apply_stock_change(stock_item=item, delta=int(line.quantity), movement_type=movement_type, order=order)


def create_order(
    *,
    user,
    project_id: int,
    customer_id: int,
    items: Iterable[Mapping] = (),
    services: Iterable[Mapping] = (),
    status: str = Order.STATUS_NEW,
    payment: str = Order.PAYMENT_UNPAID,
    tax_percentage=Decimal("0"),
    order_date=None,
    delivered_date=None,
) -> Order:
    """Create an order with its product and service lines.

    ``items`` entries carry ``product_id``, ``warehouse_id``, ``quantity`` and
    an optional ``price`` (defaults to the product's current price);
    ``services`` entries carry ``service_id``, ``quantity`` and an optional
    ``price``. Each product line deducts stock and writes an ORDER_CREATE
    movement. Quantities for the same product and warehouse are checked
    together before anything is written.
    Inactive products of the project can still be ordered here; lines added
    later through ``add_order_item`` need an active product.
    """

    require_project_admin(user=user, project_id=project_id, message="Only project administrators can create orders")
    items = [dict(line) for line in items or []]
    services = [dict(line) for line in services or []]
    if status == Order.STATUS_CANCELLED:
        raise OrderError("An order cannot be created as cancelled")
    tax = _validate_tax(tax_percentage)
    customer = get_project_customer(project_id=project_id, customer_id=customer_id)
    for line in items + services:
        _validate_line(quantity=line.get("quantity", 0), price=line.get("price"))

    product_ids = {int(line["product_id"]) for line in items}
    products = {p.id: p for p in Product.objects.filter(project_id=project_id, id__in=product_ids)}
    if len(products) != len(product_ids):
        raise Http404("Product not found")
    service_rows = [get_active_service(project_id=project_id, service_id=line["service_id"]) for line in services]

    with atomic_with_timeout(_order_timeout()):
        pending = [
            OrderItem(
                product=products[int(line["product_id"])],
                warehouse_id=int(line["warehouse_id"]),
                product_name=products[int(line["product_id"])].name,
                quantity=int(line["quantity"]),
            )
            for line in items
        ]
        requested = defaultdict(int)
        for line in pending:
            requested[(line.product_id, line.warehouse_id)] += int(line.quantity)
        stock = _lock_for_lines(pending, requested)

        order = Order.objects.create(
            project_id=project_id,
            order_number=next_identifier(scope=order_scope(project_id), prefix="o"),
            customer=customer,
            customer_name=customer.name,
            customer_email=customer.email,
            status=status,
            payment=payment,
            tax_percentage=tax,
            delivered_date=delivered_date,
            created_by=user,
            **({"order_date": order_date} if order_date else {}),
        )
        for line, data in zip(pending, items):
            price = Decimal(str(data["price"])) if data.get("price") is not None else line.product.price
            line.order = order
            line.price = price
            line.total = line_total(line.quantity, price)
            line.save()
            apply_stock_change(
                stock_item=stock[(line.product_id, line.warehouse_id)],
                delta=-int(line.quantity),
                movement_type=MovementType.ORDER_CREATE,
                order=order,
            )
        for service, data in zip(service_rows, services):
            price = Decimal(str(data["price"])) if data.get("price") is not None else service.price
            OrderServiceItem.objects.create(
                order=order,
                service=service,
                service_name=service.name,
                quantity=int(data["quantity"]),
                price=price,
                total=line_total(data["quantity"], price),
            )
        refresh_order_totals(order)

    logger.info(
        "order.created",
        extra={
            "event": "order.created",
            "order_id": order.id,
            "order_number": order.order_number,
            "project_id": project_id,
            "items": len(items),
            "services": len(services),
            "total_amount": str(order.total_amount),
        },
    )
    return order


def update_order(*, user, order_id: int, changes: Mapping) -> Order:
    """Apply header changes and the stock effects of a status transition.

    Moving to CANCELLED returns stock (refused from DELIVERED); leaving
    CANCELLED deducts it again after re-checking availability. Other status
    changes have no stock effect. ``type`` and ``total_amount`` in
    ``changes`` are ignored.
    """

    changes = dict(changes)
    with atomic_with_timeout(_order_timeout()):
        order = get_object_or_404(Order.objects.select_for_update(), id=order_id)
        require_project_admin(
            user=user,
            project_id=order.project_id,
            message="Order not found or you do not have permission to update it",
        )
        if changes.get("customer_id"):
            customer = get_project_customer(project_id=order.project_id, customer_id=changes["customer_id"])
            order.customer = customer
            order.customer_name = customer.name
            order.customer_email = customer.email
        if "tax_percentage" in changes and changes["tax_percentage"] is not None:
            changes["tax_percentage"] = _validate_tax(changes["tax_percentage"])

        previous = order.status
        target = changes.get("status") or previous
        if target != previous:
            if target == Order.STATUS_CANCELLED:
                if previous == Order.STATUS_DELIVERED:
                    raise OrderError("Cannot cancel an order that has been delivered")
                _give_back_stock(order, MovementType.ORDER_CANCELLED)
            elif previous == Order.STATUS_CANCELLED:
                _take_stock(order, MovementType.ORDER_CREATE)

        for field in ORDER_FIELDS:
            if field not in changes:
                continue
            if changes[field] is None and field != "delivered_date":
                continue
            setattr(order, field, changes[field])
        order.save()
        refresh_order_totals(order)

    if target != previous:
        logger.info(
            "order.status_changed",
            extra={
                "event": "order.status_changed",
                "order_id": order.id,
                "project_id": order.project_id,
                "status_from": previous,
                "status_to": order.status,
            },
        )
    return order


def delete_order(*, user, order_id: int) -> None:
    """Delete an order, returning its stock unless it was already cancelled."""

    timeout = getattr(settings, "ORDER_DELETE_TRANSACTION_TIMEOUT_SECONDS", 8)
    with atomic_with_timeout(timeout):
        order = get_object_or_404(Order.objects.select_for_update(), id=order_id)
        require_project_admin(
            user=user,
            project_id=order.project_id,
            message="Order not found or you do not have permission to delete it",
        )
        restored = order.holds_stock
        if restored:
            _give_back_stock(order, MovementType.ORDER_DELETE)
        order.delete()

    logger.info(
        "order.deleted",
        extra={"event": "order.deleted", "order_id": order_id, "stock_restored": restored},
    )


def _locked_order(order_id: int) -> Order:
    return get_object_or_404(Order.objects.select_for_update(), id=order_id)


# Product line items


def add_order_item(*, user, order_id: int, product_id: int, warehouse_id: int, quantity: int, price=None) -> OrderItem:
    """Add a product line; stock is deducted while the order holds stock."""

    _validate_line(quantity=quantity, price=price)
    with atomic_with_timeout(_order_timeout()):
        order = _locked_order(order_id)
        require_project_access(user=user, project_id=order.project_id, message="You don't have access to this order")
        try:
            product = Product.objects.get(id=product_id, project_id=order.project_id, is_active=True)
        except (Product.DoesNotExist, ValueError, TypeError):
            raise Http404("Product not found or not active in this project")
        price = Decimal(str(price)) if price is not None else product.price
        line = OrderItem(
            order=order,
            product=product,
            warehouse_id=int(warehouse_id),
            product_name=product.name,
            quantity=int(quantity),
            price=price,
            total=line_total(quantity, price),
        )
        stock = _lock_for_lines([line], {(product.id, int(warehouse_id)): int(quantity)})
        line.save()
        if order.holds_stock:
            apply_stock_change(
                stock_item=stock[(product.id, int(warehouse_id))],
                delta=-int(quantity),
                movement_type=MovementType.ORDER_UPDATE,
                order=order,
            )
        refresh_order_totals(order)
    return line


def update_order_item(*, user, item_id: int, quantity=None, price=None, warehouse_id=None) -> OrderItem:
    """Change a product line's quantity, price or warehouse.

    While the order holds stock, the old quantity is returned to the old
    warehouse and the new quantity taken from the new one; availability is
    checked with the returned units counted.
    """

    with atomic_with_timeout(_order_timeout()):
        line = get_object_or_404(OrderItem.objects.select_related("product", "warehouse"), id=item_id)
        order = _locked_order(line.order_id)
        require_project_access(user=user, project_id=order.project_id, message="You don't have access to this order")
        new_quantity = int(quantity) if quantity is not None else int(line.quantity)
        new_price = Decimal(str(price)) if price is not None else line.price
        new_warehouse_id = int(warehouse_id) if warehouse_id is not None else line.warehouse_id
        _validate_line(quantity=new_quantity, price=new_price)

        moves_stock = order.holds_stock and (
            new_quantity != int(line.quantity) or new_warehouse_id != line.warehouse_id
        )
        if moves_stock:
            if line.product_id is None or new_warehouse_id is None:
                raise OrderError(f"{line.product_name or 'This product'} is no longer available")
            old_pair = (line.product_id, line.warehouse_id)
            new_pair = (line.product_id, new_warehouse_id)
            stock = lock_stock_items([pair for pair in (old_pair, new_pair) if pair[1] is not None])
            target = stock.get(new_pair)
            if target is None:
                raise Http404("Product not available in the selected warehouse")
            if old_pair == new_pair:
                delta = new_quantity - int(line.quantity)
                if delta > 0:
                    ensure_available(target, delta)
                apply_stock_change(
                    stock_item=target, delta=-delta, movement_type=MovementType.ORDER_UPDATE, order=order
                )
            else:
                ensure_available(target, new_quantity)
                source = stock.get(old_pair)
                if source is not None:
                    apply_stock_change(
                        stock_item=source,
                        delta=int(line.quantity),
                        movement_type=MovementType.ORDER_UPDATE,
                        order=order,
                    )
                apply_stock_change(
                    stock_item=target, delta=-new_quantity, movement_type=MovementType.ORDER_UPDATE, order=order
                )
        elif new_warehouse_id != line.warehouse_id:
            if line.product_id is None:
                raise Http404("Product not available in the selected warehouse")
            lock_stock(product_id=line.product_id, warehouse_id=new_warehouse_id)

        line.quantity = new_quantity
        line.price = new_price
        line.warehouse_id = new_warehouse_id
        line.total = line_total(new_quantity, new_price)
        line.save(update_fields=["quantity", "price", "warehouse", "total", "updated_at"])
        refresh_order_totals(order)
    return line


def delete_order_item(*, user, item_id: int) -> None:
    with atomic_with_timeout(_order_timeout()):
        line = get_object_or_404(OrderItem, id=item_id)
        order = _locked_order(line.order_id)
        require_project_admin(
            user=user, project_id=order.project_id, message="Only project administrators can delete order items"
        )
        if order.holds_stock and line.product_id and line.warehouse_id:
            item = lock_stock_items([(line.product_id, line.warehouse_id)]).get((line.product_id, line.warehouse_id))
            if item is not None:
                apply_stock_change(
                    stock_item=item, delta=int(line.quantity), movement_type=MovementType.ORDER_UPDATE, order=order
                )
        line.delete()
        refresh_order_totals(order)


# Service line items


def list_order_services(*, user, order_id: int):
    order = get_object_or_404(Order, id=order_id)
    require_project_access(user=user, project_id=order.project_id, message="You don't have access to this order")
    return OrderServiceItem.objects.filter(order=order).select_related("service").order_by("created_at", "id")


@transaction.atomic
def create_order_service(*, user, order_id: int, service_id: int, quantity: int, price=None) -> OrderServiceItem:
    """Attach a service line and recompute the order total."""

    _validate_line(quantity=quantity, price=price)
    order = _locked_order(order_id)
    require_project_access(user=user, project_id=order.project_id, message="You don't have access to this order")
    service = get_active_service(project_id=order.project_id, service_id=service_id)
    price = Decimal(str(price)) if price is not None else service.price
    line = OrderServiceItem.objects.create(
        order=order,
        service=service,
        service_name=service.name,
        quantity=int(quantity),
        price=price,
        total=line_total(quantity, price),
    )
    refresh_order_totals(order)
    return line


@transaction.atomic
def update_order_service(*, user, line_id: int, quantity=None, price=None) -> OrderServiceItem:
    line = get_object_or_404(OrderServiceItem, id=line_id)
    order = _locked_order(line.order_id)
    require_project_access(user=user, project_id=order.project_id, message="You don't have access to this order")
    if quantity is not None:
        line.quantity = int(quantity)
    if price is not None:
        line.price = Decimal(str(price))
    _validate_line(quantity=line.quantity, price=line.price)
    line.total = line_total(line.quantity, line.price)
    line.save(update_fields=["quantity", "price", "total", "updated_at"])
    refresh_order_totals(order)
    return line


@transaction.atomic
def delete_order_service(*, user, line_id: int) -> None:
    line = get_object_or_404(OrderServiceItem, id=line_id)
    order = _locked_order(line.order_id)
    require_project_admin(
        user=user, project_id=order.project_id, message="Only project administrators can delete order services"
    )
    line.delete()
    refresh_order_totals(order)


# EOF
