import logging
from decimal import Decimal

import pytest
from catalog.models import Warehouse
from catalog.tests.factories import ServiceFactory, create_stocked_product
from common.db import TransactionTimeout
from customer.tests.factories import CustomerFactory
from django.core.exceptions import PermissionDenied
from django.http import Http404
from inventory.models import StockItem, StockMovement
from inventory.services import InsufficientStock, current_stock
from orders.models import Order, OrderItem
from orders.services import (
    OrderError,
    compute_order_total,
    create_order,
    delete_order,
    derive_order_type,
    update_order,
)


def _stock(product, warehouse):
    return current_stock(product_id=product.id, warehouse_id=warehouse.id)


def _movements(product, movement_type=None):
    qs = StockMovement.objects.filter(product=product).order_by("id")
    if movement_type:
        qs = qs.filter(movement_type=movement_type)
    return list(qs)


def _create(shop, items=(), services=(), **kwargs):
    return create_order(
        user=shop.admin,
        project_id=shop.project.id,
        customer_id=shop.customer.id,
        items=list(items),
        services=list(services),
        **kwargs,
    )


def _line(product, warehouse, quantity, **extra):
    return {"product_id": product.id, "warehouse_id": warehouse.id, "quantity": quantity, **extra}


def test_create_cancel_delete_scenario(shop):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 10})

    order = _create(shop, items=[_line(product, shop.main, 4)])

    assert _stock(product, shop.main) == 6
    (created,) = _movements(product, StockMovement.TYPE_ORDER_CREATE)
    assert (created.previous_stock, created.quantity, created.new_stock) == (10, -4, 6)
    assert created.order_id == order.id
    assert created.order_number == order.order_number

    update_order(user=shop.admin, order_id=order.id, changes={"status": Order.STATUS_CANCELLED})

    assert _stock(product, shop.main) == 10
    (cancelled,) = _movements(product, StockMovement.TYPE_ORDER_CANCELLED)
    assert (cancelled.previous_stock, cancelled.quantity, cancelled.new_stock) == (6, 4, 10)

    delete_order(user=shop.admin, order_id=order.id)

    assert _stock(product, shop.main) == 10
    assert not Order.objects.filter(id=order.id).exists()
    assert not _movements(product, StockMovement.TYPE_ORDER_DELETE)


def test_delete_open_order_returns_stock(shop):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 10})
    order = _create(shop, items=[_line(product, shop.main, 3)])

    delete_order(user=shop.admin, order_id=order.id)

    assert _stock(product, shop.main) == 10
    (deleted,) = _movements(product, StockMovement.TYPE_ORDER_DELETE)
    assert (deleted.previous_stock, deleted.new_stock) == (7, 10)
    # Ledger history survives the order row.
    assert deleted.order_id is None
    assert deleted.order_number == order.order_number


def test_order_numbers_are_sequential_per_project(shop):
    first = _create(shop, services=[{"service_id": ServiceFactory(project=shop.project).id, "quantity": 1}])
    second = _create(shop, services=[{"service_id": ServiceFactory(project=shop.project).id, "quantity": 1}])

    assert (first.order_number, second.order_number) == ("o001", "o002")


def test_insufficient_stock_leaves_nothing_behind(shop):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 3})
    before = StockMovement.objects.count()

    with pytest.raises(InsufficientStock) as excinfo:
        _create(shop, items=[_line(product, shop.main, 5)])

    assert excinfo.value.available == 3
    assert excinfo.value.requested == 5
    assert str(excinfo.value) == (
        f"Insufficient stock for {product.name} in {shop.main.label}. Available: 3, Requested: 5"
    )
    assert not Order.objects.exists()
    assert not OrderItem.objects.exists()
    assert StockMovement.objects.count() == before
    assert _stock(product, shop.main) == 3


def test_lines_for_same_stock_row_are_checked_together(shop):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 5})

    with pytest.raises(InsufficientStock) as excinfo:
        _create(shop, items=[_line(product, shop.main, 3), _line(product, shop.main, 3)])

    assert excinfo.value.requested == 6
    assert _stock(product, shop.main) == 5
    assert not Order.objects.exists()


def test_failure_on_second_line_rolls_back_first(shop):
    lamp = create_stocked_product(user=shop.admin, project=shop.project, name="Lamp", stock={shop.main: 10})
    chair = create_stocked_product(user=shop.admin, project=shop.project, name="Chair", stock={shop.backup: 1})

    with pytest.raises(InsufficientStock):
        _create(shop, items=[_line(lamp, shop.main, 2), _line(chair, shop.backup, 2)])

    assert _stock(lamp, shop.main) == 10
    assert not _movements(lamp, StockMovement.TYPE_ORDER_CREATE)


def test_product_not_stocked_in_warehouse_is_not_found(shop):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 10})

    with pytest.raises(Http404):
        _create(shop, items=[_line(product, shop.backup, 1)])
    assert not Order.objects.exists()


@pytest.mark.parametrize(
    "has_items,has_services,expected",
    [(True, False, Order.TYPE_PRODUCT), (False, True, Order.TYPE_SERVICE), (True, True, Order.TYPE_MIXED)],
)
def test_order_type_is_derived_from_lines(shop, has_items, has_services, expected):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 10})
    service = ServiceFactory(project=shop.project)

    order = _create(
        shop,
        items=[_line(product, shop.main, 1)] if has_items else [],
        services=[{"service_id": service.id, "quantity": 1}] if has_services else [],
    )

    assert order.type == expected
    assert derive_order_type(has_items=has_items, has_services=has_services) == expected


def test_total_is_sum_of_lines_with_tax_rounded_half_up(shop):
    product = create_stocked_product(
        user=shop.admin, project=shop.project, price=Decimal("19.99"), stock={shop.main: 10}
    )
    service = ServiceFactory(project=shop.project, price=Decimal("5.05"))

    order = _create(
        shop,
        items=[_line(product, shop.main, 3), _line(product, shop.main, 1, price="0.01")],
        services=[{"service_id": service.id, "quantity": 1}],
        tax_percentage=Decimal("7.5"),
    )

    # (59.97 + 0.01 + 5.05) * 1.075 = 69.907...
    assert order.total_amount == Decimal("69.91")
    order.refresh_from_db()
    assert order.total_amount == Decimal("69.91")
    assert [line.price for line in order.items.order_by("id")] == [Decimal("19.99"), Decimal("0.01")]


def test_compute_order_total_rounds_half_up():
    total = compute_order_total(item_totals=[Decimal("10.00")], service_totals=[], tax_percentage=Decimal("0.05"))
    assert total == Decimal("10.01")


def test_customer_snapshot_survives_customer_edits(shop):
    order = _create(shop, services=[{"service_id": ServiceFactory(project=shop.project).id, "quantity": 1}])
    shop.customer.name = "Ada King"
    shop.customer.save()

    order.refresh_from_db()
    assert order.customer_name == "Ada Lovelace"
    assert order.customer_email == "ada@example.com"


def test_customer_change_refreshes_snapshot(shop):
    order = _create(shop, services=[{"service_id": ServiceFactory(project=shop.project).id, "quantity": 1}])
    other = CustomerFactory(project=shop.project, name="Grace Hopper", email="grace@example.com")

    update_order(user=shop.admin, order_id=order.id, changes={"customer_id": other.id})

    order.refresh_from_db()
    assert (order.customer_id, order.customer_name, order.customer_email) == (
        other.id,
        "Grace Hopper",
        "grace@example.com",
    )


def test_customer_from_other_project_is_not_found(shop):
    stranger = CustomerFactory()

    with pytest.raises(Http404):
        create_order(user=shop.admin, project_id=shop.project.id, customer_id=stranger.id)


def test_delivered_order_cannot_be_cancelled(shop):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 10})
    order = _create(shop, items=[_line(product, shop.main, 4)])
    update_order(user=shop.admin, order_id=order.id, changes={"status": Order.STATUS_DELIVERED})
    ledger_size = StockMovement.objects.filter(product=product).count()

    with pytest.raises(OrderError, match="Cannot cancel an order that has been delivered"):
        update_order(user=shop.admin, order_id=order.id, changes={"status": Order.STATUS_CANCELLED})

    order.refresh_from_db()
    assert order.status == Order.STATUS_DELIVERED
    assert _stock(product, shop.main) == 6
    assert StockMovement.objects.filter(product=product).count() == ledger_size


def test_cancel_reinstate_round_trip_conserves_stock(shop):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 10, shop.backup: 5})
    order = _create(shop, items=[_line(product, shop.main, 4), _line(product, shop.backup, 2)])
    assert (_stock(product, shop.main), _stock(product, shop.backup)) == (6, 3)

    update_order(user=shop.admin, order_id=order.id, changes={"status": Order.STATUS_CANCELLED})
    assert (_stock(product, shop.main), _stock(product, shop.backup)) == (10, 5)

    update_order(user=shop.admin, order_id=order.id, changes={"status": Order.STATUS_PENDING})
    assert (_stock(product, shop.main), _stock(product, shop.backup)) == (6, 3)
    assert len(_movements(product, StockMovement.TYPE_ORDER_CREATE)) == 4


def test_reinstate_fails_when_stock_was_sold_meanwhile(shop):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 5})
    order = _create(shop, items=[_line(product, shop.main, 4)])
    update_order(user=shop.admin, order_id=order.id, changes={"status": Order.STATUS_CANCELLED})
    _create(shop, items=[_line(product, shop.main, 3)])

    with pytest.raises(InsufficientStock):
        update_order(user=shop.admin, order_id=order.id, changes={"status": Order.STATUS_NEW})

    order.refresh_from_db()
    assert order.status == Order.STATUS_CANCELLED
    assert _stock(product, shop.main) == 2


def test_reinstate_fails_when_warehouse_is_gone(shop):
    extra = Warehouse.objects.create(project=shop.project, code="x001", name="Pop-up")
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={extra: 5})
    order = _create(shop, items=[_line(product, extra, 1)])
    update_order(user=shop.admin, order_id=order.id, changes={"status": Order.STATUS_CANCELLED})
    StockItem.objects.filter(warehouse=extra).delete()
    extra.delete()

    with pytest.raises(OrderError, match="no longer available"):
        update_order(user=shop.admin, order_id=order.id, changes={"status": Order.STATUS_NEW})


def test_status_changes_without_cancellation_do_not_touch_stock(shop):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 10})
    order = _create(shop, items=[_line(product, shop.main, 4)])
    ledger_size = StockMovement.objects.filter(product=product).count()

    for status in (Order.STATUS_PENDING, Order.STATUS_SHIPPING, Order.STATUS_DELIVERED):
        update_order(user=shop.admin, order_id=order.id, changes={"status": status})

    assert _stock(product, shop.main) == 6
    assert StockMovement.objects.filter(product=product).count() == ledger_size


def test_tax_change_recomputes_total(shop):
    service = ServiceFactory(project=shop.project, price=Decimal("100.00"))
    order = _create(shop, services=[{"service_id": service.id, "quantity": 2}])

    update_order(user=shop.admin, order_id=order.id, changes={"tax_percentage": Decimal("10")})

    order.refresh_from_db()
    assert order.total_amount == Decimal("220.00")


def test_restore_skips_missing_stock_rows_with_warning(shop, caplog):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 10})
    order = _create(shop, items=[_line(product, shop.main, 4)])
    StockItem.objects.filter(product=product).delete()

    with caplog.at_level(logging.WARNING, logger="opsdesk.orders"):
        update_order(user=shop.admin, order_id=order.id, changes={"status": Order.STATUS_CANCELLED})

    order.refresh_from_db()
    assert order.status == Order.STATUS_CANCELLED
    assert any(getattr(r, "event", None) == "order.stock_restore_skipped" for r in caplog.records)


def test_order_mutations_require_admin(shop):
    service = ServiceFactory(project=shop.project)

    with pytest.raises(PermissionDenied, match="Only project administrators can create orders"):
        create_order(
            user=shop.member,
            project_id=shop.project.id,
            customer_id=shop.customer.id,
            services=[{"service_id": service.id, "quantity": 1}],
        )

    order = _create(shop, services=[{"service_id": service.id, "quantity": 1}])
    with pytest.raises(PermissionDenied):
        update_order(user=shop.member, order_id=order.id, changes={"status": Order.STATUS_PENDING})
    with pytest.raises(PermissionDenied):
        delete_order(user=shop.member, order_id=order.id)


def test_order_cannot_be_created_cancelled(shop):
    with pytest.raises(OrderError, match="cannot be created as cancelled"):
        _create(shop, status=Order.STATUS_CANCELLED)


def test_status_change_is_logged(shop, caplog):
    order = _create(shop, services=[{"service_id": ServiceFactory(project=shop.project).id, "quantity": 1}])

    with caplog.at_level(logging.INFO, logger="opsdesk.orders"):
        update_order(user=shop.admin, order_id=order.id, changes={"status": Order.STATUS_SHIPPING})

    (record,) = [r for r in caplog.records if getattr(r, "event", None) == "order.status_changed"]
    assert (record.status_from, record.status_to) == (Order.STATUS_NEW, Order.STATUS_SHIPPING)


def test_order_write_past_its_time_bound_is_rolled_back(shop, settings, monkeypatch):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 10})
    settings.ORDER_TRANSACTION_TIMEOUT_SECONDS = 5
    ticks = iter(range(0, 10_000, 10))
    monkeypatch.setattr("common.db.time.monotonic", lambda: next(ticks))

    with pytest.raises(TransactionTimeout):
        _create(shop, items=[_line(product, shop.main, 4)])

    assert not Order.objects.filter(project=shop.project).exists()
    assert _stock(product, shop.main) == 10
    assert len(_movements(product, StockMovement.TYPE_ORDER_CREATE)) == 0


def test_inactive_product_can_be_ordered_on_create(shop):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 5})
    product.is_active = False
    product.save(update_fields=["is_active"])

    order = _create(shop, items=[_line(product, shop.main, 2)])

    assert order.items.get().product_id == product.id
    assert _stock(product, shop.main) == 3
