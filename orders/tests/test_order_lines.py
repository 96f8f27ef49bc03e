from decimal import Decimal

import pytest
from catalog.tests.factories import ServiceFactory, create_stocked_product
from django.core.exceptions import PermissionDenied
from django.http import Http404
from inventory.models import StockMovement
from inventory.services import InsufficientStock, current_stock
from orders.models import Order, OrderItem, OrderServiceItem
from orders.services import (
    OrderError,
    add_order_item,
    create_order,
    create_order_service,
    delete_order_item,
    delete_order_service,
    list_order_services,
    update_order,
    update_order_item,
    update_order_service,
)


def _stock(product, warehouse):
    return current_stock(product_id=product.id, warehouse_id=warehouse.id)


def _updates(product):
    return list(
        StockMovement.objects.filter(product=product, movement_type=StockMovement.TYPE_ORDER_UPDATE)
        .order_by("id")
        .values_list("warehouse_id", "quantity", "new_stock")
    )


@pytest.fixture
def lamp(shop):
    return create_stocked_product(
        user=shop.admin, project=shop.project, price=Decimal("10.00"), stock={shop.main: 10, shop.backup: 5}
    )


@pytest.fixture
def order(shop, lamp):
    return create_order(
        user=shop.admin,
        project_id=shop.project.id,
        customer_id=shop.customer.id,
        items=[{"product_id": lamp.id, "warehouse_id": shop.main.id, "quantity": 2}],
    )


def test_add_item_deducts_stock_and_recomputes_total(shop, lamp, order):
    line = add_order_item(
        user=shop.member, order_id=order.id, product_id=lamp.id, warehouse_id=shop.backup.id, quantity=3, price="7.50"
    )

    order.refresh_from_db()
    assert line.total == Decimal("22.50")
    assert order.total_amount == Decimal("42.50")
    assert _stock(lamp, shop.backup) == 2
    assert _updates(lamp) == [(shop.backup.id, -3, 2)]
    assert StockMovement.objects.get(movement_type=StockMovement.TYPE_ORDER_UPDATE).order_number == "o001"


def test_add_item_checks_stock(shop, lamp, order):
    with pytest.raises(InsufficientStock):
        add_order_item(user=shop.admin, order_id=order.id, product_id=lamp.id, warehouse_id=shop.backup.id, quantity=6)

    assert order.items.count() == 1
    assert _stock(lamp, shop.backup) == 5


def test_add_item_rejects_inactive_or_foreign_product(shop, order):
    from catalog.tests.factories import ProductFactory

    inactive = ProductFactory(project=shop.project, is_active=False)
    foreign = ProductFactory()

    for product in (inactive, foreign):
        with pytest.raises(Http404):
            add_order_item(
                user=shop.admin, order_id=order.id, product_id=product.id, warehouse_id=shop.main.id, quantity=1
            )


def test_add_item_to_cancelled_order_does_not_touch_stock(shop, lamp, order):
    update_order(user=shop.admin, order_id=order.id, changes={"status": Order.STATUS_CANCELLED})

    add_order_item(user=shop.admin, order_id=order.id, product_id=lamp.id, warehouse_id=shop.main.id, quantity=4)

    assert _stock(lamp, shop.main) == 10
    assert _updates(lamp) == []
    assert order.items.count() == 2


def test_update_item_quantity_applies_only_the_difference(shop, lamp, order):
    line = order.items.get()

    update_order_item(user=shop.member, item_id=line.id, quantity=5)
    update_order_item(user=shop.member, item_id=line.id, quantity=1)

    line.refresh_from_db()
    order.refresh_from_db()
    assert line.quantity == 1
    assert line.total == Decimal("10.00")
    assert order.total_amount == Decimal("10.00")
    assert _stock(lamp, shop.main) == 9
    assert _updates(lamp) == [(shop.main.id, -3, 5), (shop.main.id, 4, 9)]


def test_update_item_increase_beyond_stock_fails(shop, lamp, order):
    line = order.items.get()

    with pytest.raises(InsufficientStock) as excinfo:
        update_order_item(user=shop.admin, item_id=line.id, quantity=13)

    assert excinfo.value.available == 8
    assert excinfo.value.requested == 11
    line.refresh_from_db()
    assert line.quantity == 2
    assert _stock(lamp, shop.main) == 8


def test_update_item_moves_stock_between_warehouses(shop, lamp, order):
    line = order.items.get()

    update_order_item(user=shop.admin, item_id=line.id, warehouse_id=shop.backup.id, quantity=4)

    line.refresh_from_db()
    assert line.warehouse_id == shop.backup.id
    assert _stock(lamp, shop.main) == 10
    assert _stock(lamp, shop.backup) == 1
    assert _updates(lamp) == [(shop.main.id, 2, 10), (shop.backup.id, -4, 1)]


def test_update_item_to_unstocked_warehouse_is_404(shop, order):
    from catalog.tests.factories import WarehouseFactory

    empty = WarehouseFactory(project=shop.project)
    line = order.items.get()

    with pytest.raises(Http404):
        update_order_item(user=shop.admin, item_id=line.id, warehouse_id=empty.id)


def test_update_item_price_only_writes_no_movement(shop, lamp, order):
    line = order.items.get()

    update_order_item(user=shop.admin, item_id=line.id, price="12.00")

    order.refresh_from_db()
    assert order.total_amount == Decimal("24.00")
    assert _updates(lamp) == []


def test_update_item_on_cancelled_order_has_no_stock_effect(shop, lamp, order):
    update_order(user=shop.admin, order_id=order.id, changes={"status": Order.STATUS_CANCELLED})
    line = order.items.get()

    update_order_item(user=shop.admin, item_id=line.id, quantity=9)

    assert _stock(lamp, shop.main) == 10
    assert _updates(lamp) == []


def test_delete_item_returns_stock_and_is_admin_only(shop, lamp, order):
    line = order.items.get()

    with pytest.raises(PermissionDenied):
        delete_order_item(user=shop.member, item_id=line.id)

    delete_order_item(user=shop.admin, item_id=line.id)

    order.refresh_from_db()
    assert not OrderItem.objects.filter(id=line.id).exists()
    assert _stock(lamp, shop.main) == 10
    assert _updates(lamp) == [(shop.main.id, 2, 10)]
    assert order.total_amount == Decimal("0.00")


def test_line_operations_require_membership(shop, lamp, order):
    from projects.tests.factories import UserFactory

    outsider = UserFactory()
    line = order.items.get()

    with pytest.raises(PermissionDenied):
        add_order_item(user=outsider, order_id=order.id, product_id=lamp.id, warehouse_id=shop.main.id, quantity=1)
    with pytest.raises(PermissionDenied):
        update_order_item(user=outsider, item_id=line.id, quantity=1)
    with pytest.raises(PermissionDenied):
        list_order_services(user=outsider, order_id=order.id)


def test_service_lines_update_type_and_total(shop, order):
    service = ServiceFactory(project=shop.project, name="Installation", price=Decimal("50.00"))

    line = create_order_service(user=shop.member, order_id=order.id, service_id=service.id, quantity=2)
    order.refresh_from_db()
    assert line.service_name == "Installation"
    assert line.total == Decimal("100.00")
    assert order.type == Order.TYPE_MIXED
    assert order.total_amount == Decimal("120.00")

    update_order_service(user=shop.member, line_id=line.id, quantity=1, price="30.00")
    order.refresh_from_db()
    assert order.total_amount == Decimal("50.00")
    assert [s.id for s in list_order_services(user=shop.member, order_id=order.id)] == [line.id]

    with pytest.raises(PermissionDenied):
        delete_order_service(user=shop.member, line_id=line.id)
    delete_order_service(user=shop.admin, line_id=line.id)

    order.refresh_from_db()
    assert not OrderServiceItem.objects.filter(id=line.id).exists()
    assert order.type == Order.TYPE_PRODUCT
    assert order.total_amount == Decimal("20.00")


def test_service_line_requires_active_service_of_the_project(shop, order):
    inactive = ServiceFactory(project=shop.project, is_active=False)
    foreign = ServiceFactory()

    for service in (inactive, foreign):
        with pytest.raises(Http404):
            create_order_service(user=shop.admin, order_id=order.id, service_id=service.id, quantity=1)


def test_service_line_rejects_bad_quantity(shop, order):
    service = ServiceFactory(project=shop.project)

    with pytest.raises(OrderError, match="Quantity must be at least 1"):
        create_order_service(user=shop.admin, order_id=order.id, service_id=service.id, quantity=0)


def test_cancelled_order_line_can_only_move_to_a_stocking_warehouse(shop, lamp, order):
    from catalog.tests.factories import WarehouseFactory

    update_order(user=shop.admin, order_id=order.id, changes={"status": Order.STATUS_CANCELLED})
    line = order.items.get()

    with pytest.raises(Http404):
        update_order_item(user=shop.admin, item_id=line.id, warehouse_id=WarehouseFactory(project=shop.project).id)

    update_order_item(user=shop.admin, item_id=line.id, warehouse_id=shop.backup.id)

    line.refresh_from_db()
    assert line.warehouse_id == shop.backup.id
    assert _stock(lamp, shop.backup) == 5
    assert _updates(lamp) == []
