import pytest
from catalog.services import update_product
from catalog.tests.factories import ProductFactory, create_stocked_product
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db.models import Sum
from django.http import Http404
from inventory.models import StockItem, StockMovement
from inventory.selectors import ledger_discrepancies
from inventory.services import (
    InsufficientStock,
    MovementError,
    apply_stock_change,
    current_stock,
    lock_stock,
    set_stock_level,
)
from inventory.tests.factories import StockItemFactory
from orders.models import Order
from orders.services import add_order_item, create_order, delete_order, update_order, update_order_item


def _ledger_total(product, warehouse):
    return StockMovement.objects.filter(product=product, warehouse=warehouse).aggregate(total=Sum("quantity"))["total"]


def test_ledger_matches_stock_after_mixed_operations(shop):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 20, shop.backup: 4})
    first = create_order(
        user=shop.admin,
        project_id=shop.project.id,
        customer_id=shop.customer.id,
        items=[{"product_id": product.id, "warehouse_id": shop.main.id, "quantity": 5}],
    )
    second = create_order(
        user=shop.admin,
        project_id=shop.project.id,
        customer_id=shop.customer.id,
        items=[{"product_id": product.id, "warehouse_id": shop.backup.id, "quantity": 2}],
    )
    add_order_item(user=shop.admin, order_id=first.id, product_id=product.id, warehouse_id=shop.backup.id, quantity=1)
    update_order_item(user=shop.admin, item_id=first.items.order_by("id").first().id, quantity=7)
    update_order(user=shop.admin, order_id=second.id, changes={"status": Order.STATUS_CANCELLED})
    update_order(user=shop.admin, order_id=second.id, changes={"status": Order.STATUS_PENDING})
    update_product(
        user=shop.admin,
        product_id=product.id,
        name=product.name,
        price=product.price,
        stock_by_warehouse={shop.main.id: 15, shop.backup.id: 1},
    )
    delete_order(user=shop.admin, order_id=second.id)

    for item in StockItem.objects.filter(product=product):
        assert _ledger_total(product, item.warehouse) == item.quantity
    assert ledger_discrepancies(product_id=product.id) == []

    ids = list(StockMovement.objects.filter(product=product).order_by("id").values_list("movement_id", flat=True))
    assert ids == [f"m{n:03d}" for n in range(1, len(ids) + 1)]
    assert all(m.new_stock == m.previous_stock + m.quantity for m in StockMovement.objects.filter(product=product))


def test_apply_stock_change_refuses_negative_stock(shop):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 2})
    item = StockItem.objects.get(product=product)

    with pytest.raises(InsufficientStock):
        apply_stock_change(stock_item=item, delta=-3, movement_type=StockMovement.TYPE_ORDER_UPDATE)
    with pytest.raises(MovementError):
        set_stock_level(stock_item=item, quantity=-1, movement_type=StockMovement.TYPE_PRODUCT_UPDATE)

    item.refresh_from_db()
    assert item.quantity == 2
    assert StockMovement.objects.filter(product=product).count() == 1


def test_zero_delta_writes_no_movement(shop):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 2})
    item = StockItem.objects.get(product=product)

    assert apply_stock_change(stock_item=item, delta=0, movement_type=StockMovement.TYPE_ORDER_UPDATE) is None
    assert StockMovement.objects.filter(product=product).count() == 1


def test_discrepancies_report_rows_without_ledger(shop):
    product = ProductFactory(project=shop.project, name="Chair")
    StockItemFactory(product=product, warehouse=shop.main, quantity=7)

    assert ledger_discrepancies() == [
        {
            "product_id": product.id,
            "product": "Chair",
            "warehouse_id": shop.main.id,
            "warehouse": shop.main.label,
            "stock": 7,
            "ledger": 0,
        }
    ]


def test_check_stock_ledger_command(shop, capsys):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 3})

    call_command("check_stock_ledger")
    assert "Stock ledger consistent" in capsys.readouterr().out

    StockItem.objects.filter(product=product).update(quantity=5)
    call_command("check_stock_ledger", product_id=product.id)
    out = capsys.readouterr().out
    assert "stock=5 ledger=3 (diff +2)" in out
    assert "Stock ledger mismatches: 1" in out

    with pytest.raises(CommandError, match="Stock ledger mismatches: 1"):
        call_command("check_stock_ledger", "--fail-on-mismatch")


def test_lock_stock_and_current_stock(shop):
    product = create_stocked_product(user=shop.admin, project=shop.project, stock={shop.main: 4})

    item = lock_stock(product_id=product.id, warehouse_id=shop.main.id)
    assert (item.product_id, item.warehouse_id, item.quantity) == (product.id, shop.main.id, 4)
    assert current_stock(product_id=product.id, warehouse_id=shop.main.id) == 4

    with pytest.raises(Http404):
        lock_stock(product_id=product.id, warehouse_id=shop.backup.id)
    assert current_stock(product_id=product.id, warehouse_id=shop.backup.id) == 0
