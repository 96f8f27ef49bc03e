from decimal import Decimal

import pytest
from catalog.tests.factories import ServiceFactory, create_stocked_product
from inventory.models import StockItem
from orders.models import Order


@pytest.fixture
def lamp(shop):
    return create_stocked_product(user=shop.admin, project=shop.project, price=Decimal("12.50"), stock={shop.main: 10})


def _create_payload(shop, lamp, quantity=4, **extra):
    return {
        "project_id": shop.project.id,
        "customer_id": shop.customer.id,
        "items": [{"product_id": lamp.id, "warehouse_id": shop.main.id, "quantity": quantity}],
        **extra,
    }


def _post_order(client, shop, lamp, **kwargs):
    return client.post("/api/v1/orders/", _create_payload(shop, lamp, **kwargs), format="json")


def test_create_order_returns_nested_order(admin_client, shop, lamp):
    service = ServiceFactory(project=shop.project, name="Installation", price=Decimal("20.00"))

    r = _post_order(
        admin_client, shop, lamp, services=[{"service_id": service.id, "quantity": 1}], tax_percentage="10.00"
    )

    assert r.status_code == 201
    body = r.json()
    assert body["order_number"] == "o001"
    assert body["type"] == Order.TYPE_MIXED
    assert body["status"] == Order.STATUS_NEW
    assert body["customer_name"] == "Ada Lovelace"
    assert body["subtotal"] == "70.00"
    assert Decimal(body["total_amount"]) == Decimal("77.00")
    assert [(i["product_name"], i["quantity"], i["warehouse_code"]) for i in body["items"]] == [
        ("Desk Lamp", 4, shop.main.code)
    ]
    assert [s["service_name"] for s in body["services"]] == ["Installation"]
    assert StockItem.objects.get(product=lamp, warehouse=shop.main).quantity == 6


def test_create_order_ignores_client_type_and_total(admin_client, shop, lamp):
    r = _post_order(admin_client, shop, lamp, quantity=1, type="SERVICE", total_amount="1.00")

    assert r.status_code == 201
    assert r.json()["type"] == Order.TYPE_PRODUCT
    assert Decimal(r.json()["total_amount"]) == Decimal("12.50")


def test_member_cannot_create_order(member_client, shop, lamp):
    r = _post_order(member_client, shop, lamp)

    assert r.status_code == 403
    assert not Order.objects.exists()


def test_insufficient_stock_returns_400_detail(admin_client, shop, lamp):
    r = _post_order(admin_client, shop, lamp, quantity=11)

    assert r.status_code == 400
    assert r.json()["detail"] == f"Insufficient stock for Desk Lamp in {shop.main.label}. Available: 10, Requested: 11"
    assert not Order.objects.exists()


def test_invalid_quantity_is_a_validation_error(admin_client, shop, lamp):
    r = _post_order(admin_client, shop, lamp, quantity=0)

    assert r.status_code == 400
    assert "items" in r.json()


def test_cancel_and_delivered_rules(admin_client, shop, lamp):
    order_id = _post_order(admin_client, shop, lamp).json()["id"]

    r = admin_client.patch(f"/api/v1/orders/{order_id}/", {"status": Order.STATUS_CANCELLED}, format="json")
    assert r.status_code == 200
    assert r.json()["status"] == Order.STATUS_CANCELLED
    assert StockItem.objects.get(product=lamp, warehouse=shop.main).quantity == 10

    admin_client.patch(f"/api/v1/orders/{order_id}/", {"status": Order.STATUS_DELIVERED}, format="json")
    r = admin_client.patch(f"/api/v1/orders/{order_id}/", {"status": Order.STATUS_CANCELLED}, format="json")
    assert r.status_code == 400
    assert r.json() == {"detail": "Cannot cancel an order that has been delivered"}


def test_member_can_read_but_not_update_or_delete(admin_client, member_client, shop, lamp):
    order_id = _post_order(admin_client, shop, lamp).json()["id"]

    assert member_client.get(f"/api/v1/orders/{order_id}/").status_code == 200
    assert member_client.patch(f"/api/v1/orders/{order_id}/", {"payment": "PAID"}, format="json").status_code == 403
    assert member_client.delete(f"/api/v1/orders/{order_id}/").status_code == 403


def test_delete_order(admin_client, shop, lamp):
    order_id = _post_order(admin_client, shop, lamp).json()["id"]

    r = admin_client.delete(f"/api/v1/orders/{order_id}/")

    assert r.status_code == 200
    assert r.json() == {"success": True}
    assert admin_client.get(f"/api/v1/orders/{order_id}/").status_code == 404
    assert StockItem.objects.get(product=lamp, warehouse=shop.main).quantity == 10


def test_list_orders_filters_and_paginates(admin_client, member_client, shop, lamp):
    first = _post_order(admin_client, shop, lamp, quantity=1).json()["id"]
    second = _post_order(admin_client, shop, lamp, quantity=1, payment="PAID").json()["id"]
    third = _post_order(admin_client, shop, lamp, quantity=1).json()["id"]
    admin_client.patch(f"/api/v1/orders/{third}/", {"status": Order.STATUS_SHIPPING}, format="json")
    base = f"/api/v1/orders/?project_id={shop.project.id}"

    r = member_client.get(base + "&limit=2")
    assert r.status_code == 200
    body = r.json()
    assert [o["id"] for o in body["results"]] == [third, second]
    assert body["results"][0]["items_count"] == 1
    assert body["pagination"]["total_items"] == 3
    assert body["pagination"]["has_next_page"] is True

    def ids(query):
        return sorted(o["id"] for o in member_client.get(base + query).json()["results"])

    assert ids("&selected_statuses=NEW&selected_statuses=SHIPPING") == sorted([first, second, third])
    assert ids("&selected_statuses=SHIPPING") == [third]
    assert ids("&is_unpaid=true") == sorted([first, third])
    assert ids("&search=o002") == [second]
    assert ids("&search=ada") == sorted([first, second, third])


def test_list_orders_requires_project_access(api_client, shop):
    from projects.tests.factories import UserFactory

    api_client.force_authenticate(user=UserFactory())
    assert api_client.get(f"/api/v1/orders/?project_id={shop.project.id}").status_code == 403


def test_unauthenticated_request_is_rejected(api_client, shop):
    assert api_client.get(f"/api/v1/orders/?project_id={shop.project.id}").status_code == 401


def test_item_endpoints(admin_client, member_client, shop, lamp):
    order_id = _post_order(admin_client, shop, lamp, quantity=2).json()["id"]

    r = member_client.post(
        f"/api/v1/orders/{order_id}/items/",
        {"product_id": lamp.id, "warehouse_id": shop.main.id, "quantity": 9},
        format="json",
    )
    assert r.status_code == 400
    assert r.json()["detail"].startswith("Insufficient stock for Desk Lamp")

    r = member_client.post(
        f"/api/v1/orders/{order_id}/items/",
        {"product_id": lamp.id, "warehouse_id": shop.main.id, "quantity": 3},
        format="json",
    )
    assert r.status_code == 201
    item_id = r.json()["id"]

    r = member_client.patch(f"/api/v1/orders/items/{item_id}/", {"quantity": 1}, format="json")
    assert r.status_code == 200
    assert r.json()["quantity"] == 1
    assert len(member_client.get(f"/api/v1/orders/{order_id}/items/").json()) == 2

    assert member_client.delete(f"/api/v1/orders/items/{item_id}/").status_code == 403
    assert admin_client.delete(f"/api/v1/orders/items/{item_id}/").json() == {"success": True}
    assert StockItem.objects.get(product=lamp, warehouse=shop.main).quantity == 8


def test_service_endpoints(admin_client, member_client, shop, lamp):
    order_id = _post_order(admin_client, shop, lamp, quantity=1).json()["id"]
    service = ServiceFactory(project=shop.project, price=Decimal("30.00"))

    url = f"/api/v1/orders/{order_id}/services/"
    r = member_client.post(url, {"service_id": service.id, "quantity": 2}, format="json")
    assert r.status_code == 201
    line_id = r.json()["id"]
    assert r.json()["total"] == "60.00"

    r = member_client.patch(f"/api/v1/orders/services/{line_id}/", {"price": "25.00"}, format="json")
    assert r.status_code == 200
    assert r.json()["total"] == "50.00"
    assert [s["id"] for s in member_client.get(url).json()] == [line_id]
    assert Decimal(member_client.get(f"/api/v1/orders/{order_id}/").json()["total_amount"]) == Decimal("62.50")

    assert member_client.delete(f"/api/v1/orders/services/{line_id}/").status_code == 403
    assert admin_client.delete(f"/api/v1/orders/services/{line_id}/").status_code == 200

    missing = member_client.post(url, {"service_id": 999999, "quantity": 1}, format="json")
    assert missing.status_code == 404
