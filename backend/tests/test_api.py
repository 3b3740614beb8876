from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from backend.app.api.deps import get_db
from backend.app.main import app


@pytest.fixture
def client(db_session):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def catalog(client):
    sup = client.post("/v1/suppliers", json={"name": "Island Foods", "contact": "sales@island.test"})
    assert sup.status_code == 201
    prod = client.post("/v1/products", json={"sku": "RICE-1", "name": "Rice", "price": "2.50", "stock": 10})
    assert prod.status_code == 201
    return sup.json()["id"], prod.json()["id"]


def product_stock(client, product_id):
    return client.get(f"/v1/products/{product_id}").json()["stock"]


def test_health(client):
    r = client.get("/v1/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "database": "connected"}


def test_order_lifecycle(client, catalog):
    supplier_id, product_id = catalog

    r = client.post("/v1/orders", json={"supplier_id": supplier_id, "items": [{"product_id": product_id, "qty": 4}]})
    assert r.status_code == 201
    order = r.json()
    assert order["status"] == "Pending"
    assert Decimal(order["total_amount"]) == Decimal("10.00")
    assert Decimal(order["items"][0]["unit_price"]) == Decimal("2.50")
    assert product_stock(client, product_id) == 6

    r = client.patch(f"/v1/orders/{order['id']}", json={"status": "Shipped"})
    assert r.status_code == 200
    assert r.json()["status"] == "Shipped"

    r = client.put(f"/v1/orders/{order['id']}", json={"status": "Cancelled"})
    assert r.status_code == 200
    assert product_stock(client, product_id) == 10

    r = client.patch(f"/v1/orders/{order['id']}", json={"status": "Pending"})
    assert r.status_code == 409
    assert r.json()["status"] == "error"
    assert r.json()["from_status"] == "Cancelled"

    r = client.delete(f"/v1/orders/{order['id']}")
    assert r.status_code == 200
    body = r.json()
    assert body["deleted_order"]["id"] == order["id"]
    assert body["message"] == f"Order {order['id']} successfully deleted."
    assert product_stock(client, product_id) == 10

    assert client.get(f"/v1/orders/{order['id']}").status_code == 404


def test_insufficient_stock_reports_available(client, catalog):
    supplier_id, product_id = catalog

    r = client.post("/v1/orders", json={"supplier_id": supplier_id, "items": [{"product_id": product_id, "qty": 11}]})

    assert r.status_code == 409
    body = r.json()
    assert body["product_id"] == product_id
    assert body["available"] == 10
    assert product_stock(client, product_id) == 10


def test_create_order_with_unknown_references(client, catalog):
    supplier_id, product_id = catalog

    r = client.post("/v1/orders", json={"supplier_id": 987654321, "items": [{"product_id": product_id, "qty": 1}]})
    assert r.status_code == 400
    assert r.json()["supplier_id"] == 987654321

    r = client.post("/v1/orders", json={"supplier_id": supplier_id, "items": [{"product_id": 987654321, "qty": 1}]})
    assert r.status_code == 400
    assert r.json()["product_id"] == 987654321


@pytest.mark.parametrize(
    "items",
    [[], [{"product_id": 1, "qty": 0}], [{"product_id": 1, "qty": -2}]],
)
def test_malformed_items_are_rejected(client, catalog, items):
    supplier_id, _ = catalog
    r = client.post("/v1/orders", json={"supplier_id": supplier_id, "items": items})
    assert r.status_code == 422


def test_list_orders_envelope(client, catalog):
    supplier_id, product_id = catalog
    for _ in range(3):
        client.post("/v1/orders", json={"supplier_id": supplier_id, "items": [{"product_id": product_id, "qty": 1}]})

    r = client.get("/v1/orders", params={"status": "Pending", "limit": 2})
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 2
    assert body["limit"] == 2
    assert body["page"] == 1
    assert body["total_count"] == 3
    assert body["total_pages"] == 2


def test_product_update_does_not_touch_stock(client, catalog):
    _, product_id = catalog

    r = client.patch(f"/v1/products/{product_id}", json={"name": "Jasmine rice", "stock": 999})
    assert r.status_code == 200
    assert r.json()["name"] == "Jasmine rice"
    assert r.json()["stock"] == 10


def test_stock_adjustments_go_through_the_ledger(client, catalog):
    _, product_id = catalog

    r = client.post(f"/v1/products/{product_id}/stock-adjustments", json={"delta": 5, "reason": "receipt"})
    assert r.status_code == 200
    assert r.json()["stock"] == 15

    r = client.post(f"/v1/products/{product_id}/stock-adjustments", json={"delta": -16})
    assert r.status_code == 409
    assert r.json()["available"] == 15


def test_duplicate_sku_and_supplier_name(client, catalog):
    r = client.post("/v1/products", json={"sku": "RICE-1", "name": "Other", "price": "1.00"})
    assert r.status_code == 409

    r = client.post("/v1/suppliers", json={"name": "Island Foods", "contact": "x"})
    assert r.status_code == 409


def test_referenced_records_can_not_be_deleted(client, catalog):
    supplier_id, product_id = catalog
    client.post("/v1/orders", json={"supplier_id": supplier_id, "items": [{"product_id": product_id, "qty": 1}]})

    assert client.delete(f"/v1/products/{product_id}").status_code == 409
    assert client.delete(f"/v1/suppliers/{supplier_id}").status_code == 409


def test_product_and_supplier_listing(client, catalog):
    client.post("/v1/products", json={"sku": "FLOUR-1", "name": "Wheat flour", "price": "1.10"})

    r = client.get("/v1/products", params={"name": "flour"})
    assert r.status_code == 200
    assert [p["sku"] for p in r.json()["data"]] == ["FLOUR-1"]

    r = client.get("/v1/suppliers", params={"name": "island"})
    assert r.json()["total_count"] == 1

    assert client.get("/v1/products/987654321").status_code == 404
    assert client.get("/v1/suppliers/987654321").status_code == 404
