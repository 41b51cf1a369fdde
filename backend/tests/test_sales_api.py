"""
Sales, orders and inventory API tests.

Verifies:
- the insufficient-inventory error reaches the client with its details
- customers can only place orders for themselves and only see their own sales
- role permissions gate the staff-only endpoints
"""

from decimal import Decimal

import pytest

from conftest import put_stock, stock_of


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("GET", "/api/orders"),
            ("POST", "/api/payments"),
            ("GET", "/api/inventory/general"),
            ("POST", "/api/production"),
            ("GET", "/api/products"),
            ("GET", "/api/users"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"


class TestCreateSaleApi:

    def test_direct_sale(self, client, employee_headers, employee_user, bread, north):
        put_stock(bread, north, 10)
        resp = client.post("/api/sales", headers=employee_headers, json={
            "location_id": north.id,
            "sale_kind": "Venta Directa",
            "payment_method": "card",
            "lines": [{"product_id": bread.id, "quantity": 4}],
        })
        assert resp.status_code == 201
        sale = resp.json["sale"]
        assert sale["kind"] == "DIRECT"
        assert sale["payment_method"] == "CARD"
        assert sale["total_cents"] == 10000
        assert sale["customer_name"] == "Generic customer"
        assert sale["created_by_user_id"] == employee_user.id
        assert sale["lines"][0]["quantity"] == "4"
        assert stock_of(bread, north) == Decimal("6")

    def test_insufficient_inventory_body(self, client, employee_headers, bread, north):
        put_stock(bread, north, 3)
        resp = client.post("/api/sales", headers=employee_headers, json={
            "location_id": north.id,
            "sale_kind": "direct",
            "lines": [{"product_id": bread.id, "quantity": 5}],
        })
        assert resp.status_code == 409
        assert resp.json["code"] == "INSUFFICIENT_INVENTORY"
        assert resp.json["details"]["available"] == "3"
        assert resp.json["details"]["requested"] == "5"
        assert stock_of(bread, north) == Decimal("3")

    def test_missing_fields(self, client, employee_headers):
        resp = client.post("/api/sales", headers=employee_headers, json={"sale_kind": "pedido"})
        assert resp.status_code == 400
        assert resp.json["details"]["missing_fields"] == ["location_id", "lines", "delivery_date"]

    def test_unknown_location_is_404(self, client, employee_headers, bread):
        resp = client.post("/api/sales", headers=employee_headers, json={
            "location_id": 999999,
            "sale_kind": "direct",
            "lines": [{"product_id": bread.id, "quantity": 1}],
        })
        assert resp.status_code == 404


class TestCustomerOrders:

    def test_customer_sale_becomes_own_order(self, client, customer_headers, customer, other_customer, bread, north):
        resp = client.post("/api/sales", headers=customer_headers, json={
            "location_id": north.id,
            "customer_id": other_customer.id,
            "delivery_date": "2025-03-01",
            "lines": [{"product_id": bread.id, "quantity": 12}],
        })
        assert resp.status_code == 201
        sale = resp.json["sale"]
        assert sale["kind"] == "ORDER"
        assert sale["customer_id"] == customer.id
        assert sale["created_by_user_id"] is None
        assert sale["order"]["delivery_date"] == "2025-03-01"
        assert sale["order"]["balance_cents"] == 30000

    def test_customer_cannot_make_direct_sale(self, client, customer_headers, bread, north):
        resp = client.post("/api/sales", headers=customer_headers, json={
            "location_id": north.id,
            "sale_kind": "direct",
            "lines": [{"product_id": bread.id, "quantity": 1}],
        })
        assert resp.status_code == 400

    def test_customer_sees_only_own_sales(self, client, customer_headers, employee_headers, customer, other_customer, bread, north):
        for owner in (customer, other_customer):
            resp = client.post("/api/sales", headers=employee_headers, json={
                "location_id": north.id,
                "sale_kind": "order",
                "customer_id": owner.id,
                "delivery_date": "2025-03-01",
                "lines": [{"product_id": bread.id, "quantity": 1}],
            })
            assert resp.status_code == 201
        other_sale_id = resp.json["sale"]["id"]
        other_order_id = resp.json["sale"]["order"]["id"]

        resp = client.get("/api/sales", headers=customer_headers)
        assert [s["customer_id"] for s in resp.json["sales"]] == [customer.id]

        resp = client.get("/api/orders", headers=customer_headers)
        assert len(resp.json["orders"]) == 1

        assert client.get(f"/api/sales/{other_sale_id}", headers=customer_headers).status_code == 404
        assert client.get(f"/api/orders/{other_order_id}", headers=customer_headers).status_code == 404
        assert client.get(f"/api/sales/{other_sale_id}", headers=employee_headers).status_code == 200

    def test_customer_cannot_view_inventory(self, client, customer_headers):
        resp = client.get("/api/inventory/general", headers=customer_headers)
        assert resp.status_code == 403
        assert resp.json["required_permission"] == "VIEW_INVENTORY"


class TestSaleStatusApi:

    def test_employee_cannot_annul(self, client, employee_headers, bread, north):
        put_stock(bread, north, 2)
        resp = client.post("/api/sales", headers=employee_headers, json={
            "location_id": north.id, "sale_kind": "direct",
            "lines": [{"product_id": bread.id, "quantity": 1}],
        })
        sale_id = resp.json["sale"]["id"]

        resp = client.patch(f"/api/sales/{sale_id}/status", headers=employee_headers, json={"status": "ANNULLED"})
        assert resp.status_code == 403

    def test_admin_annuls_and_stock_returns(self, client, admin_headers, bread, north):
        put_stock(bread, north, 2)
        resp = client.post("/api/sales", headers=admin_headers, json={
            "location_id": north.id, "sale_kind": "direct",
            "lines": [{"product_id": bread.id, "quantity": 2}],
        })
        sale_id = resp.json["sale"]["id"]
        assert stock_of(bread, north) == Decimal("0")

        resp = client.patch(f"/api/sales/{sale_id}/status", headers=admin_headers, json={"status": "annulled"})
        assert resp.status_code == 200
        assert stock_of(bread, north) == Decimal("2")

        resp = client.patch(f"/api/sales/{sale_id}/status", headers=admin_headers, json={"status": "annulled"})
        assert resp.status_code == 409


class TestInventoryApi:

    def test_untouched_pair_reads_as_zero(self, client, employee_headers, bread, north):
        resp = client.get(f"/api/inventory?product_id={bread.id}&location_id={north.id}", headers=employee_headers)
        assert resp.status_code == 200
        assert resp.json["inventory"]["quantity"] == "0"

    def test_product_totals(self, client, employee_headers, bread, north, south):
        put_stock(bread, north, 4)
        put_stock(bread, south, 1)
        resp = client.get(f"/api/inventory/products/{bread.id}", headers=employee_headers)
        assert resp.status_code == 200
        assert resp.json["total"] == "5"
        assert len(resp.json["locations"]) == 2

    def test_manual_count(self, client, employee_headers, bread, north):
        resp = client.post("/api/inventory", headers=employee_headers, json={
            "product_id": bread.id, "location_id": north.id, "quantity": "7.25",
        })
        assert resp.status_code == 200
        assert resp.json["inventory"]["quantity"] == "7.25"


class TestProductionApi:

    def test_factory_run_via_api(self, client, employee_headers, bread, north):
        resp = client.post("/api/production", headers=employee_headers, json={
            "kind": "factory",
            "name": "Lunes",
            "products": [{"product_id": bread.id, "cantidadesPorSede": {"Sede Norte": 20}}],
        })
        assert resp.status_code == 201
        assert resp.json["production"]["kind"] == "FACTORY"
        assert stock_of(bread, north) == Decimal("20")

    def test_customer_cannot_produce(self, client, customer_headers):
        resp = client.post("/api/production", headers=customer_headers, json={"kind": "factory", "name": "x"})
        assert resp.status_code == 403
