"""
HTTP API tests.

Verifies:
- Requests without a known, active X-User-Id return 401
- Cashier role denied admin operations (403)
- Domain failures render as {"error", "details"} with their status codes
- End-to-end register flow: open -> sell -> close
"""

import pytest


# =============================================================================
# IDENTITY: 401 / 403
# =============================================================================


class TestIdentity:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/users"),
            ("GET", "/api/products"),
            ("POST", "/api/sales"),
            ("POST", "/api/cash-registers/open"),
            ("GET", "/api/reports/sales"),
            ("POST", "/api/inventory/adjustments"),
        ],
    )
    def test_requires_identity(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_unknown_user_id(self, client, db_session):
        resp = client.get("/api/products", headers={"X-User-Id": "999"})
        assert resp.status_code == 401

    def test_inactive_user(self, client, admin_headers, cashier):
        client.delete(f"/api/users/{cashier.id}", headers=admin_headers)
        resp = client.get("/api/products", headers={"X-User-Id": str(cashier.id)})
        assert resp.status_code == 401


class TestCashierDeniedAdminOperations:

    @pytest.mark.parametrize(
        "method,path,body",
        [
            ("GET", "/api/users", None),
            ("POST", "/api/users", {"username": "x", "password": "xxxx", "full_name": "X"}),
            ("POST", "/api/products", {"name": "X", "price": "1.00"}),
            ("POST", "/api/inventory/adjustments", {"product_id": 1, "adjustment_type": "add", "quantity": 1}),
            ("GET", "/api/reports/sales?start=2026-01-01&end=2026-01-02", None),
            ("GET", "/api/reports/top-products?start=2026-01-01&end=2026-01-02", None),
            ("POST", "/api/sales/1/cancel", None),
        ],
    )
    def test_forbidden(self, client, cashier_headers, method, path, body):
        resp = getattr(client, method.lower())(path, json=body, headers=cashier_headers)
        assert resp.status_code == 403


# =============================================================================
# REGISTER + SALE FLOW
# =============================================================================


class TestSaleFlow:

    def test_open_sell_close(self, client, cashier_headers, product):
        resp = client.post("/api/cash-registers/open", json={"opening_amount": "100.00"}, headers=cashier_headers)
        assert resp.status_code == 201
        session_id = resp.json["session"]["id"]
        assert resp.json["session"]["status"] == "open"

        resp = client.post(
            "/api/sales",
            json={
                "session_id": session_id,
                "payment_method": "cash",
                "payment_amount": "60.00",
                "items": [{"product_id": product.id, "quantity": 5}],
            },
            headers=cashier_headers,
        )
        assert resp.status_code == 201
        sale = resp.json["sale"]
        assert sale["total"] == "50.00"
        assert sale["change_amount"] == "10.00"
        assert sale["items"][0]["quantity"] == "5.000"
        assert sale["created_at"].endswith("Z")

        resp = client.get(f"/api/cash-registers/{session_id}/summary", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.json["summary"]["total_cash"] is None

        resp = client.post(
            f"/api/cash-registers/{session_id}/close",
            json={"closing_amount": "150.00"},
            headers=cashier_headers,
        )
        assert resp.status_code == 200
        summary = resp.json["summary"]
        assert summary["expected_cash"] == "150.00"
        assert summary["difference"] == "0.00"
        assert summary["total_transactions"] == 1

        resp = client.get(f"/api/sales?session_id={session_id}", headers=cashier_headers)
        assert [s["id"] for s in resp.json["sales"]] == [sale["id"]]

        resp = client.get(f"/api/products/{product.id}", headers=cashier_headers)
        assert resp.json["product"]["stock"] == "5.000"

    def test_duplicate_open_is_conflict(self, client, cashier_headers, open_session):
        resp = client.post("/api/cash-registers/open", json={"opening_amount": "0"}, headers=cashier_headers)
        assert resp.status_code == 409
        assert resp.json["details"]["session_id"] == open_session.id

    def test_insufficient_stock_response(self, client, cashier_headers, open_session, product):
        resp = client.post(
            "/api/sales",
            json={
                "session_id": open_session.id,
                "payment_method": "card",
                "payment_amount": "500.00",
                "items": [{"product_id": product.id, "quantity": 11}],
            },
            headers=cashier_headers,
        )
        assert resp.status_code == 409
        assert resp.json["details"]["product_name"] == "Coffee 500g"
        assert resp.json["details"]["available"] == "10.000"

    def test_missing_fields(self, client, cashier_headers, open_session):
        resp = client.post("/api/sales", json={"session_id": open_session.id}, headers=cashier_headers)
        assert resp.status_code == 400
        assert "items" in resp.json["details"]["missing"]

    def test_cashier_cannot_sell_on_other_session(self, client, other_cashier_headers, open_session, product):
        resp = client.post(
            "/api/sales",
            json={
                "session_id": open_session.id,
                "payment_method": "cash",
                "payment_amount": "10.00",
                "items": [{"product_id": product.id, "quantity": 1}],
            },
            headers=other_cashier_headers,
        )
        assert resp.status_code == 403

    def test_admin_sells_on_behalf_of_owner(self, client, admin_headers, cashier, open_session, product):
        resp = client.post(
            "/api/sales",
            json={
                "session_id": open_session.id,
                "payment_method": "transfer",
                "payment_amount": "10.00",
                "items": [{"product_id": product.id, "quantity": 1}],
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["sale"]["user_id"] == cashier.id

    def test_non_owner_cashier_cannot_close(self, client, other_cashier_headers, open_session):
        resp = client.post(
            f"/api/cash-registers/{open_session.id}/close",
            json={"closing_amount": "100.00"},
            headers=other_cashier_headers,
        )
        assert resp.status_code == 403

    def test_admin_cancel(self, client, admin_headers, cashier_headers, open_session, product):
        sale = client.post(
            "/api/sales",
            json={
                "session_id": open_session.id,
                "payment_method": "cash",
                "payment_amount": "20.00",
                "items": [{"product_id": product.id, "quantity": 2}],
            },
            headers=cashier_headers,
        ).json["sale"]

        resp = client.post(f"/api/sales/{sale['id']}/cancel", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["sale"]["status"] == "cancelled"

        resp = client.post(f"/api/sales/{sale['id']}/cancel", headers=admin_headers)
        assert resp.status_code == 409

    def test_open_sessions_lookup(self, client, cashier, cashier_headers, open_session):
        resp = client.get(f"/api/cash-registers/open?user_id={cashier.id}", headers=cashier_headers)
        assert resp.json["session"]["id"] == open_session.id

        resp = client.get("/api/cash-registers/open", headers=cashier_headers)
        assert [s["id"] for s in resp.json["sessions"]] == [open_session.id]

    def test_missing_session_is_404(self, client, cashier_headers):
        resp = client.get("/api/cash-registers/999", headers=cashier_headers)
        assert resp.status_code == 404


# =============================================================================
# ADMIN OPERATIONS
# =============================================================================


class TestAdminOperations:

    def test_inventory_adjustment(self, client, admin_headers, product):
        resp = client.post(
            "/api/inventory/adjustments",
            json={"product_id": product.id, "adjustment_type": "negative", "quantity": "11", "reason": "Count"},
            headers=admin_headers,
        )
        assert resp.status_code == 409

        resp = client.post(
            "/api/inventory/adjustments",
            json={"product_id": product.id, "adjustment_type": "add", "quantity": "5"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["adjustment"]["new_stock"] == "15.000"

        resp = client.get(f"/api/inventory/adjustments?product_id={product.id}", headers=admin_headers)
        assert len(resp.json["adjustments"]) == 1

    def test_reports(self, client, admin_headers, cashier, open_session, product):
        from cashdesk.services import sales_service
        from cashdesk.time_utils import utcnow

        sales_service.create_sale(
            session_id=open_session.id,
            user_id=cashier.id,
            payment_method="cash",
            payment_amount="30.00",
            items=[{"product_id": product.id, "quantity": 3}],
        )
        day = utcnow().date().isoformat()

        resp = client.get(f"/api/reports/sales?start={day}&end={day}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["total_sales"] == "30.00"
        assert resp.json["average_sale"] == "30.00"

        resp = client.get(f"/api/reports/top-products?start={day}&end={day}&limit=5", headers=admin_headers)
        assert resp.json["products"][0]["total_quantity"] == "3.000"

        resp = client.get(f"/api/reports/top-products?start={day}&end={day}&limit=0", headers=admin_headers)
        assert resp.status_code == 400

    def test_report_requires_range(self, client, admin_headers):
        resp = client.get("/api/reports/sales", headers=admin_headers)
        assert resp.status_code == 400

    def test_product_crud(self, client, admin_headers):
        resp = client.post(
            "/api/products",
            json={"name": "Tea", "price": "3.20", "barcode": "111", "stock": "4"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        product_id = resp.json["product"]["id"]

        resp = client.patch(f"/api/products/{product_id}", json={"stock": "100"}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.get("/api/products?barcode=111", headers=admin_headers)
        assert [p["id"] for p in resp.json["products"]] == [product_id]

        resp = client.delete(f"/api/products/{product_id}", headers=admin_headers)
        assert resp.json["product"]["active"] is False

    def test_user_crud(self, client, admin_headers):
        resp = client.post(
            "/api/users",
            json={"username": "newbie", "password": "pass1", "full_name": "New Bie"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["user"]["role"] == "cashier"
        assert "password_hash" not in resp.json["user"]

        resp = client.post("/api/users/verify", json={"username": "newbie", "password": "pass1"})
        assert resp.status_code == 200

        resp = client.post("/api/users/verify", json={"username": "newbie", "password": "wrong"})
        assert resp.status_code == 401


def test_health(client, admin_user):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json["status"] == "healthy"
