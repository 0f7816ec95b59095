# Overview: Pytest coverage for the HTTP API (status codes and response shapes).

from decimal import Decimal

import pytest

from agripos.services import inventory_service


class TestAuthentication:
    @pytest.mark.parametrize("path", ["/api/orders", "/api/orders/pending-count", "/api/sessions/1"])
    def test_identity_headers_required(self, client, db_session, path):
        response = client.get(path)
        assert response.status_code == 401

    def test_non_integer_ids_rejected(self, client, db_session):
        response = client.get("/api/orders", headers={"X-User-Id": "abc", "X-Branch-Id": "1"})
        assert response.status_code == 401


class TestSystem:
    def test_health(self, client, db_session):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["details"]["pending_orders"] == 0

    def test_cors_for_allowed_origin(self, client, db_session):
        response = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

        response = client.get("/api/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in response.headers


class TestCheckoutApi:
    def test_checkout_created(self, client, db_session, branch, headers, vitamins, stock):
        stock(vitamins, 10)

        response = client.post("/api/checkout", headers=headers, json={
            "items": [{"product_id": vitamins.id, "quantity": 2}],
            "payment_method": "cash",
            "cash_tendered_cents": 30000,
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data["transaction"]["total_cents"] == 22400
        assert data["change_cents"] == 7600
        assert data["stock_complete"] is True
        assert data["stock_results"][0]["quantity_after"] in ("8", "8.000")
        assert inventory_service.get_inventory(branch.id, vitamins.id).quantity_on_hand == Decimal("8")

    def test_insufficient_payment_is_400(self, client, db_session, headers, vitamins, stock):
        stock(vitamins, 10)
        response = client.post("/api/checkout", headers=headers, json={
            "items": [{"product_id": vitamins.id, "quantity": 2}],
            "payment_method": "cash",
            "cash_tendered_cents": 100,
        })

        assert response.status_code == 400
        assert response.get_json()["error"] == "Insufficient payment"

    def test_oversized_quantity_is_400(self, client, db_session, headers, vitamins, stock):
        stock(vitamins, 10)
        response = client.post("/api/checkout", headers=headers, json={
            "items": [{"product_id": vitamins.id, "quantity": 1e30}],
            "payment_method": "cash",
        })
        assert response.status_code == 400

    def test_allow_partial_stock_must_be_boolean(self, client, db_session, headers, vitamins, dewormer, stock):
        stock(vitamins, 10)
        body = {
            "items": [
                {"product_id": vitamins.id, "quantity": 1},
                {"product_id": dewormer.id, "quantity": 1},
            ],
            "payment_method": "gcash",
        }

        response = client.post("/api/checkout", headers=headers, json={**body, "allow_partial_stock": "false"})
        assert response.status_code == 400
        assert response.get_json()["error"] == "allow_partial_stock must be true or false"

        response = client.post("/api/checkout", headers=headers, json={**body, "allow_partial_stock": False})
        assert response.status_code == 400

        response = client.post("/api/checkout", headers=headers, json={**body, "allow_partial_stock": True})
        assert response.status_code == 201
        assert response.get_json()["stock_complete"] is False

    def test_unknown_branch_is_404(self, client, db_session, headers, vitamins, stock):
        stock(vitamins, 10)
        response = client.post("/api/checkout", headers={**headers, "X-Branch-Id": "999999"}, json={
            "items": [{"product_id": vitamins.id, "quantity": 1}],
            "payment_method": "cash",
        })
        assert response.status_code == 404

    def test_empty_cart_is_400(self, client, db_session, headers):
        response = client.post("/api/checkout", headers=headers, json={"items": [], "payment_method": "cash"})
        assert response.status_code == 400

    def test_void_via_api(self, client, db_session, headers, vitamins, stock):
        stock(vitamins, 10)
        created = client.post("/api/checkout", headers=headers, json={
            "items": [{"product_id": vitamins.id, "quantity": 1}],
            "payment_method": "gcash",
        }).get_json()
        txn_id = created["transaction"]["id"]

        response = client.post(f"/api/transactions/{txn_id}/void", headers=headers, json={})
        assert response.status_code == 400

        response = client.post(f"/api/transactions/{txn_id}/void", headers=headers, json={"reason": "mis-scan"})
        assert response.status_code == 200
        assert response.get_json()["transaction"]["status"] == "void"

        response = client.get(f"/api/transactions/{txn_id}", headers=headers)
        assert response.get_json()["transaction"]["payment"]["payment_method"] == "gcash"


class TestSessionsApi:
    def test_open_and_close(self, client, db_session, headers, vitamins, stock):
        stock(vitamins, 10)
        response = client.post("/api/sessions", headers=headers, json={"starting_cash_cents": 500000})
        assert response.status_code == 201
        session_id = response.get_json()["session"]["id"]

        assert client.post("/api/sessions", headers=headers, json={}).status_code == 409

        client.post("/api/checkout", headers=headers, json={
            "items": [{"product_id": vitamins.id, "quantity": 2}],
            "payment_method": "cash",
        })

        response = client.post(f"/api/sessions/{session_id}/close", headers=headers, json={})
        assert response.status_code == 400

        response = client.post(f"/api/sessions/{session_id}/close", headers=headers, json={"ending_cash_cents": 522400})
        assert response.status_code == 200
        data = response.get_json()["session"]
        assert data["expected_cash_cents"] == 522400
        assert data["cash_variance_cents"] == 0

        summary = client.get(f"/api/sessions/{session_id}/summary", headers=headers).get_json()
        assert summary["cash_takings_cents"] == 22400

        txns = client.get(f"/api/sessions/{session_id}/transactions", headers=headers).get_json()
        assert txns["count"] == 1

    def test_current_session(self, client, db_session, headers):
        first = client.post("/api/sessions/current", headers=headers).get_json()["session"]
        second = client.post("/api/sessions/current", headers=headers).get_json()["session"]
        assert first["id"] == second["id"]
        assert first["status"] == "open"

    def test_suspend_and_resume(self, client, db_session, headers):
        session_id = client.post("/api/sessions/current", headers=headers).get_json()["session"]["id"]

        response = client.post(f"/api/sessions/{session_id}/suspend", headers=headers)
        assert response.get_json()["session"]["status"] == "suspended"
        assert client.post("/api/sessions/current", headers=headers).status_code == 409

        response = client.post(f"/api/sessions/{session_id}/resume", headers=headers)
        assert response.get_json()["session"]["status"] == "open"

    def test_unknown_session_is_404(self, client, db_session, headers):
        assert client.get("/api/sessions/99999", headers=headers).status_code == 404


class TestOrdersApi:
    def _place(self, client, headers, product, quantity, **extra):
        body = {
            "order_type": "pickup",
            "customer_name": "Ana Reyes",
            "customer_phone": "+639181112222",
            "items": [{"product_id": product.id, "quantity": quantity}],
        }
        body.update(extra)
        return client.post("/api/orders", headers=headers, json=body)

    def test_full_pickup_flow(self, client, db_session, branch, headers, vitamins, stock):
        stock(vitamins, 10)

        response = self._place(client, headers, vitamins, 2)
        assert response.status_code == 201
        order = response.get_json()["order"]
        assert order["branch_id"] == branch.id
        assert order["status"] == "pending_confirmation"

        count = client.get("/api/orders/pending-count", headers=headers).get_json()
        assert count["count"] == 1
        assert count["poll_interval_seconds"] == 30

        response = client.post(f"/api/orders/{order['id']}/confirm", headers=headers)
        assert response.status_code == 200
        assert response.get_json()["order"]["estimated_ready_time"] is not None

        assert client.post(f"/api/orders/{order['id']}/ready", headers=headers).status_code == 200

        response = client.post(f"/api/orders/{order['id']}/complete", headers=headers, json={
            "cash_tendered_cents": 22400,
        })
        assert response.status_code == 200
        data = response.get_json()
        assert data["order"]["status"] == "completed"
        assert data["transaction"]["transaction"]["transaction_source"] == "online_order"

        detail = client.get(f"/api/orders/{order['id']}", headers=headers).get_json()["order"]
        assert [h["to_status"] for h in detail["status_history"]] == [
            "pending_confirmation", "confirmed", "ready_for_pickup", "completed",
        ]

    def test_confirm_without_stock_is_409(self, client, db_session, headers, vitamins, stock):
        stock(vitamins, 1)
        order_id = self._place(client, headers, vitamins, 3).get_json()["order"]["id"]

        response = client.post(f"/api/orders/{order_id}/confirm", headers=headers)

        assert response.status_code == 409
        missing = response.get_json()["details"]["missing_items"]
        assert missing[0]["required"] == "3"
        assert missing[0]["available"] == "1"

    def test_invalid_transition_is_409(self, client, db_session, headers, vitamins):
        order_id = self._place(client, headers, vitamins, 1).get_json()["order"]["id"]
        response = client.post(f"/api/orders/{order_id}/complete", headers=headers, json={})
        assert response.status_code == 409
        assert response.get_json()["details"]["status"] == "pending_confirmation"

    def test_complete_rejects_non_boolean_partial_flag(self, client, db_session, headers, vitamins):
        order_id = self._place(client, headers, vitamins, 1).get_json()["order"]["id"]
        response = client.post(f"/api/orders/{order_id}/complete", headers=headers, json={
            "allow_partial_stock": "no",
        })
        assert response.status_code == 400

    def test_cancel(self, client, db_session, headers, vitamins):
        order_id = self._place(client, headers, vitamins, 1).get_json()["order"]["id"]

        assert client.post(f"/api/orders/{order_id}/cancel", headers=headers, json={}).status_code == 400

        response = client.post(f"/api/orders/{order_id}/cancel", headers=headers, json={"reason": "customer_request"})
        assert response.status_code == 200
        assert response.get_json()["order"]["status"] == "cancelled"

    def test_list_filters(self, client, db_session, headers, vitamins):
        self._place(client, headers, vitamins, 1)
        self._place(client, headers, vitamins, 1, order_type="delivery", customer_address="Purok 5")

        data = client.get("/api/orders?order_type=delivery", headers=headers).get_json()
        assert data["total"] == 1
        assert data["orders"][0]["order_type"] == "delivery"

        assert client.get("/api/orders?from=yesterday", headers=headers).status_code == 400
        assert client.get("/api/orders?status=lost", headers=headers).status_code == 400

    def test_remind_only_ready_orders(self, client, db_session, headers, vitamins, stock):
        stock(vitamins, 10)
        order_id = self._place(client, headers, vitamins, 1).get_json()["order"]["id"]

        assert client.post(f"/api/orders/{order_id}/remind", headers=headers).status_code == 409

        client.post(f"/api/orders/{order_id}/confirm", headers=headers)
        client.post(f"/api/orders/{order_id}/ready", headers=headers)
        response = client.post(f"/api/orders/{order_id}/remind", headers=headers)
        assert response.status_code == 200
        assert response.get_json()["sent"] is True

    def test_unknown_order_is_404(self, client, db_session, headers):
        assert client.get("/api/orders/99999", headers=headers).status_code == 404


class TestInventoryApi:
    def test_availability(self, client, db_session, branch, headers, vitamins, stock):
        stock(vitamins, 4)
        response = client.post("/api/inventory/availability", headers=headers, json={
            "items": [{"product_id": vitamins.id, "quantity": 5}],
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data["available"] is False
        assert data["missing_items"][0]["available"] == "4"

    def test_availability_requires_items(self, client, db_session, headers):
        response = client.post("/api/inventory/availability", headers=headers, json={"items": []})
        assert response.status_code == 400

    def test_position_and_movements(self, client, db_session, branch, headers, vitamins, stock):
        stock(vitamins, 4)
        response = client.get(f"/api/inventory/{branch.id}/{vitamins.id}", headers=headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data["inventory"]["quantity_on_hand"] == "4"
        assert data["movements"][0]["type"] == "adjustment"

    def test_low_stock(self, client, db_session, branch, headers, vitamins, dewormer, stock):
        stock(vitamins, 2)
        stock(dewormer, 50)
        inventory_service.set_stock(
            branch_id=branch.id, product_id=vitamins.id, quantity_on_hand=2, reorder_level=5,
        )

        data = client.get(f"/api/inventory/{branch.id}/low-stock", headers=headers).get_json()
        assert [row["product_id"] for row in data["items"]] == [vitamins.id]

    def test_missing_position_is_404(self, client, db_session, branch, headers, vitamins):
        assert client.get(f"/api/inventory/{branch.id}/{vitamins.id}", headers=headers).status_code == 404
