"""Integration tests for the order endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from reconciliation.api import gateway_router, order_router, register_error_handlers


@pytest.fixture()
def client():
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(order_router)
    app.include_router(gateway_router)
    return TestClient(app)


def _register(client, order_number, payment_method="stripe", total=100.0, **extra):
    payload = {
        "order_number": order_number,
        "payment_method": payment_method,
        "payment_status": "completed",
        "status": "confirmed",
        "total": total,
        "customer_name": "Jane Doe",
        "customer_email": "jane@example.com",
        "items": [{"product_id": "prod-1", "title": "Rose Serum", "quantity": 1, "unit_price": total}],
    }
    if payment_method == "stripe":
        payload["stripe_payment_intent_id"] = "pi_api"
    payload.update(extra)
    response = client.post("/orders", json=payload)
    assert response.status_code == 201
    return response.json()["id"]


class TestRegisterAndRead:
    def test_register_returns_order(self, client):
        response = client.post(
            "/orders",
            json={
                "order_number": "ORD-API-1",
                "payment_method": "cod",
                "total": 30.0,
                "items": [{"product_id": None, "title": "Old Balm", "quantity": 1, "unit_price": 30.0}],
            },
        )
        assert response.status_code == 201
        body = response.json()
        assert body["order_number"] == "ORD-API-1"
        assert body["status"] == "pending"
        assert body["items"][0]["display_title"] == "Old Balm (Deleted)"
        assert body["refunds"] == []
        assert body["suggested_refund_amount"] == 30.0

    def test_duplicate_order_number_is_400(self, client):
        _register(client, "ORD-API-2")
        response = client.post("/orders", json={"order_number": "ORD-API-2", "payment_method": "cod", "total": 1.0})
        assert response.status_code == 400
        assert "order_number" in response.json()["error"]

    def test_get_order(self, client):
        order_id = _register(client, "ORD-API-3")
        response = client.get(f"/orders/{order_id}")
        assert response.status_code == 200
        assert response.json()["customer_email"] == "jane@example.com"

    def test_get_unknown_order_is_404(self, client):
        response = client.get("/orders/nope")
        assert response.status_code == 404

    def test_list_orders_with_search(self, client):
        _register(client, "ORD-API-4", customer_name="Ana Lima")
        _register(client, "ORD-API-5", customer_name="Bo Chen")
        response = client.get("/orders", params={"search": "lima"})
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["orders"][0]["order_number"] == "ORD-API-4"

    def test_list_orders_unknown_status_is_400(self, client):
        response = client.get("/orders", params={"status": "lost"})
        assert response.status_code == 400


class TestCancellationEndpoint:
    def test_cancel(self, client):
        order_id = _register(client, "ORD-API-6")
        response = client.put(f"/orders/{order_id}/cancel", json={"reason": "Changed mind", "cancelled_by": "customer"})
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "cancelled"
        assert body["cancellation"]["reason"] == "Changed mind"

    def test_cancel_without_body(self, client):
        order_id = _register(client, "ORD-API-7")
        assert client.put(f"/orders/{order_id}/cancel").status_code == 200

    def test_cancel_twice_is_409(self, client):
        order_id = _register(client, "ORD-API-8")
        client.put(f"/orders/{order_id}/cancel", json={})
        response = client.put(f"/orders/{order_id}/cancel", json={})
        assert response.status_code == 409
        assert "cancellation" in response.json()["error"]


class TestReturnEndpoints:
    def test_request_approve_flow(self, client):
        order_id = _register(client, "ORD-API-9", payment_method="cod")
        response = client.put(
            f"/orders/{order_id}/return/request",
            json={
                "reason": "Damaged",
                "bank_details": {
                    "account_holder_name": "Jane Doe",
                    "account_number": "000123456789",
                    "routing_number": "110000000",
                    "bank_name": "First Bank",
                },
            },
        )
        assert response.status_code == 200
        assert response.json()["return_request"]["bank_details"]["account_type"] == "checking"

        response = client.put(f"/orders/{order_id}/return/approve", json={"notes": "ok", "refund_amount": 40.0})
        assert response.status_code == 200
        body = response.json()
        assert body["return_request"]["status"] == "approved"
        assert body["suggested_refund_amount"] == 40.0

    def test_reject_without_notes_is_400(self, client):
        order_id = _register(client, "ORD-API-10")
        client.put(f"/orders/{order_id}/return/request", json={"reason": "Damaged"})
        response = client.put(f"/orders/{order_id}/return/reject", json={"notes": "  "})
        assert response.status_code == 400
        assert "notes" in response.json()["error"]

    def test_decision_on_decided_return_is_409(self, client):
        order_id = _register(client, "ORD-API-11")
        client.put(f"/orders/{order_id}/return/request", json={"reason": "Damaged"})
        client.put(f"/orders/{order_id}/return/reject", json={"notes": "worn"})
        response = client.put(f"/orders/{order_id}/return/approve")
        assert response.status_code == 409

    def test_decision_without_return_is_404(self, client):
        order_id = _register(client, "ORD-API-12")
        response = client.put(f"/orders/{order_id}/return/reject", json={"notes": "no"})
        assert response.status_code == 404

    def test_bank_details_on_prepaid_order_is_400(self, client):
        order_id = _register(client, "ORD-API-13")
        response = client.put(
            f"/orders/{order_id}/return/request",
            json={
                "reason": "Damaged",
                "bank_details": {
                    "account_holder_name": "Jane Doe",
                    "account_number": "1",
                    "routing_number": "2",
                    "bank_name": "Bank",
                },
            },
        )
        assert response.status_code == 400


class TestRefundEndpoint:
    def test_refund_cancelled_prepaid_order(self, client):
        order_id = _register(client, "ORD-API-14")
        client.put(f"/orders/{order_id}/cancel", json={})
        response = client.post(f"/orders/{order_id}/refunds", json={"amount": 50.0})
        assert response.status_code == 201
        body = response.json()
        assert body["refunded_total"] == 50.0
        assert body["refunds"][0]["reason"] == "Order cancelled"
        assert body["status"] == "cancelled"

    def test_display_amount_follows_the_ledger(self, client):
        order_id = _register(client, "ORD-API-20", payment_method="cod")
        assert client.get(f"/orders/{order_id}").json()["display_amount"] == 100.0

        client.put(f"/orders/{order_id}/return/request", json={"reason": "Damaged"})
        approved = client.put(f"/orders/{order_id}/return/approve", json={"refund_amount": 40.0}).json()
        assert approved["display_amount"] == 40.0

        refunded = client.post(f"/orders/{order_id}/refunds", json={"amount": 30.0}).json()
        assert refunded["display_amount"] == 30.0
        assert refunded["refunded_total"] == 30.0

    def test_second_refund_is_409(self, client):
        order_id = _register(client, "ORD-API-15")
        client.put(f"/orders/{order_id}/cancel", json={})
        client.post(f"/orders/{order_id}/refunds", json={"amount": 50.0})
        response = client.post(f"/orders/{order_id}/refunds", json={"amount": 60.0})
        assert response.status_code == 409

    @pytest.mark.parametrize("amount,message", [(101.0, "exceeds order total"), (0, "invalid amount")])
    def test_bad_amount_is_400(self, client, amount, message):
        order_id = _register(client, f"ORD-API-16-{amount}")
        client.put(f"/orders/{order_id}/cancel", json={})
        response = client.post(f"/orders/{order_id}/refunds", json={"amount": amount})
        assert response.status_code == 400
        assert response.json()["error"]["amount"] == [message]

    def test_cod_cancellation_is_422(self, client):
        order_id = _register(client, "ORD-API-17", payment_method="cod", payment_status="pending")
        client.put(f"/orders/{order_id}/cancel", json={})
        response = client.post(f"/orders/{order_id}/refunds", json={"amount": 10.0})
        assert response.status_code == 422
        assert "refund" in response.json()["error"]

    def test_gateway_failure_is_502(self, client):
        configured = client.post("/gateway/configure", json={"should_succeed": False, "failure_reason": "Card lost"})
        assert configured.status_code == 200

        order_id = _register(client, "ORD-API-18")
        client.put(f"/orders/{order_id}/cancel", json={})
        response = client.post(f"/orders/{order_id}/refunds", json={"amount": 10.0})
        assert response.status_code == 502
        assert response.json()["error"] == {"gateway": ["Card lost"]}

        assert client.get(f"/orders/{order_id}").json()["refunds"] == []


class TestActivityEndpoint:
    def test_activity(self, client):
        order_id = _register(client, "ORD-API-19")
        client.put(f"/orders/{order_id}/cancel", json={"reason": "Changed mind"})
        client.post(f"/orders/{order_id}/refunds", json={"amount": 100.0})
        response = client.get(f"/orders/{order_id}/activity")
        assert response.status_code == 200
        kinds = [entry["kind"] for entry in response.json()]
        assert kinds == ["order_placed", "order_cancelled", "refund_processed"]
