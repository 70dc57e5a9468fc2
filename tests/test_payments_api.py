"""Order creation, signature verification and webhook over HTTP."""

from conftest import TEST_KEY_ID, TEST_KEY_SECRET, auth_headers, sign_payment, subscription_doc

from app.dependencies import get_payment_gateway
from app.main import app
from app.services.payments.razorpay_gateway import RazorpayGateway

BUYER = "buyer-1"


def proof(order_id="order_abc", payment_id="pay_xyz", plan_id="plan_pro", signature=None) -> dict:
    return {
        "orderId": order_id,
        "paymentId": payment_id,
        "signature": signature or sign_payment(order_id, payment_id),
        "planId": plan_id,
    }


def test_plans_are_listed(client):
    resp = client.get("/api/v1/subscriptions/plans")

    assert resp.status_code == 200
    plans = {plan["id"]: plan for plan in resp.json()["data"]}
    assert plans["plan_creator"]["price"] == 199
    assert plans["plan_pro"]["monthlyStoryLimit"] == 15


def test_create_order_for_own_account(client, gateway, gateway_orders):
    resp = client.post(
        "/api/v1/payments/order",
        json={"planId": "plan_creator", "userId": BUYER},
        headers=auth_headers(BUYER),
    )

    assert resp.status_code == 200
    assert resp.json() == {
        "orderId": "order_test_123",
        "amount": 19900,
        "currency": "INR",
        "keyId": TEST_KEY_ID,
    }

    body = gateway_orders.created[0]
    assert body["amount"] == 19900
    assert body["currency"] == "INR"
    assert body["receipt"].startswith("receipt_order_")
    assert body["notes"] == {"userId": BUYER, "planId": "plan_creator"}
    assert gateway.client.auth == (TEST_KEY_ID, TEST_KEY_SECRET)


def test_gateway_outage_is_bad_gateway(client, gateway_orders):
    gateway_orders.fail = True

    resp = client.post(
        "/api/v1/payments/order",
        json={"planId": "plan_creator", "userId": BUYER},
        headers=auth_headers(BUYER),
    )

    assert resp.status_code == 502
    assert resp.json()["error"]["message"] == "Could not create payment order."


def test_order_for_someone_else_is_forbidden(client, gateway_orders):
    resp = client.post(
        "/api/v1/payments/order",
        json={"planId": "plan_creator", "userId": "someone-else"},
        headers=auth_headers(BUYER),
    )

    assert resp.status_code == 403
    assert resp.json()["error"]["message"] == "User ID mismatch."
    assert gateway_orders.created == []


def test_order_for_unknown_plan(client, gateway_orders):
    resp = client.post(
        "/api/v1/payments/order",
        json={"planId": "plan_galaxy", "userId": BUYER},
        headers=auth_headers(BUYER),
    )

    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "Plan not found."
    assert gateway_orders.created == []


def test_order_requires_a_token(client):
    resp = client.post("/api/v1/payments/order", json={"planId": "plan_creator", "userId": BUYER})

    assert resp.status_code == 401
    assert resp.json()["success"] is False


def test_order_with_bad_payload(client):
    resp = client.post("/api/v1/payments/order", json={"planId": "plan_creator"}, headers=auth_headers(BUYER))

    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["message"] == "Invalid payload."
    assert error["details"]["fields"][0]["field"] == "userId"


def test_verify_activates_plan(client, store):
    store.collection("users").document(BUYER).set({"email": "buyer@example.com"})

    resp = client.post("/api/v1/payments/verify", json=proof(), headers=auth_headers(BUYER))

    assert resp.status_code == 200
    assert resp.json()["status"] == "success"
    doc = store.collection("users").document(BUYER).get().to_dict()
    assert doc["email"] == "buyer@example.com"
    assert doc["subscriptionStatus"] == "subscribed"
    assert doc["planId"] == "Pro"
    assert doc["monthlyStoryLimit"] == 15
    assert doc["storiesGeneratedThisMonth"] == 0
    assert doc["paymentId"] == "pay_xyz"

    me = client.get("/api/v1/subscriptions/me", headers=auth_headers(BUYER)).json()["data"]
    assert me["storiesLeft"] == 15
    assert me["authorization"]["allowed"] is True
    assert "paymentId" not in me


def test_verify_accepts_gateway_field_names(client, store):
    signature = sign_payment("order_abc", "pay_xyz")
    resp = client.post(
        "/api/v1/payments/verify",
        json={
            "razorpay_order_id": "order_abc",
            "razorpay_payment_id": "pay_xyz",
            "razorpay_signature": signature,
            "planId": "plan_creator",
        },
        headers=auth_headers(BUYER),
    )

    assert resp.status_code == 200
    assert store.collection("users").document(BUYER).get().to_dict()["planId"] == "Creator"


def test_tampered_signature_changes_nothing(client, store):
    store.collection("users").document(BUYER).set(subscription_doc(limit=5, used=3))
    before = store.collection("users").document(BUYER).get().to_dict()

    resp = client.post(
        "/api/v1/payments/verify",
        json=proof(signature="0" * 64),
        headers=auth_headers(BUYER),
    )

    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Invalid signature"
    assert store.collection("users").document(BUYER).get().to_dict() == before


def test_unknown_plan_after_valid_signature_changes_nothing(client, store):
    resp = client.post(
        "/api/v1/payments/verify",
        json=proof(plan_id="plan_galaxy"),
        headers=auth_headers(BUYER),
    )

    assert resp.status_code == 404
    assert not store.collection("users").document(BUYER).get().exists


def test_webhook_is_acknowledged_without_changes(client, store):
    resp = client.post("/api/v1/payments/webhook", json={"event": "payment.captured"})

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert store.collection("users").get() == []


def test_missing_gateway_keys_are_opaque(client):
    app.dependency_overrides[get_payment_gateway] = lambda: RazorpayGateway(key_id="", key_secret="")

    order = client.post("/api/v1/payments/order", json={"planId": "plan_creator", "userId": BUYER})
    verify = client.post("/api/v1/payments/verify", json=proof(), headers=auth_headers(BUYER))

    for resp in (order, verify):
        assert resp.status_code == 500
        assert resp.json()["error"]["message"] == "Service unavailable"
