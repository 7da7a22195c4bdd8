from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_payment_service
from application.services.payment_service import PaymentService
from core.config import settings
from domain.payment.signature import compute_payment_signature
from main import app
from tests.fakes import (
    KEY_SECRET,
    InMemoryPaymentRepository,
    InMemoryUnitOfWork,
    RecordingBookingSync,
    RecordingNotifier,
    StubGateway,
    webhook_body,
    webhook_headers,
)


def _token(user_id="user-1", expires_in=timedelta(hours=1), **extra):
    payload = {"userId": user_id, "phone": "9876543210", "exp": datetime.now(timezone.utc) + expires_in, **extra}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _auth(user_id="user-1"):
    return {"Authorization": f"Bearer {_token(user_id)}"}


@pytest.fixture
def repo():
    return InMemoryPaymentRepository()


@pytest.fixture
def client(repo):
    svc = PaymentService(
        uow_factory=lambda readonly=False: InMemoryUnitOfWork(repo, readonly=readonly),
        gateway=StubGateway(),
        booking_sync=RecordingBookingSync(),
        notifier=RecordingNotifier(),
    )
    app.dependency_overrides[get_payment_service] = lambda: svc
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create(client, amount=500, headers=None):
    return client.post(
        "/api/v1/payments/create-order",
        json={"amount": amount, "serviceName": "AC Repair", "serviceType": "repair"},
        headers=headers or _auth(),
    )


def test_requires_bearer_token(client):
    resp = client.post("/api/v1/payments/create-order", json={"amount": 500})
    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"] == "Bearer"
    assert resp.json()["data"] is None


def test_expired_and_forged_tokens_are_rejected(client):
    expired = {"Authorization": f"Bearer {_token(expires_in=timedelta(seconds=-5))}"}
    assert _create(client, headers=expired).status_code == 401

    forged = jwt.encode({"userId": "user-1"}, "not-the-secret", algorithm="HS256")
    resp = _create(client, headers={"Authorization": f"Bearer {forged}"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid or expired token"


def test_create_order(client):
    resp = _create(client)
    assert resp.status_code == 200
    body = resp.json()
    assert body["code"] == 0
    data = body["data"]
    assert data["order"]["amount"] == 50000
    assert data["key"] == "rzp_test_key"
    assert data["mode"] == "test"
    assert data["paymentId"]


def test_create_order_invalid_amount(client):
    resp = _create(client, amount=0)
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["type"] == "InvalidAmount"
    assert body["error"]["field"] == "amount"


def test_create_order_idempotency_header(client, repo):
    headers = {**_auth(), "Idempotency-Key": "abc-123"}
    first = _create(client, headers=headers)
    second = _create(client, headers=headers)
    assert second.json()["message"] == "Order already created"
    assert first.json()["data"]["paymentId"] == second.json()["data"]["paymentId"]
    assert len(repo.rows) == 1


def test_verify_and_refund_flow(client):
    order_id = _create(client).json()["data"]["order"]["id"]
    payment_id = _create(client).json()["data"]["paymentId"]  # second, unpaid order

    verify = client.post(
        "/api/v1/payments/verify",
        json={
            "razorpay_order_id": order_id,
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": compute_payment_signature(order_id, "pay_1", KEY_SECRET),
        },
        headers=_auth(),
    )
    assert verify.status_code == 200
    paid = verify.json()["data"]["payment"]
    assert paid["status"] == "paid"
    assert paid["paymentId"] == "pay_1"

    refund = client.post("/api/v1/payments/refund", json={"paymentId": paid["id"], "amount": 200}, headers=_auth())
    assert refund.status_code == 200
    assert refund.json()["data"]["refund"]["paymentStatus"] == "partially_refunded"

    unpaid = client.post("/api/v1/payments/refund", json={"paymentId": payment_id}, headers=_auth())
    assert unpaid.status_code == 400
    assert unpaid.json()["error"]["type"] == "NotRefundable"

    missing = client.post("/api/v1/payments/refund", json={"paymentId": "nope"}, headers=_auth())
    assert missing.status_code == 404


def test_verify_invalid_signature(client):
    order_id = _create(client).json()["data"]["order"]["id"]
    resp = client.post(
        "/api/v1/payments/verify",
        json={"razorpay_order_id": order_id, "razorpay_payment_id": "pay_1", "razorpay_signature": "0" * 64},
        headers=_auth(),
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "InvalidSignature"


def test_verify_missing_fields(client):
    resp = client.post("/api/v1/payments/verify", json={"razorpay_order_id": "order_1"}, headers=_auth())
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "MissingFields"


def test_history_only_shows_own_payments(client):
    _create(client)
    _create(client, headers=_auth("user-2"))
    resp = client.get("/api/v1/payments/history", params={"status": "all"}, headers=_auth())
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["pagination"]["total"] == 1
    assert data["payments"][0]["amount"] == 500


def test_health_is_public(client):
    resp = client.get("/api/v1/payments/health")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["healthy"] is True
    assert data["checks"]["gateway"]["mode"] == "test"


def test_health_degraded_returns_503(client, repo):
    repo.fail_writes = True
    resp = client.get("/api/v1/payments/health")
    assert resp.status_code == 503
    assert resp.json()["data"]["status"] == "degraded"


def test_webhook_is_unauthenticated_but_signed(client, repo):
    order_id = _create(client).json()["data"]["order"]["id"]
    body = webhook_body("payment.captured", order_id=order_id)

    bad = client.post("/api/v1/payments/webhook", content=body, headers=webhook_headers(body, secret="x"))
    assert bad.status_code == 400

    ok = client.post("/api/v1/payments/webhook", content=body, headers=webhook_headers(body))
    assert ok.status_code == 200
    assert ok.json()["data"]["handled"] is True
    assert next(iter(repo.rows.values())).status.value == "paid"
