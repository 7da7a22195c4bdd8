import json

import httpx
import pytest

from application.ports.payment_gateway import WebhookSignatureError
from domain.payment.signature import compute_payment_signature, compute_webhook_signature
from infrastructure.external.payments.exceptions import PaymentProviderError, PaymentTransportError
from infrastructure.external.payments.razorpay_client import RazorpayClient


def _client(handler, **overrides):
    options = dict(key_id="rzp_test_abc", key_secret="secret", webhook_secret="whsec")
    options.update(overrides)
    return RazorpayClient(transport=httpx.MockTransport(handler), **options)


@pytest.mark.asyncio
async def test_create_order_posts_paise_with_basic_auth():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"id": "order_9", "amount": 50000, "currency": "INR", "receipt": "cm_1_abc", "status": "created"},
        )

    client = _client(handler)
    order = await client.create_order(amount_minor=50000, currency="INR", receipt="cm_1_abc", notes={"userId": "u1"})
    await client.aclose()

    assert order.id == "order_9"
    assert order.amount == 50000
    assert seen["url"] == "https://api.razorpay.com/v1/orders"
    assert seen["auth"].startswith("Basic ")
    assert seen["body"]["notes"] == {"userId": "u1"}


@pytest.mark.asyncio
async def test_refund_maps_status():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/payments/pay_1/refund"
        return httpx.Response(200, json={"id": "rfnd_1", "payment_id": "pay_1", "amount": 20000, "status": "processed"})

    refund = await _client(handler).refund("pay_1", amount_minor=20000, notes={})
    assert refund.id == "rfnd_1"
    assert refund.status == "processed"


@pytest.mark.asyncio
async def test_error_body_is_surfaced():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400, json={"error": {"code": "BAD_REQUEST_ERROR", "description": "The amount must be at least INR 1.00"}}
        )

    with pytest.raises(PaymentProviderError) as exc_info:
        await _client(handler).create_order(amount_minor=50, currency="INR", receipt="r", notes={})
    assert exc_info.value.provider_code == "BAD_REQUEST_ERROR"
    assert exc_info.value.message == "The amount must be at least INR 1.00"
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_timeout_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(PaymentTransportError) as exc_info:
        await _client(handler).refund("pay_1", amount_minor=100, notes={})
    assert exc_info.value.provider_code == "TIMEOUT"
    assert exc_info.value.retryable is False


def test_mode_and_config_errors():
    assert _client(None).mode == "test"
    assert _client(None, key_id="rzp_live_abc").mode == "live"
    assert _client(None).config_errors() == []
    assert _client(None, key_id=None, key_secret=None).config_errors() == [
        "RAZORPAY__KEY_ID is missing",
        "RAZORPAY__KEY_SECRET is missing",
    ]
    assert _client(None, key_id="key_abc").config_errors() == ["RAZORPAY__KEY_ID should start with 'rzp_'"]


def test_verify_payment_signature_uses_key_secret():
    client = _client(None)
    good = compute_payment_signature("order_1", "pay_1", "secret")
    assert client.verify_payment_signature("order_1", "pay_1", good) is True
    assert client.verify_payment_signature("order_1", "pay_1", good[:-1] + "x") is False
    assert _client(None, key_secret=None).verify_payment_signature("order_1", "pay_1", good) is False


def test_parse_webhook():
    body = json.dumps(
        {
            "event": "payment.captured",
            "payload": {"payment": {"entity": {"id": "pay_1", "order_id": "order_1", "status": "captured"}}},
        }
    ).encode()
    client = _client(None)
    event = client.parse_webhook({"X-Razorpay-Signature": compute_webhook_signature(body, "whsec")}, body)
    assert event.event == "payment.captured"
    assert event.gateway_order_id == "order_1"
    assert event.gateway_payment_id == "pay_1"

    with pytest.raises(WebhookSignatureError):
        client.parse_webhook({"X-Razorpay-Signature": "nope"}, body)

    bad = b"not json"
    with pytest.raises(PaymentProviderError):
        client.parse_webhook({"x-razorpay-signature": compute_webhook_signature(bad, "whsec")}, bad)
