import json

import httpx
import pytest

from infrastructure.external.sms import (
    QueuedNotificationDispatcher,
    SmsClient,
    SmsDeliveryError,
    SmsNotificationDispatcher,
    normalize_phone,
)
from infrastructure.external.sms.messages import payment_confirmation_text, refund_notification_text


def _client(handler, api_key="sms-key", max_retries=3):
    return SmsClient(
        api_url="https://sms.example.test/send",
        api_key=api_key,
        sender_id="CHLMEH",
        max_retries=max_retries,
        retry_backoff=0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("+919876543210", "919876543210"),
        ("919876543210", "919876543210"),
        ("9876543210", "919876543210"),
        (" +91 98765 43210 ", "919876543210"),
        ("9123456789", "919123456789"),
        ("+919123456789", "919123456789"),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


def test_message_texts():
    assert payment_confirmation_text(500, "AC Repair") == (
        "Payment of Rs.500 received for AC Repair. Thank you for choosing ChillMechanic!"
    )
    assert refund_notification_text(300, None).startswith("Refund of Rs.300 initiated for your booking.")


@pytest.mark.asyncio
async def test_send_posts_transactional_message():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["apikey"] = request.headers.get("apikey")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"status": "queued"})

    result = await _client(handler).send("+919876543210", "hello")
    assert result == {"status": "queued"}
    assert seen["apikey"] == "sms-key"
    assert seen["body"] == {"sender": "CHLMEH", "to": "919876543210", "text": "hello", "type": "TXN"}


@pytest.mark.asyncio
async def test_transport_errors_are_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        if len(attempts) < 3:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json={})

    await _client(handler).send("9876543210", "hello")
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_http_error_is_not_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        return httpx.Response(500)

    with pytest.raises(SmsDeliveryError) as exc_info:
        await _client(handler).send("9876543210", "hello")
    assert exc_info.value.status_code == 500
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_unconfigured_client_refuses_to_send():
    client = _client(lambda request: httpx.Response(200), api_key=None)
    assert client.is_configured() is False
    with pytest.raises(SmsDeliveryError):
        await client.send("9876543210", "hello")


@pytest.mark.asyncio
async def test_inline_dispatcher_renders_texts():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content)["text"])
        return httpx.Response(200, json={})

    dispatcher = SmsNotificationDispatcher(_client(handler))
    await dispatcher.send_payment_confirmation("9876543210", 500, "AC Repair")
    await dispatcher.send_refund_notification("9876543210", 200, "AC Repair")
    assert bodies == [payment_confirmation_text(500, "AC Repair"), refund_notification_text(200, "AC Repair")]


@pytest.mark.asyncio
async def test_queued_dispatcher_enqueues():
    class Queue:
        def __init__(self):
            self.items = []

        def send_sms(self, phone, text):
            self.items.append((phone, text))

    queue = Queue()
    dispatcher = QueuedNotificationDispatcher(queue, sender_id="CHLMEH", configured=True)
    await dispatcher.send_payment_confirmation("9876543210", 500, None)
    assert queue.items == [("9876543210", payment_confirmation_text(500, None))]
    assert dispatcher.is_configured() and dispatcher.sender_id == "CHLMEH"
