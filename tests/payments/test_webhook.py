import pytest

from application.dtos.payments import CreateOrderRequest
from domain.payment import PaymentErrorKind, PaymentStatus
from tests.fakes import webhook_body, webhook_headers


async def _order(service, principal, **extra):
    return (await service.create_order(principal, CreateOrderRequest(amount=500, **extra))).unwrap()


@pytest.mark.asyncio
async def test_captured_event_marks_paid(service, repo, booking, notifier, principal):
    created = await _order(service, principal, booking_id="bk-1")
    body = webhook_body("payment.captured", order_id=created.order.id)

    result = await service.handle_webhook(webhook_headers(body), body)
    ack = result.unwrap()
    assert ack.handled is True
    assert ack.status == "paid"
    assert repo.rows[created.payment_id].status == PaymentStatus.PAID
    assert repo.rows[created.payment_id].gateway_signature is None
    assert ("payment_status", "bk-1", "paid") in booking.calls
    assert notifier.sent == [("payment", "+919876543210", 500)]

    # Redelivery is acknowledged without repeating side effects
    again = await service.handle_webhook(webhook_headers(body), body)
    assert again.is_ok and again.replayed
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_bad_signature_rejected(service, principal):
    created = await _order(service, principal)
    body = webhook_body("payment.captured", order_id=created.order.id)
    result = await service.handle_webhook(webhook_headers(body, secret="wrong"), body)
    assert result.kind == PaymentErrorKind.INVALID_SIGNATURE


@pytest.mark.asyncio
async def test_failed_event_marks_failed(service, repo, principal):
    created = await _order(service, principal)
    body = webhook_body("payment.failed", order_id=created.order.id, error="Card declined")
    ack = (await service.handle_webhook(webhook_headers(body), body)).unwrap()
    assert ack.handled is True
    payment = repo.rows[created.payment_id]
    assert payment.status == PaymentStatus.FAILED
    assert payment.failure_reason == "Card declined"


@pytest.mark.asyncio
async def test_failed_event_after_paid_is_ignored(service, repo, principal):
    created = await _order(service, principal)
    captured = webhook_body("payment.captured", order_id=created.order.id)
    await service.handle_webhook(webhook_headers(captured), captured)

    failed = webhook_body("payment.failed", order_id=created.order.id)
    ack = (await service.handle_webhook(webhook_headers(failed), failed)).unwrap()
    assert ack.handled is False
    assert repo.rows[created.payment_id].status == PaymentStatus.PAID


@pytest.mark.asyncio
async def test_unknown_order_and_event_are_acknowledged(service):
    body = webhook_body("payment.captured", order_id="order_unknown")
    assert (await service.handle_webhook(webhook_headers(body), body)).unwrap().handled is False

    other = webhook_body("refund.processed", order_id="order_unknown")
    assert (await service.handle_webhook(webhook_headers(other), other)).unwrap().handled is False


@pytest.mark.asyncio
async def test_store_outage_asks_gateway_to_redeliver(service, repo, principal):
    created = await _order(service, principal)
    repo.fail_writes = True
    body = webhook_body("payment.captured", order_id=created.order.id)
    result = await service.handle_webhook(webhook_headers(body), body)
    assert result.kind == PaymentErrorKind.PERSISTENCE_ERROR
