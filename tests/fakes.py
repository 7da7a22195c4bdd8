"""In-memory doubles for the payment ports used across the test suite."""
from __future__ import annotations

import dataclasses
import json
from datetime import datetime, timezone
from typing import Any, Optional

from application.dtos.payments import GatewayOrder, GatewayRefund, GatewayWebhookEvent
from application.ports.payment_gateway import GatewayError, WebhookSignatureError
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.payment import signature
from domain.payment.entity import PAYABLE_STATUSES, BookingSyncStatus, Payment, PaymentStatus
from domain.payment.repository import DuplicateKeyError, PaymentRepository, RefundUpdate, RepositoryError

KEY_SECRET = "test_key_secret"
WEBHOOK_SECRET = "test_webhook_secret"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _sync_status(payment: Payment) -> BookingSyncStatus:
    return BookingSyncStatus.PENDING if payment.booking_id else BookingSyncStatus.NOT_REQUIRED


class InMemoryPaymentRepository(PaymentRepository):
    def __init__(self) -> None:
        self.rows: dict[str, Payment] = {}
        self.fail_writes = False
        self._seq = 0

    def _copy(self, payment: Optional[Payment]) -> Optional[Payment]:
        return dataclasses.replace(payment) if payment is not None else None

    def _check_writes(self) -> None:
        if self.fail_writes:
            raise RepositoryError("database unavailable")

    async def create(self, payment: Payment) -> Payment:
        self._check_writes()
        for row in self.rows.values():
            same_key = payment.idempotency_key and (row.user_id, row.idempotency_key) == (
                payment.user_id, payment.idempotency_key
            )
            if same_key or row.gateway_order_id == payment.gateway_order_id:
                raise DuplicateKeyError("create failed: unique constraint")
        self._seq += 1
        stored = dataclasses.replace(payment, id=payment.id or f"pay-{self._seq}")
        if stored.created_at is None:
            stored.created_at = _now()
        self.rows[stored.id] = stored
        return self._copy(stored)

    async def get_by_id(self, payment_id: str) -> Optional[Payment]:
        return self._copy(self.rows.get(payment_id))

    def _by_order(self, gateway_order_id: str) -> Optional[Payment]:
        return next((p for p in self.rows.values() if p.gateway_order_id == gateway_order_id), None)

    async def get_by_gateway_order_id(self, gateway_order_id: str) -> Optional[Payment]:
        return self._copy(self._by_order(gateway_order_id))

    async def get_by_idempotency_key(self, user_id: str, idempotency_key: str) -> Optional[Payment]:
        found = next(
            (p for p in self.rows.values() if p.user_id == user_id and p.idempotency_key == idempotency_key),
            None,
        )
        return self._copy(found)

    async def mark_paid(self, gateway_order_id, gateway_payment_id, gateway_signature, paid_at):
        self._check_writes()
        payment = self._by_order(gateway_order_id)
        if payment is None or payment.status not in PAYABLE_STATUSES:
            return None
        payment.status = PaymentStatus.PAID
        payment.gateway_payment_id = gateway_payment_id
        payment.gateway_signature = gateway_signature
        payment.paid_at = paid_at
        payment.booking_sync_status = _sync_status(payment)
        return self._copy(payment)

    async def mark_failed(self, gateway_order_id, reason):
        self._check_writes()
        payment = self._by_order(gateway_order_id)
        if payment is None or payment.status not in PAYABLE_STATUSES:
            return None
        payment.status = PaymentStatus.FAILED
        payment.failure_reason = reason
        return self._copy(payment)

    async def apply_refund(self, update: RefundUpdate) -> Optional[Payment]:
        self._check_writes()
        payment = self.rows.get(update.payment_id)
        plan = update.plan
        if (
            payment is None
            or payment.status != plan.expected_status
            or payment.refund_amount != plan.expected_refund_amount
        ):
            return None
        payment.status = plan.new_status
        payment.refund_amount = plan.new_refund_amount
        payment.refund_status = plan.refund_status
        payment.refund_id = update.refund_id
        payment.refund_reason = update.reason
        payment.refunded_at = update.refunded_at
        payment.booking_sync_status = _sync_status(payment)
        return self._copy(payment)

    async def set_booking_sync_status(self, payment_id, status, synced_at=None, *,
                                      expected_status=None, expected_refund_amount=None):
        payment = self.rows[payment_id]
        if expected_status is not None and payment.status != expected_status:
            return False
        if expected_refund_amount is not None and payment.refund_amount != expected_refund_amount:
            return False
        payment.booking_sync_status = status
        payment.booking_synced_at = synced_at
        return True

    def _for_user(self, user_id, status):
        items = [p for p in self.rows.values() if p.user_id == user_id and (status is None or p.status == status)]
        return sorted(items, key=lambda p: p.created_at, reverse=True)

    async def list_by_user(self, user_id, skip=0, limit=10, status=None):
        return [self._copy(p) for p in self._for_user(user_id, status)[skip: skip + limit]]

    async def count_by_user(self, user_id, status=None):
        return len(self._for_user(user_id, status))

    async def list_booking_sync_pending(self, limit=100):
        pending = [p for p in self.rows.values() if p.booking_sync_status == BookingSyncStatus.PENDING]
        return [self._copy(p) for p in pending[:limit]]

    async def ping(self) -> bool:
        return not self.fail_writes


class InMemoryUnitOfWork(AbstractUnitOfWork):
    def __init__(self, repo: InMemoryPaymentRepository, *, readonly: bool = False) -> None:
        super().__init__(readonly=readonly)
        self.payment_repository = repo

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        pass


class StubGateway:
    provider = "razorpay"

    def __init__(self, *, key_id: Optional[str] = "rzp_test_key", key_secret: Optional[str] = KEY_SECRET,
                 webhook_secret: Optional[str] = WEBHOOK_SECRET) -> None:
        self._key_id = key_id
        self._key_secret = key_secret
        self._webhook_secret = webhook_secret
        self.orders: list[dict[str, Any]] = []
        self.refunds: list[dict[str, Any]] = []
        self.fail_with: Optional[GatewayError] = None
        self.closed = False

    @property
    def key_id(self):
        return self._key_id

    @property
    def mode(self) -> str:
        return "live" if (self._key_id or "").startswith("rzp_live_") else "test"

    @property
    def api_base_url(self) -> str:
        return "https://api.razorpay.com/v1"

    def config_errors(self) -> list[str]:
        errors = []
        if not self._key_id:
            errors.append("RAZORPAY__KEY_ID is missing")
        if not self._key_secret:
            errors.append("RAZORPAY__KEY_SECRET is missing")
        return errors

    def webhook_configured(self) -> bool:
        return bool(self._webhook_secret)

    async def create_order(self, *, amount_minor, currency, receipt, notes) -> GatewayOrder:
        if self.fail_with is not None:
            raise self.fail_with
        order_id = f"order_{len(self.orders) + 1}"
        self.orders.append({"id": order_id, "amount": amount_minor, "currency": currency, "notes": notes})
        return GatewayOrder(id=order_id, amount=amount_minor, currency=currency, receipt=receipt, status="created")

    async def refund(self, gateway_payment_id, *, amount_minor, notes) -> GatewayRefund:
        if self.fail_with is not None:
            raise self.fail_with
        refund_id = f"rfnd_{len(self.refunds) + 1}"
        self.refunds.append({"id": refund_id, "payment_id": gateway_payment_id, "amount": amount_minor})
        return GatewayRefund(id=refund_id, payment_id=gateway_payment_id, amount=amount_minor, status="processed")

    def verify_payment_signature(self, gateway_order_id, gateway_payment_id, signature_) -> bool:
        return signature.verify_payment_signature(gateway_order_id, gateway_payment_id, signature_, self._key_secret)

    def parse_webhook(self, headers, body) -> GatewayWebhookEvent:
        if not signature.verify_webhook_signature(body, headers.get("x-razorpay-signature", ""), self._webhook_secret):
            raise WebhookSignatureError("Invalid webhook signature", provider=self.provider)
        try:
            data = json.loads(body)
        except ValueError as exc:
            raise GatewayError("Webhook body is not JSON", provider=self.provider) from exc
        entity = data.get("payload", {}).get("payment", {}).get("entity", {})
        return GatewayWebhookEvent(
            event=data["event"],
            gateway_order_id=entity.get("order_id"),
            gateway_payment_id=entity.get("id"),
            error_description=entity.get("error_description"),
        )

    async def aclose(self) -> None:
        self.closed = True


class RecordingBookingSync:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str]] = []
        self.fail = False

    async def set_payment_status(self, booking_id: str, payment_status: str) -> None:
        if self.fail:
            raise ConnectionError("booking store down")
        self.calls.append(("payment_status", booking_id, payment_status))

    async def set_booking_status(self, booking_id: str, status: str) -> None:
        if self.fail:
            raise ConnectionError("booking store down")
        self.calls.append(("status", booking_id, status))


class RecordingNotifier:
    sender_id = "CHLMEH"

    def __init__(self, configured: bool = True) -> None:
        self.configured = configured
        self.sent: list[tuple[str, str, int]] = []
        self.fail = False

    def is_configured(self) -> bool:
        return self.configured

    async def send_payment_confirmation(self, phone, amount, service_name) -> None:
        if self.fail:
            raise RuntimeError("sms down")
        self.sent.append(("payment", phone, amount))

    async def send_refund_notification(self, phone, amount, service_name) -> None:
        if self.fail:
            raise RuntimeError("sms down")
        self.sent.append(("refund", phone, amount))


def webhook_body(event: str, *, order_id: str, payment_id: Optional[str] = "pay_W1", error: Optional[str] = None) -> bytes:
    entity: dict[str, Any] = {"order_id": order_id}
    if payment_id:
        entity["id"] = payment_id
    if error:
        entity["error_description"] = error
    return json.dumps({"event": event, "payload": {"payment": {"entity": entity}}}).encode()


def webhook_headers(body: bytes, secret: str = WEBHOOK_SECRET) -> dict[str, str]:
    return {"x-razorpay-signature": signature.compute_webhook_signature(body, secret)}
