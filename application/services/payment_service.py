"""
Application service orchestrating payment use-cases.

This class depends only on application ports, the payment domain and a unit
of work factory. Gateway, booking and notification adapters are provided by
infrastructure and injected from the composition root (API/tasks), keeping
dependencies one-way.

Every use-case returns a `PaymentResult`; adapters may raise, but their
errors are converted at the step that called them. The payment row is the
source of truth: booking sync and SMS are follow-ups whose failures are
logged and never change the result.
"""
from __future__ import annotations

import math
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from application.dtos.auth import AuthPrincipal
from application.dtos.payments import (
    CreateOrderRequest,
    CreateOrderResult,
    HealthReport,
    HistoryQuery,
    OrderView,
    Pagination,
    PaymentHistory,
    PaymentHistoryItem,
    PaymentView,
    RefundRequest,
    RefundView,
    SyncReport,
    VerifyPaymentRequest,
    WebhookAck,
)
from application.ports.booking_sync import BookingSync
from application.ports.notifier import NotificationDispatcher
from application.ports.payment_gateway import GatewayError, PaymentGateway, WebhookSignatureError
from application.result import PaymentResult
from core.logging_config import get_logger
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.payment.entity import (
    DEFAULT_CURRENCY,
    DEFAULT_REFUND_REASON,
    BookingSyncStatus,
    Payment,
    PaymentStatus,
    to_minor_units,
)
from domain.payment.errors import PaymentError, PaymentErrorKind
from domain.payment.repository import DuplicateKeyError, PaymentRepository, RefundUpdate, RepositoryError


logger = get_logger(__name__)

MAX_HISTORY_LIMIT = 50
BOOKING_CANCELLED = "cancelled"
PAID_EVENTS = {"payment.captured", "order.paid"}
FAILED_EVENTS = {"payment.failed"}
_RECEIPT_ALPHABET = string.digits + string.ascii_lowercase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_receipt() -> str:
    """cm_<epoch ms>_<6 base36 chars>; unique enough for the gateway, not a dedupe key."""
    suffix = "".join(secrets.choice(_RECEIPT_ALPHABET) for _ in range(6))
    return f"cm_{int(time.time() * 1000)}_{suffix}"


class PaymentService:
    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        gateway: PaymentGateway,
        booking_sync: Optional[BookingSync] = None,
        notifier: Optional[NotificationDispatcher] = None,
        *,
        currency: str = DEFAULT_CURRENCY,
        auth_configured: bool = True,
        database_configured: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self.gateway = gateway
        self.booking_sync = booking_sync
        self.notifier = notifier
        self.currency = currency
        self.auth_configured = auth_configured
        self.database_configured = database_configured
        self._clock = clock

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _transact(
        self,
        work: Callable[[PaymentRepository], Awaitable[PaymentResult]],
        *,
        readonly: bool = False,
    ) -> PaymentResult:
        """Run `work` inside one unit of work; store failures become PersistenceError."""
        try:
            async with self._uow_factory(readonly=readonly) as uow:
                return await work(uow.payment_repository)
        except DuplicateKeyError as exc:
            logger.warning("payment_store_conflict", error=str(exc))
            return PaymentResult.fail(
                PaymentErrorKind.PERSISTENCE_ERROR,
                "Payment already exists",
                conflict=True,
                reason=str(exc),
            )
        except RepositoryError as exc:
            logger.error("payment_store_failed", error=str(exc))
            return PaymentResult.fail(
                PaymentErrorKind.PERSISTENCE_ERROR,
                "Payment store unavailable",
                reason=str(exc),
            )

    def _gateway_config_error(self) -> Optional[PaymentResult]:
        errors = self.gateway.config_errors()
        if not errors:
            return None
        logger.error("payment_gateway_not_configured", provider=self.gateway.provider, errors=errors)
        return PaymentResult.fail(
            PaymentErrorKind.CONFIGURATION_ERROR,
            "Payment gateway not configured properly",
            errors=errors,
        )

    @staticmethod
    def _gateway_failure(exc: GatewayError, event: str, **context: Any) -> PaymentResult:
        logger.error(event, **context, **exc.to_details())
        return PaymentResult.fail(
            PaymentErrorKind.GATEWAY_ERROR,
            exc.message or "Payment gateway error",
            **exc.to_details(),
        )

    @staticmethod
    def _to_view(payment: Payment) -> PaymentView:
        return PaymentView(
            id=str(payment.id),
            order_id=payment.gateway_order_id,
            payment_id=payment.gateway_payment_id,
            amount=payment.amount,
            status=payment.status.value,
            service_name=payment.service_name,
            paid_at=payment.paid_at,
        )

    @staticmethod
    def _to_history_item(payment: Payment) -> PaymentHistoryItem:
        return PaymentHistoryItem(
            id=str(payment.id),
            order_id=payment.gateway_order_id,
            payment_id=payment.gateway_payment_id,
            amount=payment.amount,
            currency=payment.currency,
            status=payment.status.value,
            service_name=payment.service_name,
            service_type=payment.service_type,
            booking_id=payment.booking_id,
            booking_date=payment.booking_date,
            booking_time_slot=payment.booking_time_slot,
            created_at=payment.created_at,
            paid_at=payment.paid_at,
            refund_id=payment.refund_id,
            refund_status=payment.refund_status.value if payment.refund_status else None,
            refund_amount=payment.refund_amount,
            refunded_at=payment.refunded_at,
        )

    def _order_result(self, payment: Payment) -> CreateOrderResult:
        return CreateOrderResult(
            order=OrderView(
                id=payment.gateway_order_id,
                amount=payment.amount_minor,
                currency=payment.currency,
                receipt=payment.receipt,
            ),
            payment_id=str(payment.id),
            key=self.gateway.key_id,
            mode=self.gateway.mode,
        )

    async def _sync_booking(self, payment: Payment) -> bool:
        """Push the payment status onto the linked booking (saga follow-up).

        The SYNCED mark only lands if the payment still has the status and
        refund amount that were pushed. Otherwise the booking may hold a stale
        value, so the payment goes back to pending for the next sweep.
        """
        if not payment.booking_id:
            return True
        if self.booking_sync is None:
            logger.warning("booking_sync_unavailable", payment_id=payment.id, booking_id=payment.booking_id)
            return False
        try:
            await self.booking_sync.set_payment_status(payment.booking_id, payment.status.value)
            if payment.status in (PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED):
                await self.booking_sync.set_booking_status(payment.booking_id, BOOKING_CANCELLED)
        except Exception as exc:
            # Payment stays booking_sync_status=pending; the reconciliation sweep retries it
            logger.error(
                "booking_sync_failed",
                payment_id=payment.id,
                booking_id=payment.booking_id,
                payment_status=payment.status.value,
                error=str(exc),
                exc_info=True,
            )
            return False

        async def _mark(repo: PaymentRepository) -> PaymentResult:
            marked = await repo.set_booking_sync_status(
                str(payment.id),
                BookingSyncStatus.SYNCED,
                self._clock(),
                expected_status=payment.status,
                expected_refund_amount=payment.refund_amount,
            )
            if not marked:
                await repo.set_booking_sync_status(str(payment.id), BookingSyncStatus.PENDING)
            return PaymentResult.ok(marked)

        marked = await self._transact(_mark)
        if not marked.is_ok:
            logger.warning("booking_sync_mark_failed", payment_id=payment.id, booking_id=payment.booking_id)
            return False
        if not marked.value:
            logger.warning(
                "booking_sync_stale",
                payment_id=payment.id,
                booking_id=payment.booking_id,
                pushed_status=payment.status.value,
            )
            return False
        logger.info("booking_synced", payment_id=payment.id, booking_id=payment.booking_id, payment_status=payment.status.value)
        return True

    async def _notify(
        self,
        kind: str,
        phone: Optional[str],
        payment: Payment,
        amount: int,
    ) -> None:
        """Fire-and-forget SMS; never affects the caller."""
        if not phone or self.notifier is None or not self.notifier.is_configured():
            logger.info("notification_skipped", kind=kind, payment_id=payment.id, has_phone=bool(phone))
            return
        try:
            if kind == "refund":
                await self.notifier.send_refund_notification(phone, amount, payment.service_name)
            else:
                await self.notifier.send_payment_confirmation(phone, amount, payment.service_name)
        except Exception as exc:
            logger.warning("notification_failed", kind=kind, payment_id=payment.id, error=str(exc))

    async def _replay_by_idempotency_key(
        self, principal: AuthPrincipal, req: CreateOrderRequest
    ) -> Optional[PaymentResult[CreateOrderResult]]:
        """Stored order for (user, key) as a replay; None when the key is unused."""

        async def _lookup(repo: PaymentRepository) -> PaymentResult:
            return PaymentResult.ok(await repo.get_by_idempotency_key(principal.user_id, req.idempotency_key))

        found = await self._transact(_lookup, readonly=True)
        if not found.is_ok:
            return found
        existing: Optional[Payment] = found.value
        if existing is None:
            return None
        if existing.amount != req.amount:
            return PaymentResult.fail(
                PaymentErrorKind.INVALID_AMOUNT,
                "Idempotency key already used for a different amount",
                field="amount",
                payment_id=existing.id,
            )
        logger.info(
            "payment_order_replayed",
            payment_id=existing.id,
            order_id=existing.gateway_order_id,
            user_id=principal.user_id,
        )
        return PaymentResult.ok(self._order_result(existing), replayed=True)

    # ------------------------------------------------------------------
    # Use-cases
    # ------------------------------------------------------------------
    async def create_order(
        self, principal: AuthPrincipal, req: CreateOrderRequest
    ) -> PaymentResult[CreateOrderResult]:
        if req.amount is None or req.amount < 1:
            return PaymentResult.fail(
                PaymentErrorKind.INVALID_AMOUNT,
                "Valid amount required (minimum ₹1)",
                field="amount",
                amount=req.amount,
            )
        config_error = self._gateway_config_error()
        if config_error is not None:
            return config_error

        if req.idempotency_key:
            replay = await self._replay_by_idempotency_key(principal, req)
            if replay is not None:
                return replay

        receipt = new_receipt()
        amount_minor = to_minor_units(req.amount)
        logger.info(
            "payment_order_create_request",
            user_id=principal.user_id,
            amount=req.amount,
            service_name=req.service_name,
            mode=self.gateway.mode,
        )
        try:
            order = await self.gateway.create_order(
                amount_minor=amount_minor,
                currency=self.currency,
                receipt=receipt,
                notes={
                    "userId": principal.user_id or "",
                    "phone": principal.phone or "",
                    "serviceName": req.service_name or "",
                    "serviceType": req.service_type or "",
                    "bookingId": req.booking_id or "",
                },
            )
        except GatewayError as exc:
            return self._gateway_failure(exc, "payment_order_gateway_failed", user_id=principal.user_id)

        now = self._clock()
        payment = Payment(
            id=None,
            user_id=principal.user_id,
            user_phone=principal.phone,
            gateway_order_id=order.id,
            amount=req.amount,
            currency=self.currency,
            status=PaymentStatus.CREATED,
            receipt=order.receipt or receipt,
            idempotency_key=req.idempotency_key,
            service_name=req.service_name,
            service_type=req.service_type,
            booking_id=req.booking_id,
            booking_date=req.booking_date,
            booking_time_slot=req.booking_time_slot,
            address=req.address,
            city=req.city,
            pincode=req.pincode,
            notes=req.notes,
            created_at=now,
            updated_at=now,
        )

        async def _insert(repo: PaymentRepository) -> PaymentResult:
            return PaymentResult.ok(await repo.create(payment))

        stored = await self._transact(_insert)
        if not stored.is_ok and stored.error.details.get("conflict") and req.idempotency_key:
            # A concurrent request with the same key inserted first; its order wins
            replay = await self._replay_by_idempotency_key(principal, req)
            if replay is not None:
                logger.warning("payment_order_superseded", order_id=order.id, user_id=principal.user_id)
                return replay
        if not stored.is_ok:
            # Gateway order exists without a local row; it expires unpaid on the gateway side
            logger.error("payment_order_orphaned", order_id=order.id, receipt=receipt, user_id=principal.user_id)
            return stored

        created: Payment = stored.value
        logger.info("payment_order_created", payment_id=created.id, order_id=order.id, amount=created.amount)
        return PaymentResult.ok(
            CreateOrderResult(
                order=OrderView(id=order.id, amount=order.amount, currency=order.currency, receipt=order.receipt),
                payment_id=str(created.id),
                key=self.gateway.key_id,
                mode=self.gateway.mode,
            )
        )

    async def _transition_to_paid(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        gateway_signature: Optional[str],
    ) -> PaymentResult[Payment]:
        """created → paid as a conditional update; a lost race is a replay, not an error."""

        async def _work(repo: PaymentRepository) -> PaymentResult:
            payment = await repo.get_by_gateway_order_id(gateway_order_id)
            if payment is None:
                return PaymentResult.fail(
                    PaymentErrorKind.PAYMENT_NOT_FOUND,
                    "Payment not found",
                    order_id=gateway_order_id,
                )
            updated = await repo.mark_paid(gateway_order_id, gateway_payment_id, gateway_signature, self._clock())
            if updated is not None:
                return PaymentResult.ok(updated)
            current = await repo.get_by_gateway_order_id(gateway_order_id) or payment
            replay_error = current.check_verification_replay(gateway_payment_id)
            if replay_error is not None:
                return PaymentResult.from_error(replay_error)
            return PaymentResult.ok(current, replayed=True)

        return await self._transact(_work)

    async def verify_payment(
        self, principal: AuthPrincipal, req: VerifyPaymentRequest
    ) -> PaymentResult[PaymentView]:
        missing = [
            name
            for name in ("gateway_order_id", "gateway_payment_id", "gateway_signature")
            if not getattr(req, name)
        ]
        if missing:
            return PaymentResult.fail(PaymentErrorKind.MISSING_FIELDS, "Missing payment details", missing=missing)
        config_error = self._gateway_config_error()
        if config_error is not None:
            return config_error

        if not self.gateway.verify_payment_signature(
            req.gateway_order_id, req.gateway_payment_id, req.gateway_signature
        ):
            logger.warning(
                "payment_signature_invalid",
                order_id=req.gateway_order_id,
                user_id=principal.user_id,
            )
            return PaymentResult.fail(PaymentErrorKind.INVALID_SIGNATURE, "Invalid payment signature")

        outcome = await self._transition_to_paid(
            req.gateway_order_id, req.gateway_payment_id, req.gateway_signature
        )
        if not outcome.is_ok:
            return outcome
        payment: Payment = outcome.value
        if outcome.replayed:
            logger.info("payment_verify_replayed", payment_id=payment.id, order_id=payment.gateway_order_id)
            return PaymentResult.ok(self._to_view(payment), replayed=True)

        logger.info(
            "payment_verified",
            payment_id=payment.id,
            order_id=payment.gateway_order_id,
            gateway_payment_id=payment.gateway_payment_id,
            amount=payment.amount,
        )
        await self._sync_booking(payment)
        await self._notify("payment", principal.phone or payment.user_phone, payment, payment.amount)
        return PaymentResult.ok(self._to_view(payment))

    async def refund(self, principal: AuthPrincipal, req: RefundRequest) -> PaymentResult[RefundView]:
        if not req.payment_id:
            return PaymentResult.fail(
                PaymentErrorKind.MISSING_FIELDS, "Payment ID required", field="paymentId", missing=["paymentId"]
            )

        async def _load(repo: PaymentRepository) -> PaymentResult:
            payment = await repo.get_by_id(req.payment_id)
            if payment is None or not payment.is_owned_by(principal.user_id):
                return PaymentResult.fail(
                    PaymentErrorKind.PAYMENT_NOT_FOUND, "Payment not found", payment_id=req.payment_id
                )
            return PaymentResult.ok(payment)

        loaded = await self._transact(_load, readonly=True)
        if not loaded.is_ok:
            return loaded
        payment: Payment = loaded.value

        plan = payment.plan_refund(req.amount)
        if isinstance(plan, PaymentError):
            logger.info("payment_refund_rejected", payment_id=payment.id, reason=plan.kind.value)
            return PaymentResult.from_error(plan)
        config_error = self._gateway_config_error()
        if config_error is not None:
            return config_error

        reason = req.reason or DEFAULT_REFUND_REASON
        logger.info(
            "payment_refund_request",
            payment_id=payment.id,
            gateway_payment_id=payment.gateway_payment_id,
            amount=plan.amount,
            new_status=plan.new_status.value,
        )
        try:
            gateway_refund = await self.gateway.refund(
                payment.gateway_payment_id,  # type: ignore[arg-type]
                amount_minor=to_minor_units(plan.amount),
                notes={"reason": reason, "paymentId": str(payment.id)},
            )
        except GatewayError as exc:
            return self._gateway_failure(exc, "payment_refund_gateway_failed", payment_id=payment.id)

        update = RefundUpdate(
            payment_id=str(payment.id),
            plan=plan,
            refund_id=gateway_refund.id,
            reason=reason,
            refunded_at=self._clock(),
        )

        async def _apply(repo: PaymentRepository) -> PaymentResult:
            updated = await repo.apply_refund(update)
            if updated is None:
                return PaymentResult.fail(
                    PaymentErrorKind.CONCURRENT_UPDATE,
                    "Payment changed while the refund was processed",
                    payment_id=payment.id,
                    refund_id=gateway_refund.id,
                )
            return PaymentResult.ok(updated)

        applied = await self._transact(_apply)
        if not applied.is_ok:
            # The gateway refund went through; reconciliation needs the refund id
            logger.error(
                "payment_refund_not_recorded",
                payment_id=payment.id,
                refund_id=gateway_refund.id,
                amount=plan.amount,
                reason=applied.kind.value if applied.kind else None,
            )
            return applied

        updated: Payment = applied.value
        logger.info(
            "payment_refunded",
            payment_id=updated.id,
            refund_id=gateway_refund.id,
            amount=plan.amount,
            refund_amount=updated.refund_amount,
            status=updated.status.value,
        )
        await self._sync_booking(updated)
        await self._notify("refund", principal.phone or updated.user_phone, updated, plan.amount)
        return PaymentResult.ok(
            RefundView(
                refund_id=gateway_refund.id,
                amount=plan.amount,
                status=gateway_refund.status,
                payment_id=updated.gateway_payment_id,
                payment_status=updated.status.value,
                refund_amount=updated.refund_amount,
            )
        )

    async def get_history(self, principal: AuthPrincipal, query: HistoryQuery) -> PaymentResult[PaymentHistory]:
        page = max(1, query.page or 1)
        limit = min(max(1, query.limit or 10), MAX_HISTORY_LIMIT)
        status_filter: Optional[PaymentStatus] = None
        if query.status and query.status != "all":
            try:
                status_filter = PaymentStatus(query.status)
            except ValueError:
                # Unknown status matches nothing
                return PaymentResult.ok(
                    PaymentHistory(payments=[], pagination=Pagination(page=page, limit=limit, total=0, total_pages=0))
                )

        async def _read(repo: PaymentRepository) -> PaymentResult:
            total = await repo.count_by_user(principal.user_id, status_filter)
            items = await repo.list_by_user(
                principal.user_id, skip=(page - 1) * limit, limit=limit, status=status_filter
            )
            return PaymentResult.ok((total, items))

        read = await self._transact(_read, readonly=True)
        if not read.is_ok:
            return read
        total, items = read.value
        return PaymentResult.ok(
            PaymentHistory(
                payments=[self._to_history_item(p) for p in items],
                pagination=Pagination(
                    page=page,
                    limit=limit,
                    total=total,
                    total_pages=math.ceil(total / limit) if total else 0,
                ),
            )
        )

    async def health_check(self) -> HealthReport:
        gateway_errors = self.gateway.config_errors()
        gateway_ok = not gateway_errors

        async def _ping(repo: PaymentRepository) -> PaymentResult:
            return PaymentResult.ok(await repo.ping())

        ping = await self._transact(_ping, readonly=True)
        db_connected = bool(ping.is_ok and ping.value)

        checks = {
            "gateway": {
                "provider": self.gateway.provider,
                "configured": gateway_ok,
                "mode": self.gateway.mode if gateway_ok else "unknown",
                "api_base_url": self.gateway.api_base_url,
                "webhook_configured": self.gateway.webhook_configured(),
                "errors": gateway_errors,
            },
            "database": {"configured": self.database_configured, "connected": db_connected},
            "auth": {"configured": self.auth_configured},
            "sms": {
                "configured": bool(self.notifier and self.notifier.is_configured()),
                "sender_id": self.notifier.sender_id if self.notifier else None,
            },
        }
        critical = [gateway_ok, db_connected, self.auth_configured]
        healthy = all(critical)
        failed = len(critical) - sum(critical)
        return HealthReport(
            status="healthy" if healthy else "degraded",
            healthy=healthy,
            message=(
                f"Payment gateway operational ({checks['gateway']['mode']} mode)"
                if healthy
                else f"{failed} configuration issue(s) found"
            ),
            checks=checks,
            timestamp=self._clock(),
        )

    async def handle_webhook(self, headers: dict[str, Any], body: bytes) -> PaymentResult[WebhookAck]:
        if not self.gateway.webhook_configured():
            logger.error("payment_webhook_not_configured", provider=self.gateway.provider)
            return PaymentResult.fail(PaymentErrorKind.CONFIGURATION_ERROR, "Webhook secret not configured")
        try:
            event = self.gateway.parse_webhook(headers, body)
        except WebhookSignatureError as exc:
            logger.warning("payment_webhook_signature_invalid", provider=exc.provider)
            return PaymentResult.fail(PaymentErrorKind.INVALID_SIGNATURE, "Invalid webhook signature")
        except GatewayError as exc:
            logger.warning("payment_webhook_malformed", provider=exc.provider, error=exc.message)
            return PaymentResult.fail(PaymentErrorKind.MISSING_FIELDS, "Malformed webhook payload")

        logger.info("payment_webhook_received", event=event.event, order_id=event.gateway_order_id)
        if not event.gateway_order_id or (event.event in PAID_EVENTS and not event.gateway_payment_id):
            return PaymentResult.ok(WebhookAck(event=event.event, handled=False))

        if event.event in PAID_EVENTS:
            outcome = await self._transition_to_paid(event.gateway_order_id, event.gateway_payment_id, None)
            if not outcome.is_ok:
                if outcome.kind == PaymentErrorKind.PERSISTENCE_ERROR:
                    # Non-2xx makes the gateway redeliver
                    return outcome
                logger.warning("payment_webhook_ignored", event=event.event, reason=outcome.kind.value)
                return PaymentResult.ok(WebhookAck(event=event.event, handled=False))
            payment: Payment = outcome.value
            if not outcome.replayed:
                logger.info("payment_captured_by_webhook", payment_id=payment.id, order_id=payment.gateway_order_id)
                await self._sync_booking(payment)
                await self._notify("payment", payment.user_phone, payment, payment.amount)
            return PaymentResult.ok(
                WebhookAck(event=event.event, handled=True, payment_id=str(payment.id), status=payment.status.value),
                replayed=outcome.replayed,
            )

        if event.event in FAILED_EVENTS:
            async def _fail(repo: PaymentRepository) -> PaymentResult:
                return PaymentResult.ok(await repo.mark_failed(event.gateway_order_id, event.error_description))

            failed = await self._transact(_fail)
            if not failed.is_ok:
                return failed
            payment = failed.value
            if payment is None:
                return PaymentResult.ok(WebhookAck(event=event.event, handled=False))
            logger.info("payment_failed", payment_id=payment.id, reason=event.error_description)
            return PaymentResult.ok(
                WebhookAck(event=event.event, handled=True, payment_id=str(payment.id), status=payment.status.value)
            )

        return PaymentResult.ok(WebhookAck(event=event.event, handled=False))

    async def reconcile_booking_sync(self, limit: int = 100) -> PaymentResult[SyncReport]:
        """Replay booking follow-ups that did not complete when the payment changed."""

        async def _pending(repo: PaymentRepository) -> PaymentResult:
            return PaymentResult.ok(await repo.list_booking_sync_pending(limit))

        loaded = await self._transact(_pending, readonly=True)
        if not loaded.is_ok:
            return loaded
        payments: list[Payment] = loaded.value
        synced = 0
        for snapshot in payments:
            # The batch may be stale by now; push what is stored at this moment
            async def _reload(repo: PaymentRepository, payment_id: str = str(snapshot.id)) -> PaymentResult:
                return PaymentResult.ok(await repo.get_by_id(payment_id))

            current = await self._transact(_reload, readonly=True)
            if not current.is_ok:
                continue
            payment: Optional[Payment] = current.value
            if payment is None or payment.booking_sync_status != BookingSyncStatus.PENDING:
                synced += 1
                continue
            if await self._sync_booking(payment):
                synced += 1
        report = SyncReport(scanned=len(payments), synced=synced, failed=len(payments) - synced)
        logger.info("booking_sync_reconciled", **report.model_dump())
        return PaymentResult.ok(report)

