"""
Razorpay Orders/Refunds adapter over the REST API (httpx, HTTP basic auth).

- POST /orders                      create an order (amount in paise)
- POST /payments/{id}/refund        refund a captured payment (full or partial)
- Checkout signature: HMAC-SHA256(key_secret, "<order_id>|<payment_id>")
- Webhook signature:  HMAC-SHA256(webhook_secret, raw body), header X-Razorpay-Signature

Errors come back as {"error": {"code": "BAD_REQUEST_ERROR", "description": "..."}}.
"""
from __future__ import annotations

import json
from typing import Any, Optional

import httpx

from application.dtos.payments import GatewayOrder, GatewayRefund, GatewayWebhookEvent
from core.logging_config import get_logger
from domain.payment import signature
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.exceptions import PaymentProviderError, PaymentSignatureError


logger = get_logger(__name__)

SIGNATURE_HEADER = "x-razorpay-signature"
LIVE_KEY_PREFIX = "rzp_live_"
KEY_PREFIX = "rzp_"


class RazorpayClient(BasePaymentClient):
    provider = "razorpay"

    def __init__(
        self,
        *,
        key_id: Optional[str],
        key_secret: Optional[str],
        webhook_secret: Optional[str] = None,
        api_base_url: str = "https://api.razorpay.com/v1",
        timeouts: Optional[dict[str, float]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            base_url=api_base_url,
            timeouts=timeouts,
            auth=(key_id, key_secret) if key_id and key_secret else None,
            transport=transport,
        )
        self._key_id = key_id
        self._key_secret = key_secret
        self._webhook_secret = webhook_secret

    @property
    def key_id(self) -> Optional[str]:
        return self._key_id

    @property
    def mode(self) -> str:
        return "live" if (self._key_id or "").startswith(LIVE_KEY_PREFIX) else "test"

    def config_errors(self) -> list[str]:
        errors: list[str] = []
        if not self._key_id:
            errors.append("RAZORPAY__KEY_ID is missing")
        elif not self._key_id.startswith(KEY_PREFIX):
            errors.append("RAZORPAY__KEY_ID should start with 'rzp_'")
        if not self._key_secret:
            errors.append("RAZORPAY__KEY_SECRET is missing")
        return errors

    def webhook_configured(self) -> bool:
        return bool(self._webhook_secret)

    def _error_from_response(self, status_code: int, body: dict[str, Any]) -> PaymentProviderError:
        error = body.get("error") if isinstance(body, dict) else None
        error = error if isinstance(error, dict) else {}
        return PaymentProviderError(
            error.get("description") or f"Razorpay returned HTTP {status_code}",
            provider=self.provider,
            provider_code=error.get("code"),
            status_code=status_code,
            # 4xx: request rejected, nothing was created
            retryable=400 <= status_code < 500,
        )

    async def create_order(
        self,
        *,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: dict[str, str],
    ) -> GatewayOrder:
        body = await self._post(
            "/orders",
            {"amount": amount_minor, "currency": currency, "receipt": receipt, "notes": notes},
        )
        order = GatewayOrder(
            id=str(body["id"]),
            amount=int(body.get("amount", amount_minor)),
            currency=body.get("currency", currency),
            receipt=body.get("receipt", receipt),
            status=self._map_status(body.get("status")),
        )
        self._log("razorpay_order_created", order_id=order.id, amount_minor=order.amount, mode=self.mode)
        return order

    async def refund(
        self,
        gateway_payment_id: str,
        *,
        amount_minor: int,
        notes: dict[str, str],
    ) -> GatewayRefund:
        body = await self._post(
            f"/payments/{gateway_payment_id}/refund",
            {"amount": amount_minor, "notes": notes},
        )
        refund = GatewayRefund(
            id=str(body["id"]),
            payment_id=body.get("payment_id", gateway_payment_id),
            amount=int(body.get("amount", amount_minor)),
            status=self._map_status(body.get("status")) or "pending",
        )
        self._log("razorpay_refund_created", refund_id=refund.id, payment_id=gateway_payment_id, status=refund.status)
        return refund

    def verify_payment_signature(self, gateway_order_id: str, gateway_payment_id: str, signature_: str) -> bool:
        if not self._key_secret:
            return False
        return signature.verify_payment_signature(
            gateway_order_id, gateway_payment_id, signature_, self._key_secret
        )

    def parse_webhook(self, headers: dict[str, Any], body: bytes) -> GatewayWebhookEvent:
        lowered = {str(k).lower(): v for k, v in headers.items()}
        sent = lowered.get(SIGNATURE_HEADER)
        if not sent or not signature.verify_webhook_signature(body, sent, self._webhook_secret or ""):
            raise PaymentSignatureError("Invalid webhook signature", provider=self.provider)

        try:
            data = json.loads(body)
        except ValueError as exc:
            raise PaymentProviderError("Webhook body is not JSON", provider=self.provider) from exc
        if not isinstance(data, dict) or not data.get("event"):
            raise PaymentProviderError("Webhook event missing", provider=self.provider)

        payload = data.get("payload") or {}
        payment = ((payload.get("payment") or {}).get("entity")) or {}
        order = ((payload.get("order") or {}).get("entity")) or {}
        return GatewayWebhookEvent(
            event=data["event"],
            gateway_order_id=payment.get("order_id") or order.get("id"),
            gateway_payment_id=payment.get("id"),
            error_description=payment.get("error_description"),
            payload=payload,
        )
