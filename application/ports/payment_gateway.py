"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
Adapters hold their own credentials and are constructed explicitly at the
composition root, then injected into PaymentService.
"""
from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from application.dtos.payments import GatewayOrder, GatewayRefund, GatewayWebhookEvent


class GatewayError(Exception):
    """Provider call failed. Carries the provider's error code/description."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        provider_code: Optional[str] = None,
        status_code: Optional[int] = None,
        retryable: bool = False,
    ) -> None:
        self.message = message
        self.provider = provider
        self.provider_code = provider_code
        self.status_code = status_code
        # True only when the side effect is known not to have happened
        self.retryable = retryable
        super().__init__(message)

    def to_details(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "provider_code": self.provider_code,
            "description": self.message,
            "status_code": self.status_code,
            "retryable": self.retryable,
        }


class WebhookSignatureError(GatewayError):
    """Webhook body did not match the signature header."""


@runtime_checkable
class PaymentGateway(Protocol):
    """Gateway protocol for the order / refund API of the payment provider."""

    provider: str

    @property
    def key_id(self) -> Optional[str]: ...

    @property
    def mode(self) -> str: ...

    @property
    def api_base_url(self) -> str: ...

    def config_errors(self) -> list[str]: ...

    def webhook_configured(self) -> bool: ...

    async def create_order(
        self,
        *,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: dict[str, str],
    ) -> GatewayOrder: ...

    async def refund(
        self,
        gateway_payment_id: str,
        *,
        amount_minor: int,
        notes: dict[str, str],
    ) -> GatewayRefund: ...

    def verify_payment_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool: ...

    def parse_webhook(self, headers: dict[str, Any], body: bytes) -> GatewayWebhookEvent: ...

    async def aclose(self) -> None: ...
