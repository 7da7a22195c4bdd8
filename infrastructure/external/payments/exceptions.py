"""
Exceptions for payment providers, all subclasses of the port-level GatewayError.
"""
from __future__ import annotations

from typing import Optional

from application.ports.payment_gateway import GatewayError, WebhookSignatureError


class PaymentProviderError(GatewayError):
    """Provider answered with an error payload or an unexpected response."""


class PaymentTransportError(PaymentProviderError):
    """Network failure or timeout before a response was read.

    The side effect may or may not have happened on the provider side.
    """

    def __init__(self, message: str, *, provider: str, provider_code: Optional[str] = "TRANSPORT_ERROR"):
        super().__init__(message, provider=provider, provider_code=provider_code)


class PaymentSignatureError(WebhookSignatureError):
    pass


__all__ = ["PaymentProviderError", "PaymentTransportError", "PaymentSignatureError"]
