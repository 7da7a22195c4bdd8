"""
Factory for payment gateway clients.
"""
from __future__ import annotations

from typing import Optional

import httpx

from application.ports.payment_gateway import PaymentGateway
from core.settings import PaymentSettings, payment_settings


def build_payment_gateway(
    settings: Optional[PaymentSettings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> PaymentGateway:
    """Construct the gateway adapter from settings. No module-level instance is kept."""
    from .razorpay_client import RazorpayClient

    cfg = settings or payment_settings
    return RazorpayClient(
        key_id=cfg.razorpay.key_id,
        key_secret=cfg.razorpay.key_secret,
        webhook_secret=cfg.razorpay.webhook_secret,
        api_base_url=cfg.razorpay.api_base_url,
        timeouts=cfg.payment_timeouts.model_dump(),
        transport=transport,
    )
