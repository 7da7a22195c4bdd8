"""SMS notifications."""
from __future__ import annotations

from typing import Optional

import httpx

from core.settings import PaymentSettings, payment_settings
from .client import SmsClient, SmsDeliveryError, normalize_phone
from .dispatcher import QueuedNotificationDispatcher, SmsNotificationDispatcher, SmsTaskQueue


def build_sms_client(
    settings: Optional[PaymentSettings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> SmsClient:
    cfg = (settings or payment_settings).sms
    return SmsClient(
        api_url=cfg.api_url,
        api_key=cfg.api_key,
        sender_id=cfg.sender_id,
        timeout=cfg.timeout,
        max_retries=cfg.max_retries,
        retry_backoff=cfg.retry_backoff,
        transport=transport,
    )


__all__ = [
    "SmsClient",
    "SmsDeliveryError",
    "normalize_phone",
    "build_sms_client",
    "SmsNotificationDispatcher",
    "QueuedNotificationDispatcher",
    "SmsTaskQueue",
]
