"""Customer SMS Celery tasks"""
from __future__ import annotations

import asyncio

from celery import shared_task

from ..utils.base_task import BaseTask
from core.logging_config import get_logger
from infrastructure.external.sms import build_sms_client

logger = get_logger(__name__)


# No Celery-level retry: SmsClient already retries transport errors, and an
# HTTP error response may mean the provider queued the message anyway.
@shared_task(name="notifications.send_sms", bind=True, base=BaseTask, max_retries=0)
def send_sms(self, phone: str, text: str) -> dict:
    """Deliver one transactional SMS. Losing an SMS never affects payment state."""
    client = build_sms_client()
    if not client.is_configured():
        logger.info("sms_skipped_not_configured", to=phone[-4:])
        return {"sent": False}
    asyncio.run(client.send(phone, text))
    return {"sent": True}
