"""
NotificationDispatcher adapters.

`SmsNotificationDispatcher` sends inline through `SmsClient`; it is what the
Celery task uses. `QueuedNotificationDispatcher` only enqueues the send so
the HTTP response never waits on the SMS provider.
"""
from __future__ import annotations

import asyncio
from typing import Optional, Protocol

from core.logging_config import get_logger
from infrastructure.external.sms.client import SmsClient
from infrastructure.external.sms.messages import payment_confirmation_text, refund_notification_text


logger = get_logger(__name__)


class SmsTaskQueue(Protocol):
    def send_sms(self, phone: str, text: str) -> None: ...


class SmsNotificationDispatcher:
    def __init__(self, client: SmsClient) -> None:
        self._client = client
        self.sender_id: Optional[str] = client.sender_id

    def is_configured(self) -> bool:
        return self._client.is_configured()

    async def send_payment_confirmation(self, phone: str, amount: int, service_name: Optional[str]) -> None:
        await self._client.send(phone, payment_confirmation_text(amount, service_name))

    async def send_refund_notification(self, phone: str, amount: int, service_name: Optional[str]) -> None:
        await self._client.send(phone, refund_notification_text(amount, service_name))


class QueuedNotificationDispatcher:
    def __init__(self, queue: SmsTaskQueue, *, sender_id: Optional[str], configured: bool) -> None:
        self._queue = queue
        self.sender_id = sender_id
        self._configured = configured

    def is_configured(self) -> bool:
        return self._configured

    async def _enqueue(self, phone: str, text: str) -> None:
        # Broker publish is blocking I/O
        await asyncio.to_thread(self._queue.send_sms, phone, text)
        logger.info("sms_enqueued", to=phone[-4:])

    async def send_payment_confirmation(self, phone: str, amount: int, service_name: Optional[str]) -> None:
        await self._enqueue(phone, payment_confirmation_text(amount, service_name))

    async def send_refund_notification(self, phone: str, amount: int, service_name: Optional[str]) -> None:
        await self._enqueue(phone, refund_notification_text(amount, service_name))
