"""
Notification port for customer SMS. Best effort: callers log and discard
any error raised here.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class NotificationDispatcher(Protocol):
    sender_id: Optional[str]

    def is_configured(self) -> bool: ...

    async def send_payment_confirmation(self, phone: str, amount: int, service_name: Optional[str]) -> None: ...

    async def send_refund_notification(self, phone: str, amount: int, service_name: Optional[str]) -> None: ...
