"""
Booking port: the booking record is owned elsewhere; payments only push
payment status and cancellation onto it.

Implementations must be idempotent: the reconciliation sweep replays them.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class BookingSync(Protocol):
    async def set_payment_status(self, booking_id: str, payment_status: str) -> None: ...

    async def set_booking_status(self, booking_id: str, status: str) -> None: ...
