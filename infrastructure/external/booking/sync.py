"""
BookingSync over the `bookings` table, which the booking service owns.

Only the two columns payments is allowed to touch are declared here; the
table is not part of this service's ORM metadata or migrations.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import column, table, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger


logger = get_logger(__name__)

bookings = table(
    "bookings",
    column("id"),
    column("payment_status"),
    column("status"),
    column("updated_at"),
)


class BookingSyncError(Exception):
    pass


class SQLAlchemyBookingSync:
    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _update(self, booking_id: str, values: dict) -> None:
        values = {**values, "updated_at": datetime.now(timezone.utc)}
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        update(bookings).where(bookings.c.id == booking_id).values(**values)
                    )
        except SQLAlchemyError as exc:
            raise BookingSyncError(f"booking {booking_id} update failed: {exc.__class__.__name__}") from exc
        if not result.rowcount:
            # Deleted booking: nothing left to sync, retrying would not help
            logger.warning("booking_not_found", booking_id=booking_id, values=list(values))

    async def set_payment_status(self, booking_id: str, payment_status: str) -> None:
        await self._update(booking_id, {"payment_status": payment_status})

    async def set_booking_status(self, booking_id: str, status: str) -> None:
        await self._update(booking_id, {"status": status})
