"""Booking record synchronisation."""
from .sync import BookingSyncError, SQLAlchemyBookingSync

__all__ = ["BookingSyncError", "SQLAlchemyBookingSync"]
