"""Customer-facing SMS bodies."""
from __future__ import annotations

from typing import Optional


def payment_confirmation_text(amount: int, service_name: Optional[str]) -> str:
    return (
        f"Payment of Rs.{amount} received for {service_name or 'your booking'}. "
        "Thank you for choosing ChillMechanic!"
    )


def refund_notification_text(amount: int, service_name: Optional[str]) -> str:
    return (
        f"Refund of Rs.{amount} initiated for {service_name or 'your booking'}. "
        "Amount will be credited within 5-7 business days. - ChillMechanic"
    )
