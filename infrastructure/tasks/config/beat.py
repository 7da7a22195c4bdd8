"""Celery beat schedule configuration."""
from __future__ import annotations

from core.settings import payment_settings

CELERY_BEAT_SCHEDULE = {
    # Replays booking updates that failed right after verify/refund/webhook
    "payments-reconcile-booking-sync": {
        "task": "payments.reconcile_booking_sync",
        "schedule": payment_settings.reconciliation.interval_seconds,
        "kwargs": {"limit": payment_settings.reconciliation.batch_size},
    },
}
