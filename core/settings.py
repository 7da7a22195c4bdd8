"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Kept apart from core.config.Settings so gateway credentials can be loaded by
the Celery worker without the web settings. Examples:

    RAZORPAY__KEY_ID=rzp_test_xxx
    RAZORPAY__KEY_SECRET=...
    SMS__API_KEY=...
    PAYMENT_TIMEOUTS__TOTAL=10
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class PaymentTimeouts(BaseModel):
    connect: float = 5.0
    read: float = 30.0
    write: float = 30.0
    total: float = 30.0


class RazorpaySettings(BaseModel):
    key_id: Optional[str] = None
    key_secret: Optional[str] = None
    webhook_secret: Optional[str] = None
    api_base_url: str = "https://api.razorpay.com/v1"


class SmsSettings(BaseModel):
    api_key: Optional[str] = None
    sender_id: str = "CHLMEH"
    api_url: str = "https://api.uniquedigitaloutreach.com/v1/sms"
    timeout: float = 30.0
    max_retries: int = 3
    retry_backoff: float = 1.0
    # Send through the Celery queue instead of inline in the request
    use_queue: bool = True


class ReconciliationSettings(BaseModel):
    batch_size: int = 100
    interval_seconds: int = 300


class PaymentSettings(BaseSettings):
    currency: str = "INR"
    payment_timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    razorpay: RazorpaySettings = Field(default_factory=RazorpaySettings)
    sms: SmsSettings = Field(default_factory=SmsSettings)
    reconciliation: ReconciliationSettings = Field(default_factory=ReconciliationSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )


payment_settings = PaymentSettings()
