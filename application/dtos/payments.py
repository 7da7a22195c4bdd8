"""
Payment DTOs (Pydantic v2) used at application boundaries.

JSON in and out is camelCase (what the booking frontend sends); Python
attributes stay snake_case. All amounts are major units (rupees) except
`GatewayOrder.amount`, which echoes the gateway's minor units.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----------------------------------------------------------------------
# Requests
# ----------------------------------------------------------------------
class CreateOrderRequest(CamelModel):
    # Left optional so a missing/zero amount maps to InvalidAmount, not a 422
    amount: Optional[int] = None
    service_name: Optional[str] = None
    service_type: Optional[str] = None
    booking_id: Optional[str] = None
    booking_date: Optional[date] = None
    booking_time_slot: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    pincode: Optional[str] = None
    notes: Optional[str] = None
    idempotency_key: Optional[str] = Field(default=None, max_length=128)


class VerifyPaymentRequest(BaseModel):
    gateway_order_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gateway_order_id", "razorpay_order_id", "gatewayOrderId"),
    )
    gateway_payment_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gateway_payment_id", "razorpay_payment_id", "gatewayPaymentId"),
    )
    gateway_signature: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gateway_signature", "razorpay_signature", "gatewaySignature"),
    )


class RefundRequest(CamelModel):
    payment_id: Optional[str] = None
    amount: Optional[int] = None
    reason: Optional[str] = Field(default=None, max_length=500)


class HistoryQuery(BaseModel):
    page: int = 1
    limit: int = 10
    status: Optional[str] = None


# ----------------------------------------------------------------------
# Gateway port payloads
# ----------------------------------------------------------------------
class GatewayOrder(BaseModel):
    id: str
    amount: int
    currency: str
    receipt: Optional[str] = None
    status: Optional[str] = None


class GatewayRefund(BaseModel):
    id: str
    payment_id: Optional[str] = None
    amount: int
    status: str


class GatewayWebhookEvent(BaseModel):
    event: str
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    error_description: Optional[str] = None
    payload: dict[str, Any] = Field(default_factory=dict)


# ----------------------------------------------------------------------
# Responses
# ----------------------------------------------------------------------
class OrderView(CamelModel):
    id: str
    amount: int
    currency: str
    receipt: Optional[str] = None


class CreateOrderResult(CamelModel):
    order: OrderView
    payment_id: str
    key: Optional[str]
    mode: str


class PaymentView(CamelModel):
    id: str
    order_id: str
    payment_id: Optional[str] = None
    amount: int
    status: str
    service_name: Optional[str] = None
    paid_at: Optional[datetime] = None


class RefundView(CamelModel):
    refund_id: str
    amount: int
    status: str
    payment_id: Optional[str] = None
    payment_status: str
    refund_amount: int


class PaymentHistoryItem(CamelModel):
    id: str
    order_id: str
    payment_id: Optional[str] = None
    amount: int
    currency: str
    status: str
    service_name: Optional[str] = None
    service_type: Optional[str] = None
    booking_id: Optional[str] = None
    booking_date: Optional[date] = None
    booking_time_slot: Optional[str] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    refund_id: Optional[str] = None
    refund_status: Optional[str] = None
    refund_amount: int = 0
    refunded_at: Optional[datetime] = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PaymentHistory(CamelModel):
    payments: list[PaymentHistoryItem]
    pagination: Pagination


class HealthReport(CamelModel):
    status: str
    healthy: bool
    message: str
    checks: dict[str, Any]
    timestamp: datetime


class WebhookAck(CamelModel):
    event: str
    handled: bool
    payment_id: Optional[str] = None
    status: Optional[str] = None


class SyncReport(CamelModel):
    scanned: int
    synced: int
    failed: int
