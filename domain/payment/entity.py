"""
支付领域实体 - 支付聚合根
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from domain.common.exceptions import DomainValidationException
from domain.payment.errors import PaymentError, PaymentErrorKind


class PaymentStatus(str, Enum):
    """支付状态枚举"""
    CREATED = "created"                        # 网关订单已创建
    PENDING = "pending"                        # 支付中
    PAID = "paid"                              # 支付成功
    FAILED = "failed"                          # 支付失败
    REFUNDED = "refunded"                      # 全额退款
    PARTIALLY_REFUNDED = "partially_refunded"  # 部分退款


class RefundStatus(str, Enum):
    """退款状态枚举"""
    PARTIAL = "partial"
    PROCESSED = "processed"


class BookingSyncStatus(str, Enum):
    """预约同步状态（saga 补偿用）"""
    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    SYNCED = "synced"


# 状态机：只允许向前迁移，failed / refunded 为终态
ALLOWED_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.CREATED: frozenset({PaymentStatus.PENDING, PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.PAID: frozenset({PaymentStatus.PARTIALLY_REFUNDED, PaymentStatus.REFUNDED}),
    PaymentStatus.PARTIALLY_REFUNDED: frozenset({PaymentStatus.PARTIALLY_REFUNDED, PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}

PAYABLE_STATUSES = (PaymentStatus.CREATED, PaymentStatus.PENDING)
REFUNDABLE_STATUSES = (PaymentStatus.PAID, PaymentStatus.PARTIALLY_REFUNDED)
SETTLED_STATUSES = (PaymentStatus.PAID, PaymentStatus.PARTIALLY_REFUNDED, PaymentStatus.REFUNDED)

DEFAULT_CURRENCY = "INR"
DEFAULT_REFUND_REASON = "Customer requested refund"


def to_minor_units(amount: int | Decimal) -> int:
    """Major units (rupees) → minor units (paise): round(amount * 100)."""
    return int((Decimal(str(amount)) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """确保时间为 UTC 时区"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class RefundPlan:
    """Outcome of a refund computed before the gateway is called."""
    amount: int
    new_status: PaymentStatus
    new_refund_amount: int
    refund_status: RefundStatus
    expected_status: PaymentStatus
    expected_refund_amount: int


@dataclass
class Payment:
    """
    支付聚合根 - 管理支付生命周期

    业务规则：
    1. gateway_order_id 唯一
    2. 金额必须 >= 1（主币种单位）
    3. 状态只能沿状态机向前迁移
    4. 累计退款金额不能超过支付金额
    5. gateway_payment_id / gateway_signature 只在 created → paid 时写入一次
    """

    id: Optional[str]
    user_id: str
    gateway_order_id: str
    amount: int
    currency: str = DEFAULT_CURRENCY
    status: PaymentStatus = PaymentStatus.CREATED
    user_phone: Optional[str] = None
    receipt: Optional[str] = None
    idempotency_key: Optional[str] = None

    gateway_payment_id: Optional[str] = None
    gateway_signature: Optional[str] = None

    # 预约信息（外部实体，仅做关联）
    service_name: Optional[str] = None
    service_type: Optional[str] = None
    booking_id: Optional[str] = None
    booking_date: Optional[date] = None
    booking_time_slot: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    pincode: Optional[str] = None
    notes: Optional[str] = None

    # 退款相关
    refund_id: Optional[str] = None
    refund_amount: int = 0
    refund_status: Optional[RefundStatus] = None
    refund_reason: Optional[str] = None
    refunded_at: Optional[datetime] = None

    booking_sync_status: BookingSyncStatus = BookingSyncStatus.NOT_REQUIRED
    booking_synced_at: Optional[datetime] = None
    failure_reason: Optional[str] = None

    # 时间戳
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    def __post_init__(self):
        self._validate_amount()
        self.created_at = _ensure_utc(self.created_at)
        self.updated_at = _ensure_utc(self.updated_at)
        self.paid_at = _ensure_utc(self.paid_at)
        self.refunded_at = _ensure_utc(self.refunded_at)
        self.booking_synced_at = _ensure_utc(self.booking_synced_at)

    def _validate_amount(self) -> None:
        if self.amount < 1:
            raise DomainValidationException(f"支付金额必须 >= 1: {self.amount}", field="amount")
        if self.refund_amount < 0 or self.refund_amount > self.amount:
            raise DomainValidationException(
                f"累计退款金额 {self.refund_amount} 超出范围 [0, {self.amount}]",
                field="refund_amount",
            )

    @property
    def amount_minor(self) -> int:
        return to_minor_units(self.amount)

    @property
    def refundable_amount(self) -> int:
        return self.amount - self.refund_amount

    @property
    def is_settled(self) -> bool:
        return self.status in SETTLED_STATUSES

    def can_transition(self, target: PaymentStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def is_owned_by(self, user_id: str) -> bool:
        return str(self.user_id) == str(user_id)

    def check_refundable(self) -> Optional[PaymentError]:
        """Return the first failed refund precondition, or None."""
        if self.refund_status == RefundStatus.PROCESSED or self.status == PaymentStatus.REFUNDED:
            return PaymentError(
                PaymentErrorKind.ALREADY_REFUNDED,
                "Payment already refunded",
                {"payment_id": self.id, "refund_id": self.refund_id},
            )
        if self.status not in REFUNDABLE_STATUSES:
            return PaymentError(
                PaymentErrorKind.NOT_REFUNDABLE,
                "Only paid payments can be refunded",
                {"payment_id": self.id, "status": self.status.value},
            )
        if not self.gateway_payment_id:
            return PaymentError(
                PaymentErrorKind.MISSING_GATEWAY_REFERENCE,
                "No gateway payment id found",
                {"payment_id": self.id},
            )
        return None

    def plan_refund(self, requested: Optional[int] = None) -> RefundPlan | PaymentError:
        """Clamp the requested amount to what is left and derive the next state."""
        precondition = self.check_refundable()
        if precondition is not None:
            return precondition
        if requested is not None and requested < 1:
            return PaymentError(
                PaymentErrorKind.INVALID_AMOUNT,
                "Refund amount must be at least 1",
                {"requested": requested},
                field="amount",
            )
        remaining = self.refundable_amount
        effective = min(requested if requested is not None else remaining, remaining)
        new_refund_amount = self.refund_amount + effective
        fully_refunded = new_refund_amount >= self.amount
        return RefundPlan(
            amount=effective,
            new_status=PaymentStatus.REFUNDED if fully_refunded else PaymentStatus.PARTIALLY_REFUNDED,
            new_refund_amount=new_refund_amount,
            refund_status=RefundStatus.PROCESSED if fully_refunded else RefundStatus.PARTIAL,
            expected_status=self.status,
            expected_refund_amount=self.refund_amount,
        )

    def check_verification_replay(self, gateway_payment_id: str) -> Optional[PaymentError]:
        """A second confirmation for an already settled payment is accepted only
        when it names the same gateway payment."""
        if self.is_settled and self.gateway_payment_id == gateway_payment_id:
            return None
        return PaymentError(
            PaymentErrorKind.INVALID_TRANSITION,
            f"Payment in status {self.status.value} cannot be marked paid",
            {"payment_id": self.id, "status": self.status.value},
        )
