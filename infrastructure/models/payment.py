"""
支付数据库模型 - SQLAlchemy ORM模型
注意：这是基础设施层的实现细节，不是领域模型
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Index, Integer, String, Text, UniqueConstraint

from .base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentModel(Base):
    """
    支付数据库模型

    这是数据库表的映射，不包含业务逻辑
    所有业务规则都在 domain.payment.entity.Payment 中
    """
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    user_id = Column(String(64), nullable=False, index=True, comment="用户ID")
    user_phone = Column(String(20), nullable=True, comment="用户手机号")

    # 网关信息
    gateway_order_id = Column(String(64), unique=True, nullable=False, comment="网关订单ID")
    gateway_payment_id = Column(String(64), nullable=True, index=True, comment="网关支付ID")
    gateway_signature = Column(String(128), nullable=True, comment="客户端提交的支付签名")
    receipt = Column(String(64), nullable=True, comment="下单时发送给网关的 receipt")
    idempotency_key = Column(String(128), nullable=True, comment="客户端幂等键（按用户唯一）")

    # 金额（主币种整数单位，网关交互时换算为最小单位）
    amount = Column(Integer, nullable=False, comment="支付金额")
    currency = Column(String(3), nullable=False, default="INR", comment="货币代码 ISO-4217")

    status = Column(
        String(32),
        nullable=False,
        default="created",
        index=True,
        comment="支付状态: created/pending/paid/failed/refunded/partially_refunded"
    )
    failure_reason = Column(Text, nullable=True, comment="失败原因")

    # 预约信息
    service_name = Column(String(200), nullable=True)
    service_type = Column(String(100), nullable=True)
    booking_id = Column(String(64), nullable=True, index=True)
    booking_date = Column(Date, nullable=True)
    booking_time_slot = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    pincode = Column(String(10), nullable=True)
    notes = Column(Text, nullable=True)

    # 退款信息
    refund_id = Column(String(64), nullable=True, comment="最近一次网关退款ID")
    refund_amount = Column(Integer, nullable=False, default=0, comment="累计退款金额")
    refund_status = Column(String(32), nullable=True, comment="partial/processed")
    refund_reason = Column(Text, nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    # 预约同步（saga 补偿）
    booking_sync_status = Column(String(32), nullable=False, default="not_required", comment="not_required/pending/synced")
    booking_synced_at = Column(DateTime(timezone=True), nullable=True)

    # 时间戳
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False, comment="更新时间")
    paid_at = Column(DateTime(timezone=True), nullable=True, comment="支付完成时间")

    __table_args__ = (
        UniqueConstraint("user_id", "idempotency_key", name="uq_payments_user_idempotency_key"),
        Index("ix_payments_user_created", "user_id", "created_at"),
        Index("ix_payments_user_status", "user_id", "status"),
        Index("ix_payments_booking_sync_status", "booking_sync_status"),
    )

    def __repr__(self):
        return (
            f"<PaymentModel(id={self.id}, gateway_order_id='{self.gateway_order_id}', "
            f"amount={self.amount}, status='{self.status}')>"
        )
