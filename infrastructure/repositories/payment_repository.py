"""
支付仓储实现 - 使用SQLAlchemy实现数据访问

状态迁移全部是带前置条件的 UPDATE，用受影响行数判断是否命中，
避免「先读后写」在并发请求下重复迁移。
"""
import functools
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import case, func, select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.payment.entity import (
    PAYABLE_STATUSES,
    BookingSyncStatus,
    Payment,
    PaymentStatus,
    RefundStatus,
)
from domain.payment.repository import DuplicateKeyError, PaymentRepository, RefundUpdate, RepositoryError
from infrastructure.models.payment import PaymentModel


logger = get_logger(__name__)


def _wrap_errors(fn):
    """把 SQLAlchemy 异常统一包装为 RepositoryError。"""

    @functools.wraps(fn)
    async def wrapper(self, *args, **kwargs):
        try:
            return await fn(self, *args, **kwargs)
        except IntegrityError as exc:
            logger.warning("payment_repository_conflict", operation=fn.__name__, error=str(exc.orig))
            raise DuplicateKeyError(f"{fn.__name__} failed: unique constraint") from exc
        except SQLAlchemyError as exc:
            logger.error("payment_repository_error", operation=fn.__name__, error=str(exc))
            raise RepositoryError(f"{fn.__name__} failed: {exc.__class__.__name__}") from exc

    return wrapper


def _sync_status_after_change():
    # 有关联预约的支付在每次状态变化后都需要同步
    return case(
        (PaymentModel.booking_id.is_(None), BookingSyncStatus.NOT_REQUIRED.value),
        else_=BookingSyncStatus.PENDING.value,
    )


class SQLAlchemyPaymentRepository(PaymentRepository):
    """支付仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: PaymentModel) -> Payment:
        """将数据库模型转换为领域实体"""
        return Payment(
            id=model.id,
            user_id=model.user_id,
            user_phone=model.user_phone,
            gateway_order_id=model.gateway_order_id,
            gateway_payment_id=model.gateway_payment_id,
            gateway_signature=model.gateway_signature,
            receipt=model.receipt,
            idempotency_key=model.idempotency_key,
            amount=model.amount,
            currency=model.currency,
            status=PaymentStatus(model.status),
            failure_reason=model.failure_reason,
            service_name=model.service_name,
            service_type=model.service_type,
            booking_id=model.booking_id,
            booking_date=model.booking_date,
            booking_time_slot=model.booking_time_slot,
            address=model.address,
            city=model.city,
            pincode=model.pincode,
            notes=model.notes,
            refund_id=model.refund_id,
            refund_amount=model.refund_amount or 0,
            refund_status=RefundStatus(model.refund_status) if model.refund_status else None,
            refund_reason=model.refund_reason,
            refunded_at=model.refunded_at,
            booking_sync_status=BookingSyncStatus(model.booking_sync_status),
            booking_synced_at=model.booking_synced_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
            paid_at=model.paid_at,
        )

    def _to_model(self, entity: Payment) -> PaymentModel:
        """将领域实体转换为数据库模型"""
        return PaymentModel(
            id=entity.id or str(uuid.uuid4()),
            user_id=entity.user_id,
            user_phone=entity.user_phone,
            gateway_order_id=entity.gateway_order_id,
            receipt=entity.receipt,
            idempotency_key=entity.idempotency_key,
            amount=entity.amount,
            currency=entity.currency,
            status=entity.status.value,
            service_name=entity.service_name,
            service_type=entity.service_type,
            booking_id=entity.booking_id,
            booking_date=entity.booking_date,
            booking_time_slot=entity.booking_time_slot,
            address=entity.address,
            city=entity.city,
            pincode=entity.pincode,
            notes=entity.notes,
            refund_amount=entity.refund_amount,
            booking_sync_status=entity.booking_sync_status.value,
            created_at=entity.created_at or datetime.now(timezone.utc),
            updated_at=entity.updated_at or datetime.now(timezone.utc),
        )

    async def _get_one(self, *criteria: Any) -> Optional[Payment]:
        # populate_existing: 条件 UPDATE 之后重新读取必须拿到数据库中的新值
        result = await self.session.execute(
            select(PaymentModel).where(*criteria).execution_options(populate_existing=True)
        )
        db_payment = result.scalar_one_or_none()
        return self._to_entity(db_payment) if db_payment else None

    async def _conditional_update(self, criteria: list, values: dict) -> bool:
        result = await self.session.execute(
            update(PaymentModel)
            .where(*criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) > 0

    @_wrap_errors
    async def create(self, payment: Payment) -> Payment:
        """创建支付记录"""
        db_payment = self._to_model(payment)
        self.session.add(db_payment)
        await self.session.flush()
        await self.session.refresh(db_payment)
        logger.info(
            "payment_row_created",
            payment_id=db_payment.id,
            gateway_order_id=db_payment.gateway_order_id,
        )
        return self._to_entity(db_payment)

    @_wrap_errors
    async def get_by_id(self, payment_id: str) -> Optional[Payment]:
        """根据ID获取支付"""
        return await self._get_one(PaymentModel.id == str(payment_id))

    @_wrap_errors
    async def get_by_gateway_order_id(self, gateway_order_id: str) -> Optional[Payment]:
        """根据网关订单ID获取支付"""
        return await self._get_one(PaymentModel.gateway_order_id == gateway_order_id)

    @_wrap_errors
    async def get_by_idempotency_key(self, user_id: str, idempotency_key: str) -> Optional[Payment]:
        return await self._get_one(
            PaymentModel.user_id == str(user_id),
            PaymentModel.idempotency_key == idempotency_key,
        )

    @_wrap_errors
    async def mark_paid(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        gateway_signature: Optional[str],
        paid_at: datetime,
    ) -> Optional[Payment]:
        changed = await self._conditional_update(
            [
                PaymentModel.gateway_order_id == gateway_order_id,
                PaymentModel.status.in_([s.value for s in PAYABLE_STATUSES]),
            ],
            {
                "status": PaymentStatus.PAID.value,
                "gateway_payment_id": gateway_payment_id,
                "gateway_signature": gateway_signature,
                "paid_at": paid_at,
                "updated_at": paid_at,
                "booking_sync_status": _sync_status_after_change(),
            },
        )
        if not changed:
            return None
        return await self._get_one(PaymentModel.gateway_order_id == gateway_order_id)

    @_wrap_errors
    async def mark_failed(self, gateway_order_id: str, reason: Optional[str]) -> Optional[Payment]:
        changed = await self._conditional_update(
            [
                PaymentModel.gateway_order_id == gateway_order_id,
                PaymentModel.status.in_([s.value for s in PAYABLE_STATUSES]),
            ],
            {
                "status": PaymentStatus.FAILED.value,
                "failure_reason": reason,
                "updated_at": datetime.now(timezone.utc),
            },
        )
        if not changed:
            return None
        return await self._get_one(PaymentModel.gateway_order_id == gateway_order_id)

    @_wrap_errors
    async def apply_refund(self, update_: RefundUpdate) -> Optional[Payment]:
        plan = update_.plan
        changed = await self._conditional_update(
            [
                PaymentModel.id == update_.payment_id,
                PaymentModel.status == plan.expected_status.value,
                PaymentModel.refund_amount == plan.expected_refund_amount,
            ],
            {
                "status": plan.new_status.value,
                "refund_amount": plan.new_refund_amount,
                "refund_status": plan.refund_status.value,
                "refund_id": update_.refund_id,
                "refund_reason": update_.reason,
                "refunded_at": update_.refunded_at,
                "updated_at": update_.refunded_at,
                "booking_sync_status": _sync_status_after_change(),
            },
        )
        if not changed:
            logger.warning(
                "payment_refund_guard_missed",
                payment_id=update_.payment_id,
                expected_status=plan.expected_status.value,
                expected_refund_amount=plan.expected_refund_amount,
            )
            return None
        return await self._get_one(PaymentModel.id == update_.payment_id)

    @_wrap_errors
    async def set_booking_sync_status(
        self,
        payment_id: str,
        status: BookingSyncStatus,
        synced_at: Optional[datetime] = None,
        *,
        expected_status: Optional[PaymentStatus] = None,
        expected_refund_amount: Optional[int] = None,
    ) -> bool:
        criteria = [PaymentModel.id == str(payment_id)]
        if expected_status is not None:
            criteria.append(PaymentModel.status == expected_status.value)
        if expected_refund_amount is not None:
            criteria.append(PaymentModel.refund_amount == expected_refund_amount)
        return await self._conditional_update(
            criteria,
            {"booking_sync_status": status.value, "booking_synced_at": synced_at},
        )

    @_wrap_errors
    async def list_by_user(
        self,
        user_id: str,
        skip: int = 0,
        limit: int = 10,
        status: Optional[PaymentStatus] = None,
    ) -> List[Payment]:
        """获取用户的支付列表"""
        query = select(PaymentModel).where(PaymentModel.user_id == str(user_id))

        if status:
            query = query.where(PaymentModel.status == status.value)

        query = query.order_by(PaymentModel.created_at.desc()).offset(skip).limit(limit)

        result = await self.session.execute(query)
        return [self._to_entity(p) for p in result.scalars().all()]

    @_wrap_errors
    async def count_by_user(self, user_id: str, status: Optional[PaymentStatus] = None) -> int:
        """统计用户的支付数量"""
        query = select(func.count(PaymentModel.id)).where(PaymentModel.user_id == str(user_id))

        if status:
            query = query.where(PaymentModel.status == status.value)

        result = await self.session.execute(query)
        return result.scalar_one()

    @_wrap_errors
    async def list_booking_sync_pending(self, limit: int = 100) -> List[Payment]:
        result = await self.session.execute(
            select(PaymentModel)
            .where(
                PaymentModel.booking_sync_status == BookingSyncStatus.PENDING.value,
                PaymentModel.booking_id.is_not(None),
            )
            .order_by(PaymentModel.updated_at.asc())
            .limit(limit)
        )
        return [self._to_entity(p) for p in result.scalars().all()]

    async def ping(self) -> bool:
        try:
            await self.session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.warning("payment_store_ping_failed", error=str(exc))
            return False
        return True
