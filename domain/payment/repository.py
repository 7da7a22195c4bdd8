"""
支付仓储接口 - 定义支付数据访问的抽象接口

状态迁移类方法都是条件更新：只有当存储中的当前状态满足前置条件时才写入，
未命中时返回 None，由调用方重新读取并判断（幂等 / 并发冲突）。
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, List

from .entity import Payment, PaymentStatus, BookingSyncStatus, RefundPlan


class RepositoryError(Exception):
    """存储层失败（连接、约束、提交），由实现包装底层驱动异常"""


class DuplicateKeyError(RepositoryError):
    """唯一约束冲突（gateway_order_id 或 用户 + 幂等键）"""


@dataclass(frozen=True)
class RefundUpdate:
    payment_id: str
    plan: RefundPlan
    refund_id: str
    reason: str
    refunded_at: datetime


class PaymentRepository(ABC):
    """支付仓储抽象接口 - 只定义能做什么，不管怎么做"""

    @abstractmethod
    async def create(self, payment: Payment) -> Payment:
        """创建支付记录"""
        pass

    @abstractmethod
    async def get_by_id(self, payment_id: str) -> Optional[Payment]:
        """根据ID获取支付"""
        pass

    @abstractmethod
    async def get_by_gateway_order_id(self, gateway_order_id: str) -> Optional[Payment]:
        """根据网关订单ID获取支付"""
        pass

    @abstractmethod
    async def get_by_idempotency_key(self, user_id: str, idempotency_key: str) -> Optional[Payment]:
        """根据用户 + 幂等键获取支付"""
        pass

    @abstractmethod
    async def mark_paid(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        gateway_signature: Optional[str],
        paid_at: datetime,
    ) -> Optional[Payment]:
        """created/pending → paid，同时写入网关支付ID与签名"""
        pass

    @abstractmethod
    async def mark_failed(self, gateway_order_id: str, reason: Optional[str]) -> Optional[Payment]:
        """created/pending → failed"""
        pass

    @abstractmethod
    async def apply_refund(self, update: RefundUpdate) -> Optional[Payment]:
        """按 plan 中记录的期望状态与期望累计退款金额做乐观并发更新"""
        pass

    @abstractmethod
    async def set_booking_sync_status(
        self,
        payment_id: str,
        status: BookingSyncStatus,
        synced_at: Optional[datetime] = None,
        *,
        expected_status: Optional[PaymentStatus] = None,
        expected_refund_amount: Optional[int] = None,
    ) -> bool:
        """更新预约同步状态

        给出 expected_* 时为条件更新：只有支付仍处于已推送给预约的那个状态才写入，
        返回是否命中。
        """
        pass

    @abstractmethod
    async def list_by_user(
        self,
        user_id: str,
        skip: int = 0,
        limit: int = 10,
        status: Optional[PaymentStatus] = None,
    ) -> List[Payment]:
        """获取用户的支付列表（按创建时间倒序）"""
        pass

    @abstractmethod
    async def count_by_user(self, user_id: str, status: Optional[PaymentStatus] = None) -> int:
        """统计用户的支付数量"""
        pass

    @abstractmethod
    async def list_booking_sync_pending(self, limit: int = 100) -> List[Payment]:
        """获取待补偿同步预约的支付"""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """存储连通性检查"""
        pass
