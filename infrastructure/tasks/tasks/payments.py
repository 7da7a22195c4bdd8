"""Payment maintenance Celery tasks"""
from __future__ import annotations

import asyncio

from celery import shared_task
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from ..utils.base_task import BaseTask
from ..utils.dispatcher import TaskDispatcher
from application.services.payment_service import PaymentService
from core.config import settings
from core.logging_config import get_logger
from core.settings import payment_settings
from infrastructure.database import _build_async_url
from infrastructure.external.booking import SQLAlchemyBookingSync
from infrastructure.external.payments import build_payment_gateway
from infrastructure.external.sms import QueuedNotificationDispatcher
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork

logger = get_logger(__name__)


async def _reconcile(limit: int) -> dict:
    # Each asyncio.run gets its own loop; pooled connections must not outlive it
    engine = create_async_engine(_build_async_url(settings.database.url), poolclass=NullPool)
    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)
    gateway = build_payment_gateway()
    service = PaymentService(
        lambda **kw: SQLAlchemyUnitOfWork(session_factory, **kw),
        gateway,
        SQLAlchemyBookingSync(session_factory),
        QueuedNotificationDispatcher(
            TaskDispatcher(),
            sender_id=payment_settings.sms.sender_id,
            configured=bool(payment_settings.sms.api_key),
        ),
        currency=payment_settings.currency,
    )
    try:
        result = await service.reconcile_booking_sync(limit)
    finally:
        await gateway.aclose()
        await engine.dispose()
    return result.unwrap().model_dump()


@shared_task(name="payments.reconcile_booking_sync", bind=True, base=BaseTask, max_retries=0)
def reconcile_booking_sync(self, limit: int = 100) -> dict:
    """Replay booking follow-ups left pending by verify/refund/webhook."""
    report = asyncio.run(_reconcile(limit))
    logger.info("booking_sync_sweep_done", **report)
    return report
