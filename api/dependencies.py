"""
API依赖项 - 认证与服务装配（composition root）
"""
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from application.dtos.auth import AuthPrincipal
from application.ports.notifier import NotificationDispatcher
from application.ports.payment_gateway import PaymentGateway
from application.services.payment_service import PaymentService
from application.services.token_service import TokenService
from core.config import settings
from core.settings import payment_settings
from infrastructure.database import AsyncSessionLocal
from infrastructure.external.booking import SQLAlchemyBookingSync
from infrastructure.external.payments import build_payment_gateway
from infrastructure.external.sms import QueuedNotificationDispatcher, SmsNotificationDispatcher, build_sms_client
from infrastructure.tasks import TaskDispatcher
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork

# HTTP Bearer for direct API calls
http_bearer = HTTPBearer(
    scheme_name="Bearer",
    description="JWT Bearer token issued by the auth service",
    auto_error=False,
)


async def get_token(
    bearer_token: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer)
) -> str:
    """从 Authorization: Bearer 头中提取token"""
    if bearer_token and bearer_token.credentials:
        return bearer_token.credentials

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token_service() -> TokenService:
    return TokenService(settings.SECRET_KEY, settings.ALGORITHM)


async def get_current_principal(
    token: str = Depends(get_token),
    tokens: TokenService = Depends(get_token_service),
) -> AuthPrincipal:
    """获取当前调用方身份"""
    return tokens.decode_access_token(token)


def get_payment_gateway(request: Request) -> PaymentGateway:
    # One adapter per app so the HTTP connection pool is reused; closed in lifespan
    gateway = getattr(request.app.state, "payment_gateway", None)
    if gateway is None:
        gateway = build_payment_gateway(payment_settings)
        request.app.state.payment_gateway = gateway
    return gateway


def get_notifier() -> NotificationDispatcher:
    if not payment_settings.sms.use_queue:
        return SmsNotificationDispatcher(build_sms_client(payment_settings))
    return QueuedNotificationDispatcher(
        TaskDispatcher(),
        sender_id=payment_settings.sms.sender_id,
        configured=bool(payment_settings.sms.api_key),
    )


def get_payment_service(
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> PaymentService:
    return PaymentService(
        uow_factory=SQLAlchemyUnitOfWork,
        gateway=gateway,
        booking_sync=SQLAlchemyBookingSync(AsyncSessionLocal),
        notifier=notifier,
        currency=payment_settings.currency,
        auth_configured=settings.auth_configured,
        database_configured=settings.database_configured,
    )
