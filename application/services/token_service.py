"""
令牌服务 - 校验认证服务签发的访问令牌（HS256 JWT）

本服务不签发令牌。载荷中 `userId`（或 `sub`）为用户ID，`phone` 可选。
"""
from typing import Optional

import jwt

from application.dtos.auth import AuthPrincipal
from core.exceptions import TokenExpiredException, UnauthorizedException
from core.logging_config import get_logger


logger = get_logger(__name__)


class TokenService:
    def __init__(self, secret_key: Optional[str], algorithm: str = "HS256"):
        self._secret_key = secret_key
        self._algorithm = algorithm

    @property
    def configured(self) -> bool:
        return bool(self._secret_key)

    def decode_access_token(self, token: str) -> AuthPrincipal:
        """Verify the signature/expiry and return the caller identity.

        - Expired token: TokenExpiredException
        - Bad signature, malformed token or missing user id: UnauthorizedException
        """
        if not self._secret_key:
            logger.error("auth_secret_not_configured")
            raise UnauthorizedException("Authentication not configured")
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            raise TokenExpiredException()
        except jwt.InvalidTokenError as e:
            logger.warning("invalid_access_token", error=str(e))
            raise UnauthorizedException("Invalid or expired token")

        user_id = payload.get("userId") or payload.get("sub")
        if not user_id:
            raise UnauthorizedException("Invalid or expired token")
        phone = payload.get("phone")
        return AuthPrincipal(user_id=str(user_id), phone=str(phone) if phone else None)
