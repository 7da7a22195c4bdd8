"""
Base payment client implementing shared concerns: http, logging, error mapping.

Concrete providers subclass and implement provider-specific logic. Order and
refund creation are never retried here: a timed-out POST may still have
created the order or refund on the provider side.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

from core.logging_config import get_logger
from infrastructure.external.payments.exceptions import PaymentProviderError, PaymentTransportError
from shared.codes.payment_codes import PROVIDER_STATUS_TO_INTERNAL


logger = get_logger(__name__)


class BasePaymentClient:
    provider: str = "base"

    def __init__(
        self,
        *,
        base_url: str,
        timeouts: Optional[dict[str, float]] = None,
        auth: Optional[httpx.Auth | tuple[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeouts_cfg = timeouts or {"connect": 5.0, "read": 30.0, "write": 30.0, "total": 30.0}
        self._auth = auth
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def api_base_url(self) -> str:
        return self._base_url

    @property
    def timeouts(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self._timeouts_cfg["connect"],
            read=self._timeouts_cfg["read"],
            write=self._timeouts_cfg["write"],
            timeout=self._timeouts_cfg["total"],
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self.timeouts,
                auth=self._auth,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close underlying HTTP client if created."""
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = await self._get_client().post(path, json=payload)
        except httpx.TimeoutException as exc:
            raise PaymentTransportError(f"{self.provider} request timed out", provider=self.provider, provider_code="TIMEOUT") from exc
        except httpx.TransportError as exc:
            raise PaymentTransportError(f"{self.provider} unreachable: {exc}", provider=self.provider) from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.is_error:
            raise self._error_from_response(resp.status_code, body)
        return body

    def _error_from_response(self, status_code: int, body: dict[str, Any]) -> PaymentProviderError:
        return PaymentProviderError(
            f"{self.provider} returned HTTP {status_code}",
            provider=self.provider,
            status_code=status_code,
        )

    # Helpers
    def _map_status(self, provider_status: Optional[str]) -> Optional[str]:
        if provider_status is None:
            return None
        mapping = PROVIDER_STATUS_TO_INTERNAL.get(self.provider, {})
        return mapping.get(provider_status, provider_status)

    def _log(self, event: str, **kwargs) -> None:
        logger.info(
            event,
            provider=self.provider,
            **kwargs,
        )
