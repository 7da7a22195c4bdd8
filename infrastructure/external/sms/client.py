"""
Transactional SMS over the provider's HTTP API.

POST <api_url> with header `apikey: <key>` and JSON
{"sender": <sender_id>, "to": "91<10 digits>", "text": <body>, "type": "TXN"}.
Transport failures are retried with exponential backoff (tenacity); an HTTP
error response is not, since the provider may already have queued the message.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.logging_config import get_logger


logger = get_logger(__name__)


class SmsDeliveryError(Exception):
    def __init__(self, message: str, *, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


def normalize_phone(phone: str) -> str:
    """Return the number as 91<10 digits>; a 91 prefix is only stripped from longer numbers."""
    digits = phone.strip().replace(" ", "").lstrip("+")
    if len(digits) > 10 and digits.startswith("91"):
        digits = digits[2:]
    return f"91{digits}"


class SmsClient:
    def __init__(
        self,
        *,
        api_url: str,
        api_key: Optional[str],
        sender_id: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_backoff: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.sender_id = sender_id
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def send(self, phone: str, text: str) -> dict[str, Any]:
        if not self.api_key:
            raise SmsDeliveryError("SMS API key not configured")
        payload = {
            "sender": self.sender_id,
            "to": normalize_phone(phone),
            "text": text,
            "type": "TXN",
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(multiplier=self.retry_backoff, max=10),
                retry=retry_if_exception_type((httpx.TimeoutException, httpx.TransportError)),
                reraise=True,
            ):
                with attempt:
                    resp = await client.post(self.api_url, json=payload, headers={"apikey": self.api_key})

        if resp.is_error:
            logger.warning("sms_send_rejected", status_code=resp.status_code, to=payload["to"][-4:])
            raise SmsDeliveryError(f"SMS provider returned HTTP {resp.status_code}", status_code=resp.status_code)
        logger.info("sms_sent", to=payload["to"][-4:], sender=self.sender_id)
        try:
            return resp.json()
        except ValueError:
            return {}
