"""
Gateway signature checks.

Pure functions: no I/O and no stored state. Comparisons are constant-time.
"""
from __future__ import annotations

import hashlib
import hmac


def compute_payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    """hex(HMAC-SHA256(secret, "<order_id>|<payment_id>"))"""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_payment_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Check the checkout signature the client received from the gateway."""
    if not (order_id and payment_id and signature and secret):
        return False
    expected = compute_payment_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


def compute_webhook_signature(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_webhook_signature(body: bytes, signature: str, secret: str) -> bool:
    """Webhooks are signed over the raw request body with the webhook secret."""
    if not (signature and secret):
        return False
    expected = compute_webhook_signature(body, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
