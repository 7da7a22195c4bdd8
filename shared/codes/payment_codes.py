"""
Payment specific codes and provider status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000

    # Request/precondition errors (61xxx)
    INVALID_AMOUNT = 61001
    MISSING_FIELDS = 61002
    INVALID_SIGNATURE = 61003
    PAYMENT_NOT_FOUND = 61004
    NOT_REFUNDABLE = 61005
    ALREADY_REFUNDED = 61006
    MISSING_GATEWAY_REFERENCE = 61007
    INVALID_TRANSITION = 61008
    CONCURRENT_UPDATE = 61009

    # Local infrastructure errors (62xxx)
    PERSISTENCE_ERROR = 62001
    CONFIGURATION_ERROR = 62002


# Provider→internal status mapping (orders, payments and refunds share one table)
PROVIDER_STATUS_TO_INTERNAL = {
    "razorpay": {
        # Order.status
        "created": "created",
        "attempted": "pending",
        "paid": "paid",
        # Payment.status
        "authorized": "pending",
        "captured": "paid",
        "failed": "failed",
        "refunded": "refunded",
        # Refund.status
        "pending": "pending",
        "processed": "processed",
    },
}
