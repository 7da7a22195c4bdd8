"""
Payment error taxonomy.

Use-cases report failures as a tagged `PaymentError` value instead of raising
across orchestration steps. Only the outer edge (HTTP routes, tasks) turns an
error into `PaymentException` for the global exception handlers.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from domain.common.exceptions import BusinessException
from shared.codes.payment_codes import PaymentCode


class PaymentErrorKind(str, Enum):
    INVALID_AMOUNT = "InvalidAmount"
    MISSING_FIELDS = "MissingFields"
    INVALID_SIGNATURE = "InvalidSignature"
    PAYMENT_NOT_FOUND = "PaymentNotFound"
    NOT_REFUNDABLE = "NotRefundable"
    ALREADY_REFUNDED = "AlreadyRefunded"
    MISSING_GATEWAY_REFERENCE = "MissingGatewayReference"
    INVALID_TRANSITION = "InvalidTransition"
    CONCURRENT_UPDATE = "ConcurrentUpdate"
    GATEWAY_ERROR = "GatewayError"
    PERSISTENCE_ERROR = "PersistenceError"
    CONFIGURATION_ERROR = "ConfigurationError"


ERROR_KIND_TO_CODE: dict[PaymentErrorKind, PaymentCode] = {
    PaymentErrorKind.INVALID_AMOUNT: PaymentCode.INVALID_AMOUNT,
    PaymentErrorKind.MISSING_FIELDS: PaymentCode.MISSING_FIELDS,
    PaymentErrorKind.INVALID_SIGNATURE: PaymentCode.INVALID_SIGNATURE,
    PaymentErrorKind.PAYMENT_NOT_FOUND: PaymentCode.PAYMENT_NOT_FOUND,
    PaymentErrorKind.NOT_REFUNDABLE: PaymentCode.NOT_REFUNDABLE,
    PaymentErrorKind.ALREADY_REFUNDED: PaymentCode.ALREADY_REFUNDED,
    PaymentErrorKind.MISSING_GATEWAY_REFERENCE: PaymentCode.MISSING_GATEWAY_REFERENCE,
    PaymentErrorKind.INVALID_TRANSITION: PaymentCode.INVALID_TRANSITION,
    PaymentErrorKind.CONCURRENT_UPDATE: PaymentCode.CONCURRENT_UPDATE,
    PaymentErrorKind.GATEWAY_ERROR: PaymentCode.PROVIDER_ERROR,
    PaymentErrorKind.PERSISTENCE_ERROR: PaymentCode.PERSISTENCE_ERROR,
    PaymentErrorKind.CONFIGURATION_ERROR: PaymentCode.CONFIGURATION_ERROR,
}


@dataclass(frozen=True)
class PaymentError:
    kind: PaymentErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    field: Optional[str] = None

    @property
    def code(self) -> int:
        return int(ERROR_KIND_TO_CODE[self.kind])


class PaymentException(BusinessException):
    """Raised only at the edge when a PaymentError must leave the use-case."""

    def __init__(self, error: PaymentError):
        self.error = error
        super().__init__(
            code=error.code,
            message=error.message,
            error_type=error.kind.value,
            details=error.details or None,
            field=error.field,
        )
