"""
Tagged result returned by payment use-cases.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from domain.payment.errors import PaymentError, PaymentErrorKind, PaymentException


T = TypeVar("T")


@dataclass(frozen=True)
class PaymentResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[PaymentError] = None
    # True when the call observed an already-applied transition (retry/replay)
    replayed: bool = False

    @classmethod
    def ok(cls, value: T, *, replayed: bool = False) -> "PaymentResult[T]":
        return cls(value=value, replayed=replayed)

    @classmethod
    def fail(
        cls,
        kind: PaymentErrorKind,
        message: str,
        *,
        field: Optional[str] = None,
        **details: Any,
    ) -> "PaymentResult[T]":
        return cls(error=PaymentError(kind, message, details, field))

    @classmethod
    def from_error(cls, error: PaymentError) -> "PaymentResult[T]":
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[PaymentErrorKind]:
        return self.error.kind if self.error else None

    def unwrap(self) -> T:
        """Return the value or raise PaymentException for the HTTP layer."""
        if self.error is not None:
            raise PaymentException(self.error)
        return self.value  # type: ignore[return-value]
