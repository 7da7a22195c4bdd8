"""Payment domain exports."""
from .entity import Payment, PaymentStatus, RefundStatus, BookingSyncStatus, RefundPlan, to_minor_units
from .errors import PaymentError, PaymentErrorKind, PaymentException
from .repository import DuplicateKeyError, PaymentRepository, RepositoryError, RefundUpdate

__all__ = [
    "Payment",
    "PaymentStatus",
    "RefundStatus",
    "BookingSyncStatus",
    "RefundPlan",
    "to_minor_units",
    "PaymentError",
    "PaymentErrorKind",
    "PaymentException",
    "PaymentRepository",
    "RepositoryError",
    "DuplicateKeyError",
    "RefundUpdate",
]
