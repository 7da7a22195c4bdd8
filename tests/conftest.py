"""Pytest bootstrap configuration.

Ensure mandatory environment variables are set before test collection
and module imports that depend on application settings.
"""
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RAZORPAY__KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY__KEY_SECRET", "test_key_secret")
os.environ.setdefault("RAZORPAY__WEBHOOK_SECRET", "test_webhook_secret")

import pytest  # noqa: E402

from application.dtos.auth import AuthPrincipal  # noqa: E402
from application.services.payment_service import PaymentService  # noqa: E402
from tests.fakes import (  # noqa: E402
    InMemoryPaymentRepository,
    InMemoryUnitOfWork,
    RecordingBookingSync,
    RecordingNotifier,
    StubGateway,
)


@pytest.fixture
def repo():
    return InMemoryPaymentRepository()


@pytest.fixture
def gateway():
    return StubGateway()


@pytest.fixture
def booking():
    return RecordingBookingSync()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def principal():
    return AuthPrincipal(user_id="user-1", phone="+919876543210")


@pytest.fixture
def service(repo, gateway, booking, notifier):
    return PaymentService(
        uow_factory=lambda readonly=False: InMemoryUnitOfWork(repo, readonly=readonly),
        gateway=gateway,
        booking_sync=booking,
        notifier=notifier,
    )
