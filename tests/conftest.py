import os

# must be set before app.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_payments.db")
os.environ.setdefault("PAYMENT_STORE", "memory")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("LOG_JSON", "false")

import pytest

from app.payment import ChargeRecord, PaymentRequest, Status


@pytest.fixture
def payment_request():
    return PaymentRequest(
        amount=2000,
        currency="THB",
        return_uri="http://return",
        source_type="internet_banking_scb",
    )


@pytest.fixture
def pending_charge():
    return ChargeRecord(
        id="charge-1",
        status=Status.PENDING,
        amount=2000,
        currency="THB",
        authorize_uri="http://auth",
        source_type="internet_banking_scb",
        return_uri="http://return",
    )
