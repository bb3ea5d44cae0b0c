"""
Payment orchestration: creates gateway charges, records payments and
reconciles pending payments against the gateway when they are read.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)


class PaymentError(Exception):
    """Base class for payment failures."""


class PaymentNotFoundError(PaymentError):
    def __init__(self, payment_id: int):
        self.payment_id = payment_id
        super().__init__("payment not found")


class UnknownStatusError(PaymentError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"unknown payment status: {value!r}")


class GatewayError(PaymentError):
    """Raised by gateway adapters when the provider call fails."""


class Status(str, Enum):
    PENDING = "pending"
    SUCCESSFUL = "successful"
    FAILED = "failed"
    EXPIRED = "expired"
    REVERSED = "reversed"

    @classmethod
    def parse(cls, value) -> "Status":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownStatusError(value) from None

    @property
    def is_terminal(self) -> bool:
        return self is not Status.PENDING


@dataclass
class PaymentRequest:
    amount: int
    currency: str
    return_uri: str
    source_type: str


@dataclass
class ChargeRecord:
    """Gateway-side charge, mirrored onto the payment that owns it."""

    id: str
    status: Status
    amount: int
    currency: str
    authorize_uri: Optional[str] = None
    source_type: str = ""
    return_uri: str = ""

    def __post_init__(self):
        self.status = Status.parse(self.status)


@dataclass
class Payment:
    status: Status
    amount: int
    currency: str
    gateway_charge: ChargeRecord
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.status = Status.parse(self.status)


class PaymentGateway(Protocol):
    def charge(self, request: PaymentRequest) -> ChargeRecord: ...

    def get_charge(self, charge_id: str) -> ChargeRecord: ...


class PaymentRepository(Protocol):
    def create(self, payment: Payment) -> Payment: ...

    def find(self, payment_id: int) -> Payment: ...

    def update_status(self, payment_id: int, status: Status) -> None: ...


class PaymentService:
    """
    Sole caller of the gateway and the store.

    Collaborator errors are never caught here. A charge that succeeds
    followed by a failed insert leaves the gateway charge without a local
    record; no compensation is attempted.
    """

    def __init__(self, gateway: PaymentGateway, repository: PaymentRepository):
        self.gateway = gateway
        self.repository = repository

    def create_payment_request(self, request: PaymentRequest) -> Payment:
        charge = self.gateway.charge(request)

        # amount and currency are taken from the gateway, not the request
        payment = Payment(
            status=charge.status,
            amount=charge.amount,
            currency=charge.currency,
            gateway_charge=charge,
        )
        payment = self.repository.create(payment)

        logger.info(
            "payment_created",
            payment_id=payment.id,
            charge_id=charge.id,
            status=payment.status.value,
        )
        return payment

    def find(self, payment_id: int) -> Payment:
        """
        Return the payment, refreshing it from the gateway while it is pending.

        Terminal payments are returned as stored without contacting the
        gateway. A pending payment is always written back and re-read, even
        when the gateway still reports it as pending.
        """
        payment = self.repository.find(payment_id)
        if payment.status.is_terminal:
            logger.debug(
                "payment_reconciliation_skipped",
                payment_id=payment_id,
                status=payment.status.value,
            )
            return payment

        charge = self.gateway.get_charge(payment.gateway_charge.id)
        self.repository.update_status(payment_id, charge.status)

        payment = self.repository.find(payment_id)
        logger.info(
            "payment_reconciled",
            payment_id=payment_id,
            charge_id=charge.id,
            status=payment.status.value,
        )
        return payment
