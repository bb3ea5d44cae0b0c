"""
Payment stores: an in-process table and a SQLAlchemy-backed table.

Both assign ids and timestamps on create, hand out independent copies on
find, and keep the mirrored charge status in step with the payment status.
"""
import copy
import threading
from datetime import datetime, timezone

import structlog

from app import config
from app.database import Base, make_engine, make_session_factory
from app.models import PaymentRecord
from app.payment import ChargeRecord, Payment, PaymentNotFoundError, Status

logger = structlog.get_logger(__name__)


def _now():
    return datetime.now(timezone.utc)


class InMemoryPaymentRepository:
    """
    Lock-guarded table keyed by payment id.

    The table lock covers id assignment and membership only; reads and
    status updates take the lock of the single record they touch.
    """

    def __init__(self):
        self._current_id = 0
        self._records = {}
        self._lock = threading.Lock()

    def create(self, payment: Payment) -> Payment:
        with self._lock:
            self._current_id += 1
            payment.id = self._current_id
            now = _now()
            payment.created_at = now
            payment.updated_at = now
            self._records[payment.id] = (threading.Lock(), copy.deepcopy(payment))
        return payment

    def _entry(self, payment_id: int):
        with self._lock:
            entry = self._records.get(payment_id)
        if entry is None:
            raise PaymentNotFoundError(payment_id)
        return entry

    def find(self, payment_id: int) -> Payment:
        record_lock, payment = self._entry(payment_id)
        with record_lock:
            return copy.deepcopy(payment)

    def update_status(self, payment_id: int, status: Status) -> None:
        status = Status.parse(status)
        record_lock, payment = self._entry(payment_id)
        with record_lock:
            payment.status = status
            payment.gateway_charge.status = status
            payment.updated_at = _now()


class SqlPaymentRepository:
    """Payment store over a SQLAlchemy session factory, one transaction per call."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def create(self, payment: Payment) -> Payment:
        charge = payment.gateway_charge
        now = _now()
        record = PaymentRecord(
            status=payment.status.value,
            amount=payment.amount,
            currency=payment.currency,
            charge_id=charge.id,
            charge_status=charge.status.value,
            charge_amount=charge.amount,
            charge_currency=charge.currency,
            authorize_uri=charge.authorize_uri,
            source_type=charge.source_type,
            return_uri=charge.return_uri,
            created_at=now,
            updated_at=now,
        )
        with self.session_factory() as db:
            db.add(record)
            db.commit()
            payment.id = record.id

        payment.created_at = now
        payment.updated_at = now
        return payment

    def find(self, payment_id: int) -> Payment:
        with self.session_factory() as db:
            record = db.get(PaymentRecord, payment_id)
            if record is None:
                raise PaymentNotFoundError(payment_id)
            return _to_payment(record)

    def update_status(self, payment_id: int, status: Status) -> None:
        status = Status.parse(status)
        with self.session_factory() as db:
            record = db.get(PaymentRecord, payment_id)
            if record is None:
                raise PaymentNotFoundError(payment_id)
            record.status = status.value
            record.charge_status = status.value
            record.updated_at = _now()
            db.commit()


def _as_utc(value):
    # sqlite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_payment(record: PaymentRecord) -> Payment:
    charge = ChargeRecord(
        id=record.charge_id,
        status=record.charge_status,
        amount=record.charge_amount,
        currency=record.charge_currency,
        authorize_uri=record.authorize_uri,
        source_type=record.source_type,
        return_uri=record.return_uri,
    )
    return Payment(
        id=record.id,
        status=record.status,
        amount=record.amount,
        currency=record.currency,
        gateway_charge=charge,
        created_at=_as_utc(record.created_at),
        updated_at=_as_utc(record.updated_at),
    )


def build_repository(store=None, engine=None):
    """Build the store selected by PAYMENT_STORE ("sql" or "memory")."""
    store = (store or config.PAYMENT_STORE).lower()
    if store == "memory":
        logger.info("payment_store_selected", store=store)
        return InMemoryPaymentRepository()
    if store != "sql":
        raise ValueError(f"Unsupported PAYMENT_STORE: {store}")

    engine = engine or make_engine()
    Base.metadata.create_all(bind=engine)
    logger.info("payment_store_selected", store=store, dialect=engine.dialect.name)
    return SqlPaymentRepository(make_session_factory(engine))
