from sqlalchemy import Column, DateTime, Integer, String
from app.database import Base


class PaymentRecord(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    status = Column(String(16), nullable=False)    # pending | successful | failed | expired | reversed
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)

    # mirrored gateway charge
    charge_id = Column(String, nullable=False, index=True)
    charge_status = Column(String(16), nullable=False)
    charge_amount = Column(Integer, nullable=False)
    charge_currency = Column(String(3), nullable=False)
    authorize_uri = Column(String, nullable=True)
    source_type = Column(String, nullable=False, default="")
    return_uri = Column(String, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
