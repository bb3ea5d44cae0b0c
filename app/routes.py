import re
from datetime import datetime
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from app.auth import verify_token
from app.payment import PaymentNotFoundError, PaymentRequest, PaymentService

logger = structlog.get_logger(__name__)

router = APIRouter()

PAYMENT_ID_RE = re.compile(r"[+-]?[0-9]+")


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service


class CreatePaymentBody(BaseModel):
    amount: int = Field(gt=0)
    currency: str = Field(pattern="^[A-Za-z]{3}$")
    return_uri: str = Field(min_length=1)
    source_type: str = Field(min_length=1)


class CreatePaymentResponse(BaseModel):
    id: int
    authorized_uri: Optional[str] = None


class PaymentResponse(BaseModel):
    id: int
    status: str
    amount: int
    currency: str
    source_type: str
    created_at: datetime
    updated_at: datetime


@router.post("/payments", response_model=CreatePaymentResponse)
def create_payment_api(
    body: CreatePaymentBody,
    auth=Depends(verify_token),
    service: PaymentService = Depends(get_payment_service),
):
    request = PaymentRequest(
        amount=body.amount,
        currency=body.currency.upper(),
        return_uri=body.return_uri,
        source_type=body.source_type,
    )
    try:
        payment = service.create_payment_request(request)
    except Exception as exc:
        logger.exception("create_payment_failed", source_type=request.source_type)
        raise HTTPException(status_code=500, detail=str(exc))

    return CreatePaymentResponse(
        id=payment.id,
        authorized_uri=payment.gateway_charge.authorize_uri,
    )


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
def get_payment_api(
    payment_id: str,
    service: PaymentService = Depends(get_payment_service),
):
    if not PAYMENT_ID_RE.fullmatch(payment_id):
        raise HTTPException(status_code=400, detail="payment id must be a number")
    pid = int(payment_id)

    try:
        payment = service.find(pid)
    except PaymentNotFoundError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        logger.exception("get_payment_failed", payment_id=pid)
        raise HTTPException(status_code=500, detail=str(exc))

    return PaymentResponse(
        id=payment.id,
        status=payment.status.value,
        amount=payment.amount,
        currency=payment.currency,
        source_type=payment.gateway_charge.source_type,
        created_at=payment.created_at,
        updated_at=payment.updated_at,
    )
