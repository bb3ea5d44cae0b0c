import stripe
import structlog

from app import config
from app.payment import ChargeRecord, GatewayError, Status, UnknownStatusError

logger = structlog.get_logger(__name__)

stripe.api_key = config.STRIPE_SECRET_KEY

# PaymentIntent status -> payment status; cases needing more context are
# handled in intent_status()
STATUS_MAP = {
    "requires_payment_method": Status.PENDING,
    "requires_confirmation": Status.PENDING,
    "requires_action": Status.PENDING,
    "processing": Status.PENDING,
    "requires_capture": Status.PENDING,
    "succeeded": Status.SUCCESSFUL,
    "canceled": Status.FAILED,
}

EXPIRED_CANCELLATION_REASONS = {"abandoned", "automatic"}


def intent_status(intent) -> Status:
    raw = getattr(intent, "status", None)
    if raw not in STATUS_MAP:
        raise UnknownStatusError(raw)

    if raw == "requires_payment_method" and getattr(intent, "last_payment_error", None):
        return Status.FAILED
    if raw == "canceled" and getattr(intent, "cancellation_reason", None) in EXPIRED_CANCELLATION_REASONS:
        return Status.EXPIRED
    if raw == "succeeded":
        latest_charge = getattr(intent, "latest_charge", None)
        # only an expanded charge carries the refunded flag
        if latest_charge is not None and not isinstance(latest_charge, str):
            if getattr(latest_charge, "refunded", False):
                return Status.REVERSED
    return STATUS_MAP[raw]


def to_charge_record(intent, return_uri=None) -> ChargeRecord:
    redirect = None
    next_action = getattr(intent, "next_action", None)
    if next_action is not None:
        redirect = getattr(next_action, "redirect_to_url", None)

    method_types = getattr(intent, "payment_method_types", None) or [""]
    if return_uri is None and redirect is not None:
        return_uri = getattr(redirect, "return_url", None)

    return ChargeRecord(
        id=intent.id,
        status=intent_status(intent),
        amount=intent.amount,
        currency=intent.currency.upper(),
        authorize_uri=getattr(redirect, "url", None) if redirect is not None else None,
        source_type=method_types[0],
        return_uri=return_uri or "",
    )


class StripeGateway:
    """Payment gateway backed by Stripe PaymentIntents."""

    def charge(self, request) -> ChargeRecord:
        try:
            intent = stripe.PaymentIntent.create(
                amount=request.amount,
                currency=request.currency.lower(),
                payment_method_types=[request.source_type],
                payment_method_data={"type": request.source_type},
                confirm=True,
                return_url=request.return_uri,
            )
        except stripe.StripeError as exc:
            logger.warning("gateway_charge_failed", source_type=request.source_type, error=str(exc))
            raise GatewayError(str(exc)) from exc

        charge = to_charge_record(intent, return_uri=request.return_uri)
        logger.info("gateway_charge_created", charge_id=charge.id, status=charge.status.value)
        return charge

    def get_charge(self, charge_id: str) -> ChargeRecord:
        try:
            intent = stripe.PaymentIntent.retrieve(charge_id, expand=["latest_charge"])
        except stripe.StripeError as exc:
            logger.warning("gateway_charge_lookup_failed", charge_id=charge_id, error=str(exc))
            raise GatewayError(str(exc)) from exc

        return to_charge_record(intent)
