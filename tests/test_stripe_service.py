import pytest
import stripe

from app.payment import GatewayError, PaymentRequest, Status, UnknownStatusError
from app.stripe_service import StripeGateway, intent_status, to_charge_record


def make_intent(**overrides):
    values = {
        "id": "pi_123",
        "object": "payment_intent",
        "status": "requires_action",
        "amount": 2000,
        "currency": "thb",
        "payment_method_types": ["promptpay"],
        "next_action": {
            "type": "redirect_to_url",
            "redirect_to_url": {"url": "http://auth", "return_url": "http://return"},
        },
        "last_payment_error": None,
        "cancellation_reason": None,
        "latest_charge": None,
    }
    values.update(overrides)
    return stripe.PaymentIntent.construct_from(values, "sk_test_dummy")


@pytest.fixture
def request_():
    return PaymentRequest(
        amount=2000, currency="THB", return_uri="http://return", source_type="promptpay"
    )


@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({"status": "requires_action"}, Status.PENDING),
        ({"status": "processing"}, Status.PENDING),
        ({"status": "requires_payment_method"}, Status.PENDING),
        (
            {"status": "requires_payment_method", "last_payment_error": {"code": "card_declined"}},
            Status.FAILED,
        ),
        ({"status": "succeeded"}, Status.SUCCESSFUL),
        ({"status": "succeeded", "latest_charge": "ch_1"}, Status.SUCCESSFUL),
        (
            {"status": "succeeded", "latest_charge": {"id": "ch_1", "object": "charge", "refunded": True}},
            Status.REVERSED,
        ),
        ({"status": "canceled", "cancellation_reason": "abandoned"}, Status.EXPIRED),
        ({"status": "canceled", "cancellation_reason": "fraudulent"}, Status.FAILED),
    ],
)
def test_intent_status(overrides, expected):
    assert intent_status(make_intent(**overrides)) is expected


def test_intent_status_unknown():
    with pytest.raises(UnknownStatusError):
        intent_status(make_intent(status="on_hold"))


def test_to_charge_record():
    charge = to_charge_record(make_intent())

    assert charge.id == "pi_123"
    assert charge.status == Status.PENDING
    assert charge.amount == 2000
    assert charge.currency == "THB"
    assert charge.authorize_uri == "http://auth"
    assert charge.source_type == "promptpay"
    assert charge.return_uri == "http://return"


def test_to_charge_record_without_redirect():
    charge = to_charge_record(make_intent(status="succeeded", next_action=None))

    assert charge.authorize_uri is None
    assert charge.return_uri == ""


def test_charge(mocker, request_):
    create = mocker.patch("stripe.PaymentIntent.create", return_value=make_intent())

    charge = StripeGateway().charge(request_)

    create.assert_called_once_with(
        amount=2000,
        currency="thb",
        payment_method_types=["promptpay"],
        payment_method_data={"type": "promptpay"},
        confirm=True,
        return_url="http://return",
    )
    assert charge.id == "pi_123"
    assert charge.status == Status.PENDING
    assert charge.authorize_uri == "http://auth"


def test_charge_wraps_stripe_errors(mocker, request_):
    error = stripe.InvalidRequestError("No such payment method type", "payment_method_types")
    mocker.patch("stripe.PaymentIntent.create", side_effect=error)

    with pytest.raises(GatewayError) as exc_info:
        StripeGateway().charge(request_)

    assert exc_info.value.__cause__ is error


def test_get_charge(mocker):
    retrieve = mocker.patch(
        "stripe.PaymentIntent.retrieve",
        return_value=make_intent(status="succeeded", next_action=None),
    )

    charge = StripeGateway().get_charge("pi_123")

    retrieve.assert_called_once_with("pi_123", expand=["latest_charge"])
    assert charge.status == Status.SUCCESSFUL


def test_get_charge_wraps_stripe_errors(mocker):
    mocker.patch(
        "stripe.PaymentIntent.retrieve",
        side_effect=stripe.APIConnectionError("connection reset"),
    )

    with pytest.raises(GatewayError, match="connection reset"):
        StripeGateway().get_charge("pi_123")
