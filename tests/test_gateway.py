import asyncio
import hashlib
import hmac
from types import SimpleNamespace

import pytest
import requests
from razorpay.errors import BadRequestError, GatewayError, ServerError

from guide_server.models.payment import PaymentStatus
from guide_server.services.errors import BadRequest, GatewayUnavailable
from guide_server.services.gateway import RazorpayGateway, compute_signature, verify_signature


def test_signature_matches_hmac_sha256_of_order_and_payment():
    expected = hmac.new(b"s3cret", b"order_A|pay_B", hashlib.sha256).hexdigest()

    assert compute_signature("order_A", "pay_B", "s3cret") == expected
    assert verify_signature("order_A", "pay_B", expected, "s3cret")


@pytest.mark.parametrize(
    "order_id,payment_id,secret",
    [
        ("order_A", "pay_C", "s3cret"),  # other payment
        ("order_X", "pay_B", "s3cret"),  # other order
        ("order_A", "pay_B", "wrong"),  # other key
    ],
)
def test_signature_rejects_anything_else(order_id, payment_id, secret):
    good = compute_signature("order_A", "pay_B", "s3cret")
    assert not verify_signature(order_id, payment_id, good, secret)


def test_signature_is_compared_exactly():
    good = compute_signature("order_A", "pay_B", "s3cret")

    assert not verify_signature("order_A", "pay_B", good.upper(), "s3cret")
    assert not verify_signature("order_A", "pay_B", good + " ", "s3cret")
    assert not verify_signature("order_A", "pay_B", "", "s3cret")


def make_gateway(create=None, fetch=None):
    client = SimpleNamespace(
        order=SimpleNamespace(create=create),
        payment=SimpleNamespace(fetch=fetch),
    )
    return RazorpayGateway("rzp_test_key", "s3cret", client=client)


def test_create_order_passes_fixed_terms():
    seen = {}

    def create(data):
        seen.update(data)
        return {"id": "order_123", "amount": data["amount"], "currency": data["currency"]}

    gateway = make_gateway(create=create)
    order_id = asyncio.run(gateway.create_order(19900, "INR", "order_1", {"product": "Guide"}))

    assert order_id == "order_123"
    assert seen == {"amount": 19900, "currency": "INR", "receipt": "order_1", "notes": {"product": "Guide"}}


def test_fetch_payment_builds_result():
    def fetch(payment_id):
        return {
            "id": payment_id,
            "order_id": "order_1",
            "status": "captured",
            "amount": 19900,
            "currency": "INR",
            "method": "upi",
        }

    result = asyncio.run(make_gateway(fetch=fetch).fetch_payment("pay_1"))

    assert result.payment_id == "pay_1"
    assert result.status == PaymentStatus.CAPTURED
    assert result.amount == 19900
    assert result.method == "upi"


def test_unknown_status_is_other():
    result = asyncio.run(
        make_gateway(fetch=lambda pid: {"id": pid, "status": "disputed"}).fetch_payment("pay_1")
    )
    assert result.status == PaymentStatus.OTHER
    assert result.raw_status == "disputed"


@pytest.mark.parametrize(
    "error",
    [
        ServerError("upstream 500"),
        GatewayError("bad gateway"),
        requests.ConnectionError("connection refused"),
        requests.Timeout("timed out"),
    ],
)
def test_transport_failures_become_gateway_unavailable(error):
    def fetch(payment_id):
        raise error

    with pytest.raises(GatewayUnavailable):
        asyncio.run(make_gateway(fetch=fetch).fetch_payment("pay_1"))


def test_rejected_request_is_bad_request():
    def create(data):
        raise BadRequestError("The amount must be atleast INR 1.00")

    with pytest.raises(BadRequest) as exc_info:
        asyncio.run(make_gateway(create=create).create_order(0, "INR", "r"))
    # gateway wording stays in the log, not in the client message
    assert exc_info.value.message == "Payment gateway rejected the request"
    assert "INR 1.00" not in exc_info.value.message
