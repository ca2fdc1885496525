import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from guide_server.config import Settings
from guide_server.main import create_app
from guide_server.models.payment import PaymentResult
from guide_server.services.errors import BadRequest, GatewayUnavailable
from guide_server.services.gateway import compute_signature, verify_signature

SECRET = "test_secret"
PDF_BYTES = b"%PDF-1.4\n" + b"guide" * 40000 + b"\n%%EOF\n"


def sign(order_id, payment_id, secret=SECRET):
    return compute_signature(order_id, payment_id, secret)


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeGateway:
    """Stands in for RazorpayGateway; payments are set up by the test."""

    key_id = "rzp_test_key"

    def __init__(self, secret=SECRET):
        self.secret = secret
        self.orders = []
        self.payments = {}
        self.fetch_calls = 0
        self.unavailable = False

    async def create_order(self, amount, currency, receipt, notes=None):
        if self.unavailable:
            raise GatewayUnavailable()
        order_id = f"order_{len(self.orders) + 1}"
        self.orders.append(
            {"id": order_id, "amount": amount, "currency": currency, "receipt": receipt, "notes": notes}
        )
        return order_id

    async def fetch_payment(self, payment_id):
        self.fetch_calls += 1
        if self.unavailable:
            raise GatewayUnavailable()
        if payment_id not in self.payments:
            raise BadRequest("The id provided does not exist")
        return PaymentResult.from_gateway(self.payments[payment_id])

    def verify_signature(self, order_id, payment_id, signature):
        return verify_signature(order_id, payment_id, signature, self.secret)

    def set_payment(self, payment_id, order_id, status, amount=19900, method="upi"):
        self.payments[payment_id] = {
            "id": payment_id,
            "order_id": order_id,
            "status": status,
            "amount": amount,
            "currency": "INR",
            "method": method,
        }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def pdf_path(tmp_path):
    path = tmp_path / "files" / "20 laws of feminine power complete guide.pdf"
    path.parent.mkdir()
    path.write_bytes(PDF_BYTES)
    return path


@pytest.fixture
def settings(pdf_path):
    return Settings(
        razorpay_key_id="rzp_test_key",
        razorpay_key_secret=SECRET,
        pdf_path=pdf_path,
    )


@pytest.fixture
def app(settings, gateway):
    return create_app(settings=settings, gateway=gateway)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client
