"""Razorpay gateway adapter: order creation, payment lookup, signature check.

The Razorpay SDK is synchronous (``requests`` underneath), so every call is
pushed to the threadpool. SDK and transport exceptions never leave this
module: they are translated into :mod:`guide_server.services.errors`.
"""

import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError, ServerError
from starlette.concurrency import run_in_threadpool

from guide_server.models.payment import PaymentResult
from guide_server.services.errors import BadRequest, GatewayUnavailable


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Check ``signature`` against HMAC-SHA256("<order_id>|<payment_id>", secret)."""
    if not signature:
        return False
    expected = compute_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


class RazorpayGateway:
    def __init__(self, key_id: str, key_secret: str, client: Optional[Any] = None):
        self.key_id = key_id
        self._key_secret = key_secret
        self._client = client or razorpay.Client(auth=(key_id, key_secret))

    async def create_order(
        self, amount: int, currency: str, receipt: str, notes: Optional[Dict[str, str]] = None
    ) -> str:
        data = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        order = await self._call("order.create", self._client.order.create, data=data)
        return order["id"]

    async def fetch_payment(self, payment_id: str) -> PaymentResult:
        payment = await self._call("payment.fetch", self._client.payment.fetch, payment_id)
        return PaymentResult.from_gateway(payment)

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        return verify_signature(order_id, payment_id, signature, self._key_secret)

    async def _call(self, name: str, func, *args, **kwargs) -> Dict[str, Any]:
        try:
            return await run_in_threadpool(func, *args, **kwargs)
        except BadRequestError as e:
            logging.warning("Razorpay %s rejected the request: %s", name, e)
            raise BadRequest("Payment gateway rejected the request")
        except (ServerError, GatewayError, requests.RequestException) as e:
            logging.exception("Razorpay %s failed", name)
            raise GatewayUnavailable() from e
