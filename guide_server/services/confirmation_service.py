"""Order creation and payment confirmation.

The gateway is the only source of truth for payment status. A grant is issued
only for a captured payment (or an authorized one when explicitly allowed),
and re-confirming the same payment returns the same grant.
"""

import logging
import time
from datetime import datetime
from typing import Callable, Optional

from pydantic import BaseModel

from guide_server.config import Settings
from guide_server.models.order import Order
from guide_server.models.payment import PaymentResult, PaymentStatus
from guide_server.services.errors import (
    BadRequest,
    InvalidSignature,
    PaymentFailed,
    UnknownOrder,
)
from guide_server.services.gateway import RazorpayGateway
from guide_server.services.grant_store import GrantStore
from guide_server.services.order_ledger import OrderLedger, utcnow

_TERMINAL_FAILURES = {PaymentStatus.FAILED, PaymentStatus.REFUNDED}


class Confirmation(BaseModel):
    status: str  # "granted" or "pending"
    payment_status: PaymentStatus
    token: Optional[str] = None
    retry_after: Optional[int] = None

    @property
    def granted(self) -> bool:
        return self.token is not None


class PaymentConfirmationService:
    def __init__(
        self,
        gateway: RazorpayGateway,
        ledger: OrderLedger,
        grants: GrantStore,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.gateway = gateway
        self.ledger = ledger
        self.grants = grants
        self.settings = settings
        self._clock = clock

    async def create_order(self) -> Order:
        amount = self.settings.price_minor_units
        receipt = f"order_{int(time.time() * 1000)}"
        order_id = await self.gateway.create_order(
            amount=amount,
            currency=self.settings.currency,
            receipt=receipt,
            notes={"product": self.settings.product_name},
        )
        order = Order(
            order_id=order_id,
            amount=amount,
            currency=self.settings.currency,
            receipt=receipt,
            created_at=self._clock(),
        )
        self.ledger.record(order)
        logging.info("Order created: %s - Amount: %s %s", order_id, amount, order.currency)
        return order

    async def confirm(
        self,
        order_id: Optional[str],
        payment_id: Optional[str],
        signature: Optional[str],
    ) -> Confirmation:
        if not order_id or not payment_id or not signature:
            raise BadRequest("Missing payment details")

        if not self.gateway.verify_signature(order_id, payment_id, signature):
            logging.warning(
                "Invalid payment signature: order=%s payment=%s", order_id, payment_id
            )
            raise InvalidSignature()

        order = self.ledger.get(order_id)
        if order is None:
            logging.warning("Verification for unknown order %s (payment %s)", order_id, payment_id)
            raise UnknownOrder()

        payment = await self.gateway.fetch_payment(payment_id)

        if payment.order_id and payment.order_id != order_id:
            logging.warning(
                "Payment %s belongs to order %s, not %s", payment_id, payment.order_id, order_id
            )
            raise BadRequest("Payment does not belong to this order")

        if payment.status in _TERMINAL_FAILURES:
            logging.info("Payment %s ended as %s", payment_id, payment.status.value)
            raise PaymentFailed()

        if not self._grantable(payment):
            logging.warning(
                "Payment not captured yet: %s - Status: %s", payment_id, payment.raw_status
            )
            return Confirmation(
                status="pending",
                payment_status=payment.status,
                retry_after=self.settings.retry_after_seconds,
            )

        if payment.amount != order.amount:
            logging.error(
                "Amount mismatch for payment %s: paid %s, order %s expects %s",
                payment_id,
                payment.amount,
                order_id,
                order.amount,
            )
            raise PaymentFailed("Payment amount does not match the order")

        grant = self.grants.issue(payment_id, order_id=order_id)
        logging.info(
            "Payment verified: %s - Amount: %s - Method: %s", payment_id, payment.amount, payment.method
        )
        return Confirmation(status="granted", payment_status=payment.status, token=grant.token)

    async def check_status(self, payment_id: Optional[str]) -> PaymentResult:
        if not payment_id:
            raise BadRequest("payment_id is required")
        return await self.gateway.fetch_payment(payment_id)

    def _grantable(self, payment: PaymentResult) -> bool:
        if payment.status == PaymentStatus.CAPTURED:
            return True
        return payment.status == PaymentStatus.AUTHORIZED and self.settings.accept_authorized
