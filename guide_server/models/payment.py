# guide_server/models/payment.py
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel


class PaymentStatus(str, Enum):
    CREATED = "created"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    FAILED = "failed"
    REFUNDED = "refunded"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PaymentStatus":
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.OTHER


class PaymentResult(BaseModel):
    """Gateway verdict for one payment id, fetched fresh on every check."""

    payment_id: str
    order_id: Optional[str] = None
    status: PaymentStatus
    # Amount in minor units (paise), as the gateway reports it
    amount: int = 0
    currency: Optional[str] = None
    method: Optional[str] = None
    raw_status: Optional[str] = None

    @classmethod
    def from_gateway(cls, payload: Dict[str, Any]) -> "PaymentResult":
        return cls(
            payment_id=payload.get("id", ""),
            order_id=payload.get("order_id"),
            status=PaymentStatus.parse(payload.get("status")),
            amount=int(payload.get("amount") or 0),
            currency=payload.get("currency"),
            method=payload.get("method"),
            raw_status=payload.get("status"),
        )
