from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class GrantState(str, Enum):
    ISSUED = "issued"
    IN_FLIGHT = "in_flight"
    REDEEMED = "redeemed"


class GrantOutcome(str, Enum):
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"


class Grant(BaseModel):
    token: str
    payment_id: str
    order_id: Optional[str] = None
    state: GrantState = GrantState.ISSUED
    created_at: datetime
    expires_at: datetime
    # Nonce of the current redemption; a handle is valid only for its own attempt
    attempt: Optional[str] = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class GrantHandle(BaseModel):
    """Proof of a successful ``redeem``; must be finalized exactly once."""

    token: str
    attempt: str

    model_config = {"frozen": True}
