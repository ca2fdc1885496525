from datetime import datetime

from pydantic import BaseModel


class Order(BaseModel):
    """An intent to pay, as created at the gateway. Never mutated."""

    order_id: str
    amount: int
    currency: str
    receipt: str
    created_at: datetime
