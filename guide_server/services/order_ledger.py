"""In-memory record of orders created by this process."""

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from guide_server.models.order import Order


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderLedger:
    """Orders keyed by gateway order id. Lost on restart."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._orders: Dict[str, Order] = {}
        self._lock = threading.Lock()

    def record(self, order: Order) -> None:
        with self._lock:
            self._orders[order.order_id] = order

    def exists(self, order_id: str) -> bool:
        with self._lock:
            return order_id in self._orders

    def get(self, order_id: str) -> Optional[Order]:
        with self._lock:
            return self._orders.get(order_id)

    def sweep_expired(self, max_age: timedelta) -> int:
        cutoff = self._clock() - max_age
        with self._lock:
            stale = [oid for oid, order in self._orders.items() if order.created_at < cutoff]
            for oid in stale:
                del self._orders[oid]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._orders)
