"""One-time download grants.

Each grant moves ``issued -> in_flight -> redeemed``. An interrupted transfer
moves it back from ``in_flight`` to ``issued`` so the buyer can retry. A grant
past its deadline counts as gone whatever its state. All transitions happen
under a single lock that is never held across I/O.
"""

import logging
import secrets
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from guide_server.models.grant import Grant, GrantHandle, GrantOutcome, GrantState
from guide_server.services.errors import GrantAlreadyUsed, GrantExpired, GrantNotFound
from guide_server.services.order_ledger import utcnow

DEFAULT_TTL = timedelta(hours=24)


def generate_token() -> str:
    # 32 random bytes = 256 bits of entropy
    return secrets.token_hex(32)


class GrantStore:
    def __init__(self, ttl: timedelta = DEFAULT_TTL, clock: Callable[[], datetime] = utcnow):
        self.ttl = ttl
        self._clock = clock
        self._grants: Dict[str, Grant] = {}
        self._by_payment: Dict[str, str] = {}
        self._lock = threading.Lock()

    def issue(self, payment_id: str, order_id: Optional[str] = None) -> Grant:
        """Return the grant for ``payment_id``, minting one if none is live."""
        with self._lock:
            now = self._clock()
            token = self._by_payment.get(payment_id)
            if token is not None:
                existing = self._grants.get(token)
                if existing is not None and not existing.is_expired(now):
                    return existing.model_copy()
                self._evict(token)

            token = generate_token()
            grant = Grant(
                token=token,
                payment_id=payment_id,
                order_id=order_id,
                created_at=now,
                expires_at=now + self.ttl,
            )
            self._grants[token] = grant
            self._by_payment[payment_id] = token
            return grant.model_copy()

    def redeem(self, token: str) -> GrantHandle:
        with self._lock:
            grant = self._grants.get(token)
            if grant is None:
                raise GrantNotFound()
            if grant.is_expired(self._clock()):
                self._evict(token)
                raise GrantExpired()
            if grant.state != GrantState.ISSUED:
                raise GrantAlreadyUsed()
            grant.state = GrantState.IN_FLIGHT
            grant.attempt = secrets.token_hex(8)
            return GrantHandle(token=token, attempt=grant.attempt)

    def finalize(self, handle: GrantHandle, outcome: GrantOutcome) -> bool:
        """Close the redemption behind ``handle``.

        Returns False when there is nothing to close: the grant was swept while
        streaming, or the handle was already finalized.
        """
        with self._lock:
            grant = self._grants.get(handle.token)
            if (
                grant is None
                or grant.state != GrantState.IN_FLIGHT
                or grant.attempt != handle.attempt
            ):
                logging.warning(
                    "Ignoring stale finalize(%s) for token %s...", outcome.value, handle.token[:8]
                )
                return False

            grant.attempt = None
            if outcome == GrantOutcome.COMPLETED:
                grant.state = GrantState.REDEEMED
            else:
                grant.state = GrantState.ISSUED
            return True

    def sweep_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [t for t, g in self._grants.items() if g.is_expired(now)]
            for token in expired:
                self._evict(token)
        return len(expired)

    def get(self, token: str) -> Optional[Grant]:
        with self._lock:
            grant = self._grants.get(token)
            return grant.model_copy() if grant is not None else None

    def _evict(self, token: str) -> None:
        grant = self._grants.pop(token, None)
        if grant is not None and self._by_payment.get(grant.payment_id) == token:
            del self._by_payment[grant.payment_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._grants)
