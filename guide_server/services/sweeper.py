import asyncio
import logging
from datetime import timedelta

from guide_server.services.grant_store import GrantStore
from guide_server.services.order_ledger import OrderLedger


def sweep_once(grants: GrantStore, ledger: OrderLedger, order_max_age: timedelta):
    removed_grants = grants.sweep_expired()
    removed_orders = ledger.sweep_expired(order_max_age)
    if removed_grants or removed_orders:
        logging.info(
            "Expiry sweep removed %s grant(s) and %s order(s)", removed_grants, removed_orders
        )
    return removed_grants, removed_orders


async def run_sweeper(grants: GrantStore, ledger: OrderLedger, interval: float) -> None:
    """Sweep expired grants and stale orders every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            sweep_once(grants, ledger, grants.ttl)
        except Exception:
            logging.exception("Expiry sweep failed")
