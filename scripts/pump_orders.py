"""Generate synthetic traffic against the order store.

Each tick either creates a new order or advances a random live one through
OrderService, so every write goes through the same validation, transition
and conditional-write path as a real client. Collected orders leave the live
set. Knobs:

* ORDERS_API_URL: base URL of the store, e.g. http://54.159.43.195:8080
* EVENTS_RATE: ticks per second
* ORDER_USER_ID: acting user recorded in the history (default pump-bot)
"""
from __future__ import annotations

import logging
import random
import string
import time
from typing import Dict, Optional, Tuple

from orders import conf
from orders.domain import Order
from orders.errors import RemoteWriteError, StaleOrderError
from orders.service import OrderService, StaticIdentity
from orders.store import RemoteOrderStore
from orders.transitions import is_terminal

logger = logging.getLogger("pump_orders")

FIRST_NAMES = ["John", "Jane", "Ava", "Liam", "Noah", "Mia", "Oliver", "Isla", "Jack", "Zoe"]
LAST_NAMES = ["Smith", "Doe", "Nguyen", "Brown", "Wilson", "Taylor", "Lee", "Martin"]
NOTES = ["", "", "Extra sauce", "Call on arrival", "Gift wrap please"]


def rand_customer_name(rng=random) -> str:
    return f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}"


def rand_phone(rng=random) -> str:
    return "04" + "".join(rng.choices(string.digits, k=8))


def step(service: OrderService, live_orders: Dict[str, Order], rng=random) -> Tuple[str, Optional[Order]]:
    """
    Run one tick. Returns ("created" | "advanced" | "stale" | "failed", order).
    `live_orders` is updated in place.
    """
    should_create = not live_orders or rng.random() < 0.5
    if should_create:
        try:
            order = service.create_order(rand_customer_name(rng), rand_phone(rng), rng.choice(NOTES))
        except RemoteWriteError as exc:
            logger.error("create failed: %s", exc)
            return "failed", None
        live_orders[order.id] = order
        return "created", order

    order_id = rng.choice(sorted(live_orders))
    order = live_orders[order_id]
    try:
        advanced = service.advance_status(order)
    except StaleOrderError:
        # Someone else moved it first.
        logger.warning("order %s changed remotely, dropping local copy", order_id)
        del live_orders[order_id]
        return "stale", order
    except RemoteWriteError as exc:
        logger.error("advance %s failed: %s", order_id, exc)
        return "failed", order

    if is_terminal(advanced.status):
        del live_orders[order_id]
    else:
        live_orders[order_id] = advanced
    return "advanced", advanced


def main(rate_per_sec: float = conf.EVENT_RATE) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    service = OrderService(RemoteOrderStore(), StaticIdentity(conf.ORDER_USER_ID or "pump-bot"))
    live_orders: Dict[str, Order] = {}

    sleep_time = 1.0 / rate_per_sec if rate_per_sec > 0 else 0.5
    print(f"[info] Writing to {conf.ORDERS_API_URL} ({rate_per_sec:.1f} ev/s). Ctrl+C to stop.")

    counter = 0
    try:
        while True:
            counter += 1
            action, order = step(service, live_orders)
            if order is not None:
                print(f"[{counter:05}] {action} -> {order.id} {order.status.value}")
            time.sleep(sleep_time)
    except KeyboardInterrupt:
        print("\n[info] Stopped by user")


if __name__ == "__main__":
    main()
