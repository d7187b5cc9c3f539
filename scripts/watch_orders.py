# scripts/watch_orders.py
"""Live dashboard in the terminal.

Subscribes to the order feed and, on every change, prints the counts per
status, the completion rate and the orders of the selected tab (or the
search results when --search is given).

    ORDERS_API_URL=http://127.0.0.1:8000 RABBIT_HOST=127.0.0.1 \
        python scripts/watch_orders.py --tab ready
"""
from __future__ import annotations

import argparse
import logging
import threading
from datetime import datetime
from typing import List, Sequence

from orders.domain import STATUSES, Order, Status, utc_now
from orders.feed import RemoteChangeFeed
from orders.labels import action_label, status_label, time_ago
from orders.projector import completion_rate, compute_stats, empty_state, project
from orders.store import RemoteOrderStore
from orders.sync import LiveCollectionSynchronizer


def render(snapshot: Sequence[Order], tab: Status, query: str, now: datetime) -> str:
    stats = compute_stats(snapshot)
    lines: List[str] = [
        f"Total orders: {stats.total}",
        "  ".join(f"{status_label(s)}: {stats.count_by_status[s]}" for s in STATUSES),
        f"Completion rate: {completion_rate(stats)}% ({stats.collected} of {stats.total} orders completed)",
        "-" * 60,
    ]
    visible = project(snapshot, tab, query)
    if not visible:
        title, subtitle = empty_state(tab, query)
        lines += [title, subtitle]
        return "\n".join(lines)
    for order in visible:
        lines.append(
            f"{order.customer_name:<30} {order.phone}  [{order.status.value.upper()}]  "
            f"{time_ago(order.created_at, now)}  -> {action_label(order.status)}"
        )
        if order.notes:
            lines.append(f"    {order.notes}")
    return "\n".join(lines)


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Watch orders live")
    parser.add_argument("--tab", type=Status, choices=list(Status), default=Status.NEW)
    parser.add_argument("--search", default="", help="name or phone; overrides --tab")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    synchronizer = LiveCollectionSynchronizer(RemoteChangeFeed(RemoteOrderStore()))
    failed = threading.Event()

    def on_snapshot(snapshot):
        print("\n" + render(snapshot, args.tab, args.search, utc_now()))

    def on_error(err):
        print(f"[feed] {err} (showing last known orders)")
        failed.set()

    subscription = synchronizer.subscribe(on_snapshot, on_error)
    print("👂 Watching orders. Ctrl+C to quit.")
    try:
        while not failed.wait(0.5):
            pass
    except KeyboardInterrupt:
        print("\nClosing…")
    finally:
        subscription.unsubscribe()


if __name__ == "__main__":
    main()
