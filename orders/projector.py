"""
View projector: filtered lists and counts derived from a snapshot.

Every function is pure and returns a new sequence; the snapshot passed in
is never modified.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Sequence, Tuple

from .domain import STATUSES, Order, Status


@dataclass(frozen=True)
class Stats:
    total: int
    count_by_status: Mapping[Status, int]

    @property
    def collected(self) -> int:
        return self.count_by_status[Status.COLLECTED]


def filter_by_tab(orders: Sequence[Order], tab: Status) -> Tuple[Order, ...]:
    tab = Status(tab)
    return tuple(order for order in orders if order.status is tab)


def filter_by_search(orders: Sequence[Order], query: str) -> Tuple[Order, ...]:
    """Case-insensitive match on customer name, plain substring match on phone."""
    needle = query.lower()
    return tuple(
        order for order in orders
        if needle in order.customer_name.lower() or query in order.phone
    )


def project(orders: Sequence[Order], tab: Status, query: str = "") -> Tuple[Order, ...]:
    """
    What the dashboard list shows: a non-blank search replaces the tab
    filter entirely (it searches every status), otherwise the tab applies.
    Blankness is judged on the trimmed query; matching uses it as typed.
    """
    query = query or ""
    if query.strip():
        return filter_by_search(orders, query)
    return filter_by_tab(orders, tab)


def compute_stats(orders: Sequence[Order]) -> Stats:
    counts = {status: 0 for status in STATUSES}
    for order in orders:
        counts[order.status] += 1
    return Stats(total=len(orders), count_by_status=MappingProxyType(counts))


def completion_rate(stats: Stats) -> int:
    """Collected orders as a whole percentage; 0 for an empty snapshot."""
    if stats.total == 0:
        return 0
    # Halves round up: 1 of 8 is 13%.
    return (stats.collected * 200 + stats.total) // (2 * stats.total)


def empty_state(tab: Status, query: str = "") -> Tuple[str, str]:
    if (query or "").strip():
        return "No orders found", "Try adjusting your search or switch to a different tab"
    tab = Status(tab)
    return f"No {tab.value} orders", f"No orders with {tab.value} status yet"
