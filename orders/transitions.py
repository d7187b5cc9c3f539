"""
Status transition engine.

The workflow is a fixed chain: new -> processing -> ready -> collected.
No skipping, no going back, collected is terminal.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from .domain import HistoryEntry, Order, Status
from .errors import NotAuthenticatedError, TerminalStateError


def next_status(current: Status) -> Optional[Status]:
    """Return the status after `current`, or None when `current` is terminal."""
    if current is Status.NEW:
        return Status.PROCESSING
    if current is Status.PROCESSING:
        return Status.READY
    if current is Status.READY:
        return Status.COLLECTED
    if current is Status.COLLECTED:
        return None
    raise ValueError(f"unknown status: {current!r}")


def is_terminal(status: Status) -> bool:
    return next_status(status) is None


def can_transition(current: Status, new: Status) -> bool:
    nxt = next_status(current)
    return nxt is not None and nxt is new


def advance(order: Order, acting_user_id: Optional[str], now: datetime) -> Order:
    """
    Move `order` one step forward and append the matching history entry.

    Not idempotent: two calls on the same logical order append two entries.
    Callers serialize, and the store rejects a write whose expected status
    is stale (see service.OrderService.advance_status).
    """
    target = next_status(order.status)
    if target is None:
        raise TerminalStateError(order.status)
    if not acting_user_id:
        raise NotAuthenticatedError()

    return replace(
        order,
        status=target,
        updated_at=now,
        history=order.history + (HistoryEntry(target, now, acting_user_id),),
    )
