"""
Order model: the entity, its status enum and the append-only history record.

Pure data. Nothing here performs I/O or knows about Django, pika or HTTP.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Tuple


class Status(str, Enum):
    NEW = "new"
    PROCESSING = "processing"
    READY = "ready"
    COLLECTED = "collected"

    def __str__(self) -> str:
        return self.value


# Workflow order; used for iteration, never as a transition table.
STATUSES: Tuple[Status, ...] = (Status.NEW, Status.PROCESSING, Status.READY, Status.COLLECTED)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_timestamp(value: Any) -> datetime | None:
    """
    Convert a remote timestamp into an aware datetime.
    Accepts datetimes, ISO-8601 strings (with or without a trailing Z) and
    epoch seconds. Returns None when the value cannot be interpreted.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


@dataclass(frozen=True)
class HistoryEntry:
    status: Status
    timestamp: datetime
    user_id: str

    def to_document(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "timestamp": format_timestamp(self.timestamp),
            "userId": self.user_id,
        }


@dataclass(frozen=True)
class OrderRequest:
    """A validated create-order payload (see validators.validate_order_request)."""

    customer_name: str
    phone: str
    notes: str = ""


@dataclass(frozen=True)
class Order:
    """
    One customer order.

    - id: assigned by the remote store, "" until the create write returns
    - status: always equal to the status of the last history entry
    - history: append-only, first entry is (new, created_at, created_by)
    """

    id: str
    customer_name: str
    phone: str
    status: Status
    created_at: datetime
    updated_at: datetime
    created_by: str
    history: Tuple[HistoryEntry, ...] = field(default_factory=tuple)
    notes: str = ""

    def __post_init__(self):
        if not self.history:
            raise ValueError("order history must contain at least one entry")
        if self.history[-1].status is not self.status:
            raise ValueError(
                f"order status {self.status} does not match last history entry {self.history[-1].status}"
            )

    @classmethod
    def new(cls, request: OrderRequest, created_by: str, now: datetime, order_id: str = "") -> "Order":
        return cls(
            id=order_id,
            customer_name=request.customer_name,
            phone=request.phone,
            notes=request.notes,
            status=Status.NEW,
            created_at=now,
            updated_at=now,
            created_by=created_by,
            history=(HistoryEntry(Status.NEW, now, created_by),),
        )

    def to_document(self) -> Dict[str, Any]:
        """Wire form of the order, without the store-owned id."""
        return {
            "customerName": self.customer_name,
            "phone": self.phone,
            "notes": self.notes,
            "status": self.status.value,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
            "createdBy": self.created_by,
            "history": [entry.to_document() for entry in self.history],
        }
