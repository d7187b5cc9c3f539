"""
Live collection synchronizer.

Keeps a local, ordered, immutable mirror of the remote order collection and
hands the complete list to the consumer on every upstream change.

Decoding is lenient on purpose: a malformed document is repaired with
defaults (and a warning is logged) instead of being dropped, so a single bad
record cannot blank the whole view.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from .domain import HistoryEntry, Order, Status, parse_timestamp, utc_now
from .errors import RemoteSubscriptionError

logger = logging.getLogger(__name__)

Snapshot = Tuple[Order, ...]
SnapshotCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[[RemoteSubscriptionError], None]

ORDER_BY_FIELD = "createdAt"
ORDER_DIRECTION = "desc"


def _parse_status(value: Any) -> Optional[Status]:
    try:
        return Status(value)
    except ValueError:
        return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _decode_history(doc_id: str, raw: Any, now) -> List[HistoryEntry]:
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning("order %s: history is not a list, ignoring it", doc_id)
        return []
    entries = []
    for position, item in enumerate(raw):
        if not isinstance(item, Mapping):
            logger.warning("order %s: history[%d] is not an object, skipped", doc_id, position)
            continue
        status = _parse_status(item.get("status"))
        if status is None:
            logger.warning("order %s: history[%d] has unknown status %r, skipped", doc_id, position, item.get("status"))
            continue
        timestamp = parse_timestamp(item.get("timestamp"))
        if timestamp is None:
            logger.warning("order %s: history[%d] timestamp missing, defaulted to now", doc_id, position)
            timestamp = now
        entries.append(HistoryEntry(status, timestamp, _text(item.get("userId"))))
    return entries


def decode_order(doc: Mapping[str, Any], now=None) -> Order:
    """
    Build an Order from one remote document, never failing.

    Defaults: notes -> "", createdAt/updatedAt -> now, missing history -> the
    implied (new, createdAt, createdBy) entry, missing or unknown status ->
    status of the last history entry. A valid status that disagrees with the
    last history entry wins and a reconciling entry is appended so that the
    status/history invariant holds.
    """
    now = now or utc_now()
    doc_id = _text(doc.get("id"))

    created_at = parse_timestamp(doc.get("createdAt"))
    if created_at is None:
        logger.warning("order %s: createdAt missing or unparseable, defaulted to now", doc_id)
        created_at = now
    updated_at = parse_timestamp(doc.get("updatedAt"))
    if updated_at is None:
        logger.warning("order %s: updatedAt missing or unparseable, defaulted to now", doc_id)
        updated_at = now
    created_by = _text(doc.get("createdBy"))

    history = _decode_history(doc_id, doc.get("history"), now)
    if not history:
        logger.warning("order %s: empty history, using the creation entry", doc_id)
        history = [HistoryEntry(Status.NEW, created_at, created_by)]

    status = _parse_status(doc.get("status"))
    if status is None:
        logger.warning(
            "order %s: status %r missing or unknown, defaulted to %s",
            doc_id, doc.get("status"), history[-1].status,
        )
        status = history[-1].status
    elif status is not history[-1].status:
        logger.warning(
            "order %s: status %s disagrees with history (%s), reconciling",
            doc_id, status, history[-1].status,
        )
        history.append(HistoryEntry(status, updated_at, ""))

    return Order(
        id=doc_id,
        customer_name=_text(doc.get("customerName")),
        phone=_text(doc.get("phone")),
        notes=_text(doc.get("notes")),
        status=status,
        created_at=created_at,
        updated_at=updated_at,
        created_by=created_by,
        history=tuple(history),
    )


def build_snapshot(docs: Iterable[Mapping[str, Any]], now=None) -> Snapshot:
    """Decode every document and order by createdAt desc, id asc on ties."""
    now = now or utc_now()
    orders = [decode_order(doc, now) for doc in docs if isinstance(doc, Mapping)]
    orders.sort(key=lambda o: o.id)
    orders.sort(key=lambda o: o.created_at, reverse=True)
    return tuple(orders)


class Subscription:
    """
    Disposer returned by LiveCollectionSynchronizer.subscribe.

    Calling it (or .unsubscribe()) releases the remote feed. Safe to call
    more than once; no callback is delivered after it returns.
    """

    def __init__(self, on_snapshot: SnapshotCallback, on_error: Optional[ErrorCallback], clock):
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._clock = clock
        self._lock = threading.RLock()
        self._handle = None
        self._active = True
        self._degraded = False
        self._snapshot: Snapshot = ()

    @property
    def active(self) -> bool:
        return self._active

    @property
    def degraded(self) -> bool:
        return self._degraded

    @property
    def snapshot(self) -> Snapshot:
        """Last good snapshot; kept as-is when the feed fails."""
        return self._snapshot

    def _attach(self, handle) -> None:
        with self._lock:
            if self._active:
                self._handle = handle
                return
        handle.close()

    def _handle_change(self, docs) -> None:
        snapshot = build_snapshot(docs, self._clock())
        with self._lock:
            if not self._active:
                return
            self._snapshot = snapshot
            self._degraded = False
            try:
                self._on_snapshot(snapshot)
            except Exception:
                # The feed outlives a faulty consumer; the next change is still delivered.
                logger.exception("snapshot consumer failed (%d orders)", len(snapshot))

    def _handle_error(self, err) -> None:
        if not isinstance(err, RemoteSubscriptionError):
            err = RemoteSubscriptionError(str(err))
        with self._lock:
            if not self._active or self._degraded:
                return
            self._degraded = True
            logger.error("order feed degraded: %s", err)
            if self._on_error is not None:
                self._on_error(err)

    def unsubscribe(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
            handle, self._handle = self._handle, None
        if handle is not None:
            handle.close()

    __call__ = unsubscribe


class LiveCollectionSynchronizer:
    def __init__(self, feed, collection: str = "orders", clock=utc_now):
        self._feed = feed
        self._collection = collection
        self._clock = clock

    def subscribe(self, on_snapshot: SnapshotCallback, on_error: Optional[ErrorCallback] = None) -> Subscription:
        subscription = Subscription(on_snapshot, on_error, self._clock)
        try:
            handle = self._feed.subscribe(
                self._collection,
                ORDER_BY_FIELD,
                ORDER_DIRECTION,
                subscription._handle_change,
                subscription._handle_error,
            )
        except RemoteSubscriptionError as err:
            subscription._handle_error(err)
            return subscription
        subscription._attach(handle)
        return subscription
