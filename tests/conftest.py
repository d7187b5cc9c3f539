from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from orders.domain import STATUSES, Order, OrderRequest
from orders.errors import StaleOrderError

T0 = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


class Ticker:
    """Clock that moves one second forward on every call."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


class FakeStore:
    """In-memory stand-in for RemoteOrderStore with the same conditional-write rule."""

    def __init__(self):
        self.docs = {}
        self.calls = []
        self.fail_with = None
        self._seq = 0

    def create_document(self, collection, data):
        self.calls.append(("create", collection, data))
        if self.fail_with is not None:
            raise self.fail_with
        self._seq += 1
        doc_id = f"ord-{self._seq}"
        self.docs[doc_id] = dict(data, id=doc_id)
        return doc_id

    def update_document(self, collection, doc_id, partial):
        self.calls.append(("update", collection, doc_id, partial))
        if self.fail_with is not None:
            raise self.fail_with
        stored = self.docs[doc_id]
        expected = partial.get("expectedStatus")
        if expected is not None and stored["status"] != expected:
            raise StaleOrderError("order changed since it was read", status_code=409)
        stored.update({k: v for k, v in partial.items() if k != "expectedStatus"})
        return {"ok": True, "order": stored}

    def list_documents(self, collection, order_by="createdAt", direction="desc"):
        return list(self.docs.values())


class FakeHandle:
    def __init__(self):
        self.close_calls = 0

    def close(self):
        self.close_calls += 1


class FakeFeed:
    def __init__(self):
        self.subscribe_args = None
        self.on_change = None
        self.on_error = None
        self.handle = FakeHandle()

    def subscribe(self, collection, order_by, direction, on_change, on_error):
        self.subscribe_args = (collection, order_by, direction)
        self.on_change = on_change
        self.on_error = on_error
        return self.handle


@pytest.fixture
def ticker():
    return Ticker()


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def fake_feed():
    return FakeFeed()


@pytest.fixture
def make_order():
    def _make(order_id="ord-1", customer_name="John Smith", phone="0412345678", notes="",
              created_at=T0, created_by="staff-1"):
        request = OrderRequest(customer_name=customer_name, phone=phone, notes=notes)
        return Order.new(request, created_by=created_by, now=created_at, order_id=order_id)

    return _make


def doc(order_id, created_at, status="new", customer_name="Jane Doe", phone="0411111111", **extra):
    """Remote document as the store serves it, with a history consistent with `status`."""
    stamp = created_at.isoformat()
    history = []
    for step, name in enumerate(s.value for s in STATUSES):
        history.append({
            "status": name,
            "timestamp": (created_at + timedelta(minutes=step)).isoformat(),
            "userId": "staff-1",
        })
        if name == status:
            break
    data = {
        "id": order_id,
        "customerName": customer_name,
        "phone": phone,
        "notes": "",
        "status": status,
        "createdAt": stamp,
        "updatedAt": history[-1]["timestamp"],
        "createdBy": "staff-1",
        "history": history,
    }
    data.update(extra)
    return data


@pytest.fixture
def make_doc():
    return doc
