import threading
import time
from types import SimpleNamespace

from pika.exceptions import AMQPConnectionError, StreamLostError

from orders.errors import RemoteSubscriptionError
from orders.feed import RemoteChangeFeed
from orders.sync import LiveCollectionSynchronizer


class FakeChannel:
    def __init__(self, events, endless=False):
        self.events = list(events)
        self.endless = endless
        self.bindings = []
        self.cancelled = False

    def exchange_declare(self, exchange, exchange_type, durable):
        self.exchange = (exchange, exchange_type, durable)

    def queue_declare(self, queue, exclusive, auto_delete):
        return SimpleNamespace(method=SimpleNamespace(queue="amq.gen-test"))

    def queue_bind(self, exchange, queue, routing_key):
        self.bindings.append((exchange, queue, routing_key))

    def consume(self, queue, auto_ack, inactivity_timeout):
        for event in self.events:
            if isinstance(event, Exception):
                raise event
            yield event
        while self.endless:
            time.sleep(0.01)
            yield None, None, None

    def cancel(self):
        self.cancelled = True


class FakeConnection:
    def __init__(self, channel):
        self._channel = channel
        self.is_open = True
        self.closed = threading.Event()

    def channel(self):
        return self._channel

    def close(self):
        self.is_open = False
        self.closed.set()


class CountingStore:
    def __init__(self, fail_on=None):
        self.fetches = 0
        self.fail_on = fail_on

    def list_documents(self, collection, order_by="createdAt", direction="desc"):
        self.fetches += 1
        if self.fail_on == self.fetches:
            raise RemoteSubscriptionError("GET /orders failed")
        return [{"id": f"v{self.fetches}"}]


def _message(routing_key):
    return SimpleNamespace(routing_key=routing_key), None, b"{}"


def _subscribe(feed, changes, errors):
    return feed.subscribe("orders", "createdAt", "desc", changes.append, errors.append)


def test_fetches_once_up_front_and_after_each_notification():
    channel = FakeChannel([(None, None, None), _message("order.created"), (None, None, None),
                           _message("order.status.updated")])
    conn = FakeConnection(channel)
    store = CountingStore()
    feed = RemoteChangeFeed(store, connection_factory=lambda: conn, exchange="order_events", poll_seconds=0.01)
    changes, errors = [], []

    handle = _subscribe(feed, changes, errors)
    assert conn.closed.wait(2)
    handle.close(timeout=2)

    assert changes == [[{"id": "v1"}], [{"id": "v2"}], [{"id": "v3"}]]
    assert errors == []
    assert channel.cancelled
    assert [b[2] for b in channel.bindings] == ["order.created", "order.status.updated"]
    assert channel.exchange == ("order_events", "topic", True)


def test_connection_failure_reports_once():
    def refuse():
        raise AMQPConnectionError("refused")

    done = threading.Event()
    errors = []

    def on_error(err):
        errors.append(err)
        done.set()

    feed = RemoteChangeFeed(CountingStore(), connection_factory=refuse)
    handle = feed.subscribe("orders", "createdAt", "desc", lambda docs: None, on_error)
    assert done.wait(2)
    handle.close(timeout=2)

    assert len(errors) == 1
    assert isinstance(errors[0], RemoteSubscriptionError)


def test_lost_stream_reports_error_and_closes():
    channel = FakeChannel([_message("order.created"), StreamLostError("gone")])
    conn = FakeConnection(channel)
    feed = RemoteChangeFeed(CountingStore(), connection_factory=lambda: conn, poll_seconds=0.01)
    changes, errors = [], []

    handle = _subscribe(feed, changes, errors)
    assert conn.closed.wait(2)
    handle.close(timeout=2)

    assert len(changes) == 2
    assert len(errors) == 1
    assert "order feed lost" in str(errors[0])


def test_fetch_failure_is_a_subscription_error():
    conn = FakeConnection(FakeChannel([]))
    feed = RemoteChangeFeed(CountingStore(fail_on=1), connection_factory=lambda: conn)
    changes, errors = [], []

    handle = _subscribe(feed, changes, errors)
    assert conn.closed.wait(2)
    handle.close(timeout=2)

    assert changes == []
    assert [str(e) for e in errors] == ["GET /orders failed"]


def test_close_stops_an_idle_feed():
    channel = FakeChannel([], endless=True)
    conn = FakeConnection(channel)
    feed = RemoteChangeFeed(CountingStore(), connection_factory=lambda: conn, poll_seconds=0.01)
    changes, errors = [], []

    handle = _subscribe(feed, changes, errors)
    deadline = time.monotonic() + 2
    while not changes and time.monotonic() < deadline:
        time.sleep(0.01)
    handle.close(timeout=2)
    handle.close(timeout=2)

    assert handle.closed
    assert conn.closed.is_set()
    assert len(changes) == 1
    assert errors == []


def test_consumer_exception_does_not_stop_the_feed():
    channel = FakeChannel([_message("order.created"), _message("order.status.updated")])
    conn = FakeConnection(channel)
    feed = RemoteChangeFeed(CountingStore(), connection_factory=lambda: conn, poll_seconds=0.01)
    seen, errors = [], []

    def on_snapshot(snapshot):
        seen.append(snapshot)
        if len(seen) == 1:
            raise KeyError("consumer bug")

    sub = LiveCollectionSynchronizer(feed).subscribe(on_snapshot, errors.append)
    assert conn.closed.wait(2)
    sub.unsubscribe()

    assert [[o.id for o in s] for s in seen] == [["v1"], ["v2"], ["v3"]]
    assert errors == []
    assert channel.cancelled


def test_unexpected_failure_is_reported():
    conn = FakeConnection(FakeChannel([]))

    class BrokenStore:
        def list_documents(self, collection, order_by="createdAt", direction="desc"):
            raise ValueError("bad payload")

    feed = RemoteChangeFeed(BrokenStore(), connection_factory=lambda: conn)
    changes, errors = [], []

    handle = _subscribe(feed, changes, errors)
    assert conn.closed.wait(2)
    handle.close(timeout=2)

    assert changes == []
    assert len(errors) == 1
    assert isinstance(errors[0], RemoteSubscriptionError)
    assert "bad payload" in str(errors[0])
