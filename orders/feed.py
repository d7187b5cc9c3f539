"""
Remote change feed over RabbitMQ.

Each subscription owns one background thread. The thread binds an exclusive
queue to the order routing keys, fetches the whole collection from the
document store, and fetches it again after every notification. Callbacks are
only ever invoked from that thread, one at a time.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import pika
from pika.exceptions import AMQPError

from . import conf
from .errors import RemoteSubscriptionError
from .publisher import connection_parameters
from .store import RemoteOrderStore

logger = logging.getLogger(__name__)


def _blocking_connection():
    return pika.BlockingConnection(connection_parameters())


class FeedHandle:
    def __init__(self, thread: threading.Thread, stop: threading.Event):
        self._thread = thread
        self._stop = stop

    @property
    def closed(self) -> bool:
        return self._stop.is_set()

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop the consumer at its next poll tick. Idempotent."""
        self._stop.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout)


class RemoteChangeFeed:
    def __init__(
        self,
        store: Optional[RemoteOrderStore] = None,
        connection_factory: Callable = _blocking_connection,
        exchange: str = conf.EXCHANGE,
        bind_keys=None,
        poll_seconds: float = conf.FEED_POLL_SECONDS,
    ):
        self.store = store or RemoteOrderStore()
        self.connection_factory = connection_factory
        self.exchange = exchange
        self.bind_keys = list(bind_keys or conf.BIND_KEYS)
        self.poll_seconds = poll_seconds

    def subscribe(self, collection, order_by, direction, on_change, on_error) -> FeedHandle:
        stop = threading.Event()
        thread = threading.Thread(
            target=self._run,
            name=f"feed-{collection}",
            args=(collection, order_by, direction, on_change, on_error, stop),
            daemon=True,
        )
        thread.start()
        return FeedHandle(thread, stop)

    def _fetch(self, collection, order_by, direction):
        return self.store.list_documents(collection, order_by, direction)

    def _run(self, collection, order_by, direction, on_change, on_error, stop: threading.Event) -> None:
        conn = None
        try:
            conn = self.connection_factory()
            ch = conn.channel()
            ch.exchange_declare(exchange=self.exchange, exchange_type="topic", durable=True)

            # Exclusive auto-delete queue, bound before the first fetch
            q = ch.queue_declare(queue="", exclusive=True, auto_delete=True)
            qname = q.method.queue
            for key in self.bind_keys:
                ch.queue_bind(exchange=self.exchange, queue=qname, routing_key=key)
            logger.info("listening to %s on %s (queue %s)", self.bind_keys, self.exchange, qname)

            if stop.is_set():
                return
            on_change(self._fetch(collection, order_by, direction))

            for method, _props, body in ch.consume(qname, auto_ack=True, inactivity_timeout=self.poll_seconds):
                if stop.is_set():
                    break
                if method is None:
                    continue
                logger.debug("%s %s", method.routing_key, body)
                on_change(self._fetch(collection, order_by, direction))
            ch.cancel()
        except RemoteSubscriptionError as err:
            if not stop.is_set():
                on_error(err)
        except (AMQPError, OSError) as exc:
            if not stop.is_set():
                on_error(RemoteSubscriptionError(f"order feed lost: {exc!r}"))
        except Exception as exc:
            logger.exception("order feed for %s stopped unexpectedly", collection)
            if not stop.is_set():
                on_error(RemoteSubscriptionError(f"order feed stopped: {exc!r}"))
        finally:
            if conn is not None and conn.is_open:
                try:
                    conn.close()
                except AMQPError:
                    logger.debug("broker connection already closing", exc_info=True)
