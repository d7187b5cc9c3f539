# orders/publisher.py
import json
import logging

import pika
from pika.exceptions import AMQPError

from . import conf

logger = logging.getLogger(__name__)


def connection_parameters(host: str | None = None) -> pika.ConnectionParameters:
    """Connection parameters with short timeouts and retries.
    A down or distant broker must not hold up the request."""
    return pika.ConnectionParameters(
        host=host or conf.RABBIT_HOST or "127.0.0.1",
        port=conf.RABBIT_PORT,
        virtual_host=conf.RABBIT_VHOST,
        credentials=pika.PlainCredentials(conf.RABBIT_USER, conf.RABBIT_PASS),
        heartbeat=30,
        blocked_connection_timeout=5,
        socket_timeout=5,
        connection_attempts=3,
        retry_delay=2.0,
    )


def _publish(routing_key: str, payload: dict) -> bool:
    """Publish without failing the request when the broker is unavailable.
    The write is already committed; subscribers simply miss this notification."""
    if not conf.RABBIT_HOST:
        # No host configured: skip the event, keep the request alive
        logger.warning("RABBIT_HOST not set; %s event skipped", routing_key)
        return False
    conn = None
    try:
        conn = pika.BlockingConnection(connection_parameters())
        ch = conn.channel()
        ch.exchange_declare(exchange=conf.EXCHANGE, exchange_type="topic", durable=True)
        ch.basic_publish(
            exchange=conf.EXCHANGE,
            routing_key=routing_key,
            body=json.dumps(payload).encode("utf-8"),
            properties=pika.BasicProperties(
                content_type="application/json",
                delivery_mode=2,  # persistent if the queue is durable
            ),
        )
        return True
    except (AMQPError, OSError) as e:
        logger.error("could not publish %s: %s", routing_key, e)
        return False
    finally:
        if conn is not None and conn.is_open:
            try:
                conn.close()
            except AMQPError:
                logger.debug("broker connection already closing", exc_info=True)


def publish_order_created(order_id: str, status: str) -> bool:
    return _publish(conf.ROUTING_CREATED, {"order_id": order_id, "status": status})


def publish_order_status_updated(order_id: str, status: str, version: int, meta: dict | None = None) -> bool:
    payload = {"order_id": order_id, "new_status": status, "version": int(version)}
    if meta:
        payload["meta"] = meta
    return _publish(conf.ROUTING_UPDATED, payload)
