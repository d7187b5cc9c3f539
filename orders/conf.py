# orders/conf.py
import os

# Always read from environment variables, nothing hardcoded
RABBIT_HOST   = os.getenv("RABBIT_HOST")                # e.g. 52.87.186.136
RABBIT_PORT   = int(os.getenv("RABBIT_PORT", "5672"))
RABBIT_VHOST  = os.getenv("RABBIT_VHOST", "/")
RABBIT_USER   = os.getenv("RABBIT_USER", "guest")
RABBIT_PASS   = os.getenv("RABBIT_PASS", "guest")
EXCHANGE      = os.getenv("RABBIT_EXCHANGE", "order_events")

ORDERS_API_URL    = os.getenv("ORDERS_API_URL", "http://127.0.0.1:8000")
HTTP_TIMEOUT      = float(os.getenv("ORDERS_HTTP_TIMEOUT", "5"))
FEED_POLL_SECONDS = float(os.getenv("FEED_POLL_SECONDS", "1.0"))
EVENT_RATE        = float(os.getenv("EVENTS_RATE", "2"))
ORDER_USER_ID     = os.getenv("ORDER_USER_ID")

ROUTING_CREATED = "order.created"
ROUTING_UPDATED = "order.status.updated"
BIND_KEYS = [ROUTING_CREATED, ROUTING_UPDATED]
