"""
Order service - create and advance orders against the remote store.
Both operations block until the write returns; the change itself reaches the
local view through the live feed, not through the return value.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Protocol

from .domain import Order, utc_now
from .errors import NotAuthenticatedError, RemoteWriteError
from .transitions import advance
from .validators import validate_order_request

logger = logging.getLogger(__name__)


class User(Protocol):
    id: str


class IdentityProvider(Protocol):
    """Anything exposing the signed-in user (or None) at call time."""

    @property
    def current_user(self) -> Optional[User]: ...


@dataclass(frozen=True)
class StaticUser:
    id: str


class StaticIdentity:
    """Identity fixed at construction; None means nobody is signed in."""

    def __init__(self, user_id: Optional[str] = None):
        self._user = StaticUser(user_id) if user_id else None

    @property
    def current_user(self) -> Optional[StaticUser]:
        return self._user


class OrderService:
    def __init__(self, store, identity: IdentityProvider, collection: str = "orders", clock=utc_now):
        self.store = store
        self.identity = identity
        self.collection = collection
        self.clock = clock

    def _acting_user_id(self) -> str:
        user = self.identity.current_user
        if user is None or not getattr(user, "id", None):
            raise NotAuthenticatedError()
        return user.id

    def create_order(self, customer_name: str, phone: str, notes: str = "") -> Order:
        """
        Validate and write a new order.

        Raises:
            NotAuthenticatedError: nobody is signed in
            ValidationError: a field is invalid
            RemoteWriteError: the store rejected or never received the write
        """
        user_id = self._acting_user_id()
        request = validate_order_request(customer_name, phone, notes)
        order = Order.new(request, created_by=user_id, now=self.clock())

        try:
            order_id = self.store.create_document(self.collection, order.to_document())
        except RemoteWriteError as exc:
            logger.warning("create order for %r failed: %s", request.customer_name, exc)
            raise
        logger.info("order %s created by %s", order_id, user_id)
        return replace(order, id=order_id)

    def advance_status(self, order: Order) -> Order:
        """
        Move `order` to its next status with a conditional write.

        The store only accepts the write while it still holds `order.status`;
        otherwise StaleOrderError is raised and nothing is written.

        Raises:
            TerminalStateError: the order is already collected
            NotAuthenticatedError: nobody is signed in
            StaleOrderError: another client advanced the order first
            RemoteWriteError: any other store failure
        """
        user = self.identity.current_user
        advanced = advance(order, user.id if user is not None else None, self.clock())
        document = advanced.to_document()
        partial = {
            "status": document["status"],
            "updatedAt": document["updatedAt"],
            "history": document["history"],
            "expectedStatus": order.status.value,
        }
        try:
            self.store.update_document(self.collection, order.id, partial)
        except RemoteWriteError as exc:
            logger.warning("advance order %s from %s failed: %s", order.id, order.status, exc)
            raise
        logger.info("order %s moved %s -> %s by %s", order.id, order.status, advanced.status, user.id)
        return advanced
