"""HTTP client for the order document store (see orders/views.py)."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import requests

from . import conf
from .errors import RemoteSubscriptionError, RemoteWriteError, StaleOrderError

logger = logging.getLogger(__name__)


def _detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason or "request failed"
    if isinstance(body, dict):
        return str(body.get("error") or body.get("reason") or body)
    return str(body)


class RemoteOrderStore:
    def __init__(
        self,
        base_url: str = conf.ORDERS_API_URL,
        session: Optional[requests.Session] = None,
        timeout: float = conf.HTTP_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, *parts: str) -> str:
        return urljoin(self.base_url, "/".join(parts))

    def _write(self, method: str, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RemoteWriteError(f"{method} {url} failed: {exc}") from exc
        if response.status_code == 409:
            raise StaleOrderError(_detail(response), status_code=409)
        if not response.ok:
            raise RemoteWriteError(_detail(response), status_code=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteWriteError(f"{method} {url} returned a non-JSON body", response.status_code) from exc

    def create_document(self, collection: str, data: Dict[str, Any]) -> str:
        body = self._write("POST", self._url(collection), data)
        doc_id = body.get("id")
        if not doc_id:
            raise RemoteWriteError("store did not return an id for the new document")
        logger.debug("created %s/%s", collection, doc_id)
        return str(doc_id)

    def update_document(self, collection: str, doc_id: str, partial: Dict[str, Any]) -> Dict[str, Any]:
        return self._write("PATCH", self._url(collection, doc_id), partial)

    def list_documents(self, collection: str, order_by: str = "createdAt", direction: str = "desc") -> List[Dict[str, Any]]:
        url = self._url(collection)
        try:
            response = self.session.get(
                url,
                params={"orderBy": order_by, "direction": direction},
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as exc:
            raise RemoteSubscriptionError(f"GET {url} failed: {exc}") from exc
        except ValueError as exc:
            raise RemoteSubscriptionError(f"GET {url} returned a non-JSON body") from exc
        docs = body.get(collection) if isinstance(body, dict) else None
        if not isinstance(docs, list):
            raise RemoteSubscriptionError(f"GET {url} returned no '{collection}' list")
        return docs
