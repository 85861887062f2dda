"""Transport between the client cart mirror and the cart service."""

from abc import ABC, abstractmethod
from datetime import datetime

import requests

from storefront.errors import ServiceUnavailable, TransportError


def extract_error_detail(response) -> str:
    """Extract a human-readable error message from an API error response.

    Handles ``{"error": "msg"}``, ``{"error": {"field": ["msg"]}}`` and
    FastAPI's ``{"detail": ...}`` shapes. Never raises.
    """
    try:
        body = response.json()
    except ValueError:
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if not isinstance(body, dict):
        return str(body)[:300]

    if "detail" in body and isinstance(body["detail"], list):
        parts = []
        for err in body["detail"]:
            loc = ".".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", str(err))
            parts.append(f"{loc}: {msg}" if loc else msg)
        return " | ".join(parts)

    for key in ("error", "detail"):
        if key in body:
            error = body[key]
            if isinstance(error, dict):
                return " | ".join(
                    f"{k}: {', '.join(map(str, v)) if isinstance(v, list) else v}" for k, v in error.items()
                )
            return str(error)

    return str(body)[:300]


class CartTransport(ABC):
    """Cart service operations. Each returns ``{"cart", "item_count", "total_cents"}``.

    Failures surface only as ``ServiceUnavailable`` or ``TransportError``.
    """

    @abstractmethod
    def fetch(self) -> dict: ...

    @abstractmethod
    def add(self, item: dict) -> dict: ...

    @abstractmethod
    def update(self, product_id: str, stall_id: str, quantity: int, scheduled_for: str | None = None) -> dict: ...

    @abstractmethod
    def remove(self, product_id: str, stall_id: str | None = None, scheduled_for: str | None = None) -> dict: ...

    @abstractmethod
    def clear(self) -> dict: ...


def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else value


class HttpCartTransport(CartTransport):
    """Talks to the ``/cart`` endpoints.

    ``session`` is anything with a ``requests.Session``-style ``request``
    method, which includes FastAPI's TestClient.
    """

    def __init__(self, session=None, base_url: str = "", headers: dict | None = None, timeout: float | None = 10.0):
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.headers = dict(headers or {})
        self.timeout = timeout

    def _request(self, method, path, **kwargs):
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        try:
            response = self.session.request(method, f"{self.base_url}{path}", headers=self.headers, **kwargs)
        except (requests.ConnectionError, requests.Timeout, ConnectionError, TimeoutError) as exc:
            raise ServiceUnavailable(str(exc)) from exc
        except requests.RequestException as exc:
            raise TransportError(0, f"{type(exc).__name__}: {exc}") from exc

        if response.status_code == 503:
            raise ServiceUnavailable(extract_error_detail(response))
        if response.status_code >= 400:
            raise TransportError(response.status_code, extract_error_detail(response))
        try:
            body = response.json()
        except ValueError as exc:
            raise TransportError(response.status_code, "Cart service returned an unreadable response") from exc
        if not isinstance(body, dict):
            raise TransportError(response.status_code, "Cart service returned an unexpected response")
        return body

    def fetch(self):
        return self._request("GET", "/cart")

    def add(self, item):
        payload = {key: _iso(value) for key, value in item.items() if value is not None}
        return self._request("POST", "/cart", json=payload)

    def update(self, product_id, stall_id, quantity, scheduled_for=None):
        payload = {"product_id": product_id, "stall_id": stall_id, "quantity": quantity}
        if scheduled_for is not None:
            payload["scheduled_for"] = _iso(scheduled_for)
        return self._request("PUT", "/cart", json=payload)

    def remove(self, product_id, stall_id=None, scheduled_for=None):
        params = {"product_id": product_id}
        if stall_id is not None:
            params["stall_id"] = stall_id
        if scheduled_for is not None:
            params["scheduled_for"] = _iso(scheduled_for)
        return self._request("DELETE", "/cart", params=params)

    def clear(self):
        return self._request("DELETE", "/cart", params={"clear_all": "true"})
