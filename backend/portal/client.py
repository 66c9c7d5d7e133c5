# Overview: HTTP client for the order endpoints, used by front-office integrations and scripts.

"""
Portal Client

Submitting an order is one round trip. If the client gives up waiting
(timeout, dropped connection after the request went out), the server may
still finish and save the order. That case raises SubmissionOutcomeUnknown,
never OrderSubmissionError, so callers do not tell a business its order
failed when it may exist. A 5xx is treated the same way unless the server
says "order_saved": false. Check list_orders() before retrying.
"""

from __future__ import annotations

import os
from typing import Any, Optional

import httpx


DEFAULT_SUBMIT_TIMEOUT = float(os.environ.get("ORDER_SUBMIT_TIMEOUT_SECONDS", "30"))
DEFAULT_READ_TIMEOUT = float(os.environ.get("PORTAL_READ_TIMEOUT_SECONDS", "15"))

GATEWAY_AMBIGUOUS_STATUSES = {502, 504}


class PortalClientError(Exception):
    def __init__(self, message: str, status_code: int | None = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class OrderSubmissionError(PortalClientError):
    """The server answered and rejected the order, or the request never left."""


class SubmissionOutcomeUnknown(PortalClientError):
    """The request was sent but no answer arrived; the order may or may not exist."""


def _cart_payload(cart: dict[int, int]) -> list[dict]:
    return [{"product_id": pid, "quantity": qty} for pid, qty in cart.items()]


def _payload_or_text(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"error": response.text}


def _order_not_saved(response: httpx.Response) -> bool:
    """True when the server states the order write failed (nothing was recorded)."""
    payload = _payload_or_text(response)
    return isinstance(payload, dict) and payload.get("order_saved") is False


class PortalClient:
    def __init__(
        self,
        base_url: str,
        *,
        submit_timeout: float = DEFAULT_SUBMIT_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.submit_timeout = submit_timeout
        self._http = httpx.Client(base_url=base_url, timeout=read_timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "PortalClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _json_or_raise(self, response: httpx.Response, error_cls=PortalClientError) -> dict:
        payload = _payload_or_text(response)
        if response.status_code >= 400:
            message = payload.get("error") if isinstance(payload, dict) else None
            raise error_cls(
                message or f"HTTP {response.status_code}",
                status_code=response.status_code,
                payload=payload,
            )
        return payload

    def list_products(self) -> list[dict]:
        return self._json_or_raise(self._http.get("/api/products"))["items"]

    def quote(self, business_number: str, cart: dict[int, int]) -> dict:
        response = self._http.post("/api/orders/quote", json={
            "business_number": business_number,
            "cart": _cart_payload(cart),
        })
        return self._json_or_raise(response)["promotion"]

    def get_order(self, order_id: int) -> dict:
        return self._json_or_raise(self._http.get(f"/api/orders/{order_id}"))["order"]

    def list_orders(self, business_id: int) -> list[dict]:
        return self._json_or_raise(self._http.get(f"/api/businesses/{business_id}/orders"))["items"]

    def submit_order(self, business_id: int, cart: dict[int, int], delivery_address: str) -> dict:
        """
        Submit an order and return the server's result.

        Raises OrderSubmissionError on a confirmed failure and
        SubmissionOutcomeUnknown when the outcome cannot be known.
        """
        body = {
            "business_id": business_id,
            "delivery_address": delivery_address,
            "cart": _cart_payload(cart),
        }
        try:
            response = self._http.post("/api/orders", json=body, timeout=self.submit_timeout)
        except httpx.ConnectError as exc:
            # Connection never established; nothing reached the server
            raise OrderSubmissionError(f"Could not reach order service: {exc}") from exc
        except httpx.TimeoutException as exc:
            if isinstance(exc, (httpx.ConnectTimeout, httpx.PoolTimeout)):
                raise OrderSubmissionError(f"Could not reach order service: {exc}") from exc
            raise SubmissionOutcomeUnknown(
                "Order submission timed out; the order may still have been placed"
            ) from exc
        except httpx.TransportError as exc:
            raise SubmissionOutcomeUnknown(
                f"Connection lost during order submission: {exc}"
            ) from exc

        if response.status_code in GATEWAY_AMBIGUOUS_STATUSES:
            # A proxy gave up on the backend, which may still be writing
            raise SubmissionOutcomeUnknown(
                f"Gateway returned {response.status_code} during order submission",
                status_code=response.status_code,
            )
        if response.status_code >= 500 and not _order_not_saved(response):
            # Server failed somewhere after accepting the request; the order may exist
            raise SubmissionOutcomeUnknown(
                f"Server error {response.status_code} during order submission",
                status_code=response.status_code,
                payload=_payload_or_text(response),
            )
        return self._json_or_raise(response, OrderSubmissionError)
