# storefront/client/api.py
from __future__ import annotations

import logging
import os
from typing import Callable, Optional

import requests

log = logging.getLogger(__name__)


class CartApiError(Exception):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class CartApi:
    """Thin wrapper over the cart edge functions."""

    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], Optional[str]],
        session=None,
        timeout: float = 10,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_env(cls, token_provider, session=None):
        base = os.getenv("STOREFRONT_FUNCTIONS_URL", "").strip()
        if not base:
            raise RuntimeError("STOREFRONT_FUNCTIONS_URL is not set")
        return cls(base, token_provider, session=session)

    def _call(self, method: str, name: str, payload: Optional[dict] = None) -> dict:
        headers = {"Content-Type": "application/json"}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            resp = self.session.request(
                method,
                f"{self.base_url}/{name}",
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            log.warning("%s %s failed: %s", method, name, e)
            raise CartApiError(f"Network error: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if resp.status_code >= 300:
            msg = body.get("error") or body.get("message") or f"HTTP {resp.status_code}"
            raise CartApiError(str(msg), resp.status_code)
        return body

    def get_cart(self) -> dict:
        return self._call("GET", "get-cart")

    def add_to_cart(self, product_id, quantity: int) -> dict:
        return self._call("POST", "add-to-cart", {"productId": product_id, "quantity": quantity})

    def change_quantity(self, product_id, delta: int) -> dict:
        return self._call("POST", "add-to-cart", {"productId": product_id, "delta": delta})

    def merge_cart(self, items: list) -> dict:
        return self._call("POST", "merge-cart", {"items": items})

    def clear_cart(self) -> dict:
        return self._call("POST", "clear-cart")

    def add_collection_to_cart(self, collection_id, quantity: int) -> dict:
        return self._call(
            "POST", "add-collection-to-cart", {"collectionId": collection_id, "quantity": quantity}
        )
