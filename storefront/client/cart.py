# storefront/client/cart.py
"""
Client-side cart reconciliation.

One cart view is kept in sync with three sources: the server cart (signed
in), the persisted guest cart (signed out), and local optimistic edits that
are still waiting on the network.

The reconciler holds the confirmed lines (last server answer, or the guest
cart) and a registry of outstanding :class:`PendingChange` objects. The
visible cart is always the confirmed lines with every pending change
replayed on top, in the order they were made. A server answer replaces the
confirmed lines only, so edits still in flight survive it. Rolling a change
back drops it from the registry and replays the rest, which gives the same
result whatever order changes are undone in.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Optional

from .api import CartApi, CartApiError
from .store import ClientStateRepository

log = logging.getLogger(__name__)

IDLE, LOADING, SUCCEEDED, FAILED = "idle", "loading", "succeeded", "failed"


def _product_id(product) -> Optional[int]:
    if isinstance(product, dict):
        return product.get("id")
    return product


@dataclass
class CartItem:
    product: dict
    quantity: int
    collection_id: Optional[int] = None
    seller_id: Optional[int] = None

    @property
    def product_id(self):
        return self.product.get("id")

    def copy(self) -> "CartItem":
        return CartItem(dict(self.product), self.quantity, self.collection_id, self.seller_id)

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        return cls(
            product=dict(data.get("product") or {}),
            quantity=int(data.get("quantity") or 0),
            collection_id=data.get("collectionId", data.get("collection_id")),
            seller_id=data.get("sellerId", data.get("seller_id")),
        )

    def to_dict(self) -> dict:
        return {
            "product": self.product,
            "quantity": self.quantity,
            "collectionId": self.collection_id,
            "sellerId": self.seller_id,
        }


@dataclass
class CartState:
    items: list = field(default_factory=list)
    status: str = IDLE
    error: Optional[str] = None


@dataclass
class AppState:
    repository: ClientStateRepository
    cart: CartState = field(default_factory=CartState)


@dataclass(eq=False)
class PendingChange:
    """An optimistic edit that the server has not confirmed or refused yet."""

    product_id: int
    delta: int
    snapshot: dict
    collection_id: Optional[int] = None
    seller_id: Optional[int] = None


def _find(items: list, product_id) -> Optional[CartItem]:
    for item in items:
        if item.product_id == product_id:
            return item
    return None


def _apply_delta(items: list, snapshot: dict, delta: int, collection_id=None, seller_id=None) -> None:
    """Change one line of `items` in place by `delta`, clamped at zero."""
    item = _find(items, snapshot.get("id"))
    new_qty = max(0, (item.quantity if item else 0) + delta)
    if new_qty == 0:
        if item:
            items.remove(item)
    elif item:
        item.quantity = new_qty
        if collection_id is not None:
            item.collection_id = collection_id
        if seller_id is not None:
            item.seller_id = seller_id
    else:
        items.append(CartItem(dict(snapshot), new_qty, collection_id, seller_id))


class CartReconciler:
    def __init__(self, app_state: AppState, api: CartApi):
        self.state = app_state
        self.api = api
        self._confirmed = [i.copy() for i in app_state.cart.items]
        self._pending: list[PendingChange] = []

    # ---- helpers ------------------------------------------------------------

    @property
    def cart(self) -> CartState:
        return self.state.cart

    @property
    def is_authenticated(self) -> bool:
        return bool(self.state.repository.access_token())

    @property
    def pending(self) -> tuple:
        return tuple(self._pending)

    def _persist(self) -> None:
        self.state.repository.save_cart_items([i.to_dict() for i in self.cart.items])

    def _refresh(self) -> None:
        """Rebuild the visible cart: confirmed lines plus pending changes."""
        items = [i.copy() for i in self._confirmed]
        for change in self._pending:
            _apply_delta(items, change.snapshot, change.delta, change.collection_id, change.seller_id)
        self.cart.items = items
        self._persist()

    def _forget(self, change: PendingChange) -> bool:
        for i, pending in enumerate(self._pending):
            if pending is change:
                del self._pending[i]
                return True
        return False

    def _adopt(self, payload: dict) -> None:
        """Server answer becomes the confirmed cart; pending edits are replayed on it."""
        raw = payload.get("items")
        if raw is None:
            raw = (payload.get("cart") or {}).get("items", [])
        self._confirmed = [CartItem.from_dict(d) for d in raw if isinstance(d, dict)]
        self.cart.status = SUCCEEDED
        self.cart.error = None
        self._refresh()

    def _fail(self, err: CartApiError, action: str) -> None:
        log.warning("cart %s failed: %s", action, err.message)
        self.cart.status = FAILED
        self.cart.error = err.message

    def _remote(self, action: str, call: Callable[[], dict], change: Optional[PendingChange] = None) -> bool:
        if change is None:
            self.cart.status = LOADING
        try:
            payload = call()
        except CartApiError as e:
            if change is not None:
                self.rollback(change)
            self._fail(e, action)
            return False
        if change is not None:
            # the answer already contains this edit
            self._forget(change)
        self._adopt(payload)
        return True

    def _local_done(self) -> None:
        self.cart.status = SUCCEEDED
        self.cart.error = None
        self._refresh()

    # ---- optimistic edits ---------------------------------------------------

    def _optimistic(self, snapshot: dict, delta: int, collection_id=None, seller_id=None) -> PendingChange:
        item = _find(self.cart.items, snapshot.get("id"))
        # keep the richest snapshot around so a rollback can re-insert the line
        if item:
            snapshot = item.product
            collection_id = collection_id if collection_id is not None else item.collection_id
            seller_id = seller_id if seller_id is not None else item.seller_id
        change = PendingChange(snapshot.get("id"), delta, dict(snapshot), collection_id, seller_id)
        if delta:
            self._pending.append(change)
            self._refresh()
        return change

    def add_item_optimistic(self, product: dict, quantity: int = 1) -> PendingChange:
        if quantity == 0:
            return self.remove_item_optimistic(product.get("id"))
        return self._optimistic(product, quantity)

    def update_quantity_optimistic(self, product_id, delta: int) -> PendingChange:
        item = _find(self.cart.items, product_id)
        snapshot = item.product if item else {"id": product_id}
        return self._optimistic(snapshot, delta)

    def remove_item_optimistic(self, product_id) -> PendingChange:
        item = _find(self.cart.items, product_id)
        if item is None:
            return PendingChange(product_id, 0, {"id": product_id})
        return self._optimistic(item.product, -item.quantity)

    def rollback(self, change: PendingChange) -> None:
        """Undo one optimistic edit; other pending edits keep their effect."""
        if self._forget(change):
            self._refresh()

    # ---- operations ---------------------------------------------------------

    def fetch_cart(self) -> list:
        if not self.is_authenticated:
            self._confirmed = [CartItem.from_dict(d) for d in self.state.repository.load_cart_items()]
            self._local_done()
            return self.cart.items
        self._remote("fetch", self.api.get_cart)
        return self.cart.items

    def add_item_to_cart(self, product: dict, quantity: int = 1, optimistic: bool = False) -> bool:
        pid = _product_id(product)
        if not self.is_authenticated:
            if quantity == 0:
                self._confirmed = [i for i in self._confirmed if i.product_id != pid]
            else:
                _apply_delta(self._confirmed, product, quantity)
            self._local_done()
            return True
        change = self.add_item_optimistic(product, quantity) if optimistic else None
        return self._remote("add", lambda: self.api.add_to_cart(pid, quantity), change)

    def update_quantity(self, product_id, delta: int, optimistic: bool = False) -> bool:
        if not self.is_authenticated:
            item = _find(self._confirmed, product_id)
            if item:
                _apply_delta(self._confirmed, item.product, delta)
            self._local_done()
            return True
        change = self.update_quantity_optimistic(product_id, delta) if optimistic else None
        return self._remote("update", lambda: self.api.change_quantity(product_id, delta), change)

    def remove_item(self, product_id, optimistic: bool = False) -> bool:
        if not self.is_authenticated:
            self._confirmed = [i for i in self._confirmed if i.product_id != product_id]
            self._local_done()
            return True
        change = self.remove_item_optimistic(product_id) if optimistic else None
        return self._remote("remove", lambda: self.api.add_to_cart(product_id, 0), change)

    def merge_local_cart_with_backend(self) -> bool:
        """Call once right after sign-in."""
        local = [CartItem.from_dict(d) for d in self.state.repository.load_cart_items()]
        if not local:
            self.fetch_cart()
            return self.cart.status == SUCCEEDED
        lines = [{"product": {"id": i.product_id}, "quantity": i.quantity} for i in local]
        return self._remote("merge", lambda: self.api.merge_cart(lines))

    def _add_collection_locally(self, collection: dict, quantity: int) -> None:
        cid = collection.get("id")
        seller = collection.get("sellerId", collection.get("seller_id"))
        for product in collection.get("products") or []:
            _apply_delta(self._confirmed, product, quantity, collection_id=cid, seller_id=seller)
        self._local_done()

    def add_collection_to_cart(self, collection: dict, quantity: int = 1) -> bool:
        if self.is_authenticated:
            try:
                self._adopt(self.api.add_collection_to_cart(collection.get("id"), quantity))
                return True
            except CartApiError as e:
                log.warning(
                    "add-collection-to-cart failed (%s); applying collection %s locally",
                    e.message, collection.get("id"),
                )
        self._add_collection_locally(collection, quantity)
        return True

    def clear_cart(self) -> bool:
        if self.is_authenticated:
            try:
                self.api.clear_cart()
            except CartApiError as e:
                self._fail(e, "clear")
                return False
        if self._pending:
            log.info("cart cleared with %s pending edit(s); dropping them", len(self._pending))
        self._confirmed = []
        self._pending = []
        self.cart.items = []
        self.cart.status = SUCCEEDED
        self.cart.error = None
        self.state.repository.clear_cart()
        return True

    # ---- selectors ----------------------------------------------------------

    def count(self) -> int:
        return sum(i.quantity for i in self.cart.items)

    def total(self) -> Decimal:
        return sum(
            (Decimal(str(i.product.get("price") or 0)) * i.quantity for i in self.cart.items),
            Decimal("0"),
        )
