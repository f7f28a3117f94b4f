# storefront/services/cart_service.py
"""
Server-side cart mutations.

Each function works inside the request's session and commits once at the
end, so one edge-function call is one database transaction. Row locks
(`with_for_update`) serialise concurrent edits of an existing cart line on
PostgreSQL; SQLite ignores them. A line that does not exist yet cannot be
locked, so new lines go in through INSERT ... ON CONFLICT and a concurrent
insert of the same product is folded into the existing row.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import case
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from storefront.errors import NotFoundError
from storefront.extensions import db
from storefront.models.cart import Cart, CartItem
from storefront.models.catalog import Collection, Product


def get_cart(user_id: int) -> Cart | None:
    return Cart.query.filter_by(user_id=user_id).first()


def get_or_create_cart(user_id: int) -> Cart:
    cart = get_cart(user_id)
    if cart:
        return cart
    cart = Cart(user_id=user_id)
    db.session.add(cart)
    try:
        db.session.flush()
    except IntegrityError:
        # another request created it first
        db.session.rollback()
        cart = get_cart(user_id)
        if cart is None:
            raise
    else:
        current_app.logger.info("cart %s created for user %s", cart.id, user_id)
    return cart


def _product_or_404(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found.")
    return product


def _locked_line(cart_id: int, product_id: int) -> CartItem | None:
    return (
        CartItem.query.filter_by(cart_id=cart_id, product_id=product_id)
        .with_for_update()
        .first()
    )


def serialize_items(cart: Cart | None) -> list[dict]:
    if cart is None:
        return []
    return [i.to_dict() for i in cart.items]


def cart_payload(cart: Cart) -> dict:
    items = serialize_items(cart)
    return {"cart": {"id": cart.id, "items": items}, "items": items}


_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _insert_line(cart_id: int, product_id: int, quantity: int,
                 collection_id: int | None = None, keep_max: bool = False) -> None:
    """
    INSERT a new line. If another request inserted the same (cart, product)
    first, the quantities are summed, or the larger one kept with `keep_max`.
    """
    values = {
        "cart_id": cart_id,
        "product_id": product_id,
        "quantity": quantity,
        "collection_id": collection_id,
    }
    insert = _UPSERT_INSERTS.get(db.session.get_bind().dialect.name)
    if insert is None:
        _insert_line_with_savepoint(values, keep_max)
        return

    table = CartItem.__table__
    stmt = insert(table).values(**values)
    current, incoming = table.c.quantity, stmt.excluded.quantity
    set_ = {
        "quantity": case((incoming > current, incoming), else_=current) if keep_max else current + incoming,
    }
    if collection_id is not None:
        set_["collection_id"] = stmt.excluded.collection_id
    db.session.execute(stmt.on_conflict_do_update(index_elements=["cart_id", "product_id"], set_=set_))


def _insert_line_with_savepoint(values: dict, keep_max: bool) -> None:
    # dialects without ON CONFLICT
    try:
        with db.session.begin_nested():
            db.session.add(CartItem(**values))
    except IntegrityError:
        line = _locked_line(values["cart_id"], values["product_id"])
        if line is None:
            raise
        if keep_max:
            line.quantity = max(line.quantity, values["quantity"])
        else:
            line.quantity = CartItem.quantity + values["quantity"]
        if values["collection_id"] is not None:
            line.collection_id = values["collection_id"]
        current_app.logger.info(
            "cart %s: concurrent insert of product %s folded into existing line",
            values["cart_id"], values["product_id"],
        )


def _increment(cart: Cart, product: Product, quantity: int, collection_id: int | None = None) -> None:
    line = _locked_line(cart.id, product.id)
    if line:
        line.quantity = CartItem.quantity + quantity  # evaluated by the database
        if collection_id is not None:
            line.collection_id = collection_id
    else:
        _insert_line(cart.id, product.id, quantity, collection_id)


def _remove_line(cart_id: int, product_id: int) -> bool:
    n = CartItem.query.filter_by(cart_id=cart_id, product_id=product_id).delete(synchronize_session="fetch")
    return bool(n)


def _commit_and_reload(cart: Cart) -> Cart:
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.refresh(cart)
    return cart


# ---- operations -------------------------------------------------------------

def add_quantity(user_id: int, product_id: int, quantity: int) -> Cart:
    """Upsert-increment one line; a zero quantity removes the line."""
    product = _product_or_404(product_id)
    cart = get_or_create_cart(user_id)
    if quantity == 0:
        if _remove_line(cart.id, product.id):
            current_app.logger.info("cart %s: removed product %s", cart.id, product.id)
    else:
        _increment(cart, product, quantity)
    return _commit_and_reload(cart)


def apply_delta(user_id: int, product_id: int, delta: int) -> Cart:
    """Signed change; a line that would drop to zero or below is deleted."""
    product = _product_or_404(product_id)
    cart = get_or_create_cart(user_id)
    line = _locked_line(cart.id, product.id)
    current = line.quantity if line else 0
    new_qty = current + delta

    if new_qty <= 0:
        if line:
            db.session.delete(line)
            current_app.logger.info("cart %s: product %s dropped to %s, removed", cart.id, product.id, new_qty)
    elif line:
        line.quantity = new_qty
    else:
        _insert_line(cart.id, product.id, new_qty)
    return _commit_and_reload(cart)


def merge_items(user_id: int, items: list[dict]) -> Cart:
    """
    Fold a guest cart into the user's cart.

    A product on both sides keeps the larger quantity, so replaying the same
    merge leaves the cart unchanged. Unknown products and non-positive
    quantities are skipped.
    """
    cart = get_or_create_cart(user_id)
    skipped = 0
    for product_id, quantity in items:
        if quantity <= 0 or db.session.get(Product, product_id) is None:
            skipped += 1
            continue
        line = _locked_line(cart.id, product_id)
        if line:
            line.quantity = max(line.quantity, quantity)
        else:
            _insert_line(cart.id, product_id, quantity, keep_max=True)
        db.session.flush()
    if skipped:
        current_app.logger.warning("cart %s: merge skipped %s invalid line(s)", cart.id, skipped)
    return _commit_and_reload(cart)


def add_collection(user_id: int, collection_id: int, quantity: int) -> Cart:
    collection = db.session.get(Collection, collection_id)
    if collection is None:
        raise NotFoundError("Collection not found")
    cart = get_or_create_cart(user_id)
    for product in collection.products:
        _increment(cart, product, quantity, collection_id=collection.id)
        db.session.flush()
    current_app.logger.info(
        "cart %s: collection %s x%s (%s products)", cart.id, collection.id, quantity, len(collection.products)
    )
    return _commit_and_reload(cart)


def clear(user_id: int) -> None:
    cart = get_cart(user_id)
    if cart is None:
        return
    CartItem.query.filter_by(cart_id=cart.id).delete(synchronize_session="fetch")
    db.session.commit()
