# storefront/services/orders.py
"""
Checkout: turns the caller's server-side cart into an order.

The order is built from what the database holds, never from client-sent
lines or totals. Stock is decremented with a guarded UPDATE
(``stock_quantity >= :qty``) so two checkouts racing for the last unit
cannot both succeed.
"""
from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import update

from storefront.errors import ValidationError
from storefront.extensions import db
from storefront.models.cart import CartItem
from storefront.models.catalog import Product
from storefront.models.order import Order, OrderItem, OrderStatus
from storefront.utils.http import finite_number

from .cart_service import get_cart


def _reserve_stock(product: Product, quantity: int) -> None:
    res = db.session.execute(
        update(Product)
        .where(Product.id == product.id, Product.stock_quantity >= quantity)
        .values(stock_quantity=Product.stock_quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise ValidationError(f"Insufficient stock for {product.name}")


def place_order(user, shipping_address, client_total=None) -> Order:
    if not isinstance(shipping_address, dict) or not shipping_address:
        raise ValidationError("Missing or invalid order data")

    cart = get_cart(user.id)
    lines = CartItem.query.filter_by(cart_id=cart.id).order_by(CartItem.id).all() if cart else []
    if not lines:
        raise ValidationError("Cart is empty")

    try:
        order = Order(
            user_id=user.id,
            shipping_address=shipping_address,
            total_amount=Decimal("0"),
            status=OrderStatus.PENDING.value,
        )
        total = Decimal("0")
        for line in lines:
            product = line.product
            if product is None or not product.is_active:
                raise ValidationError(f"Product {line.product_id} is no longer available")
            _reserve_stock(product, line.quantity)
            price = product.unit_price  # frozen here; later price edits don't touch the order
            order.items.append(OrderItem(product_id=product.id, quantity=line.quantity, price=price))
            total += price * line.quantity

        order.total_amount = total
        db.session.add(order)
        CartItem.query.filter_by(cart_id=cart.id).delete(synchronize_session="fetch")
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    claimed = finite_number(client_total) if client_total is not None else None
    if claimed is not None and abs(claimed - total) > Decimal("0.01"):
        current_app.logger.warning(
            "order %s: client total %s differs from computed %s", order.id, claimed, total
        )
    current_app.logger.info("order %s placed by user %s total=%s lines=%s", order.id, user.id, total, len(lines))
    return order


def set_status(order: Order, status: str) -> Order:
    valid = {s.value for s in OrderStatus}
    value = str(status or "").strip().upper()
    if value not in valid:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(sorted(valid))}")
    previous = order.status
    order.status = value
    db.session.commit()
    current_app.logger.info("order %s status %s -> %s", order.id, previous, value)
    return order
