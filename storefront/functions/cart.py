# storefront/functions/cart.py
from flask import current_app, jsonify
from flask_login import current_user

from storefront.auth.capabilities import Capability, requires
from storefront.errors import ValidationError
from storefront.services import cart_service
from storefront.utils.http import json_body, positive_int

from . import functions_bp


def _whole_number(value):
    """JSON integer (or integral float) as int; None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


@functions_bp.get("/get-cart")
@requires(Capability.MANAGE_CART)
def get_cart():
    cart = cart_service.get_cart(current_user.id)
    return jsonify({"items": cart_service.serialize_items(cart)})


@functions_bp.post("/add-to-cart")
@requires(Capability.MANAGE_CART)
def add_to_cart():
    data = json_body()
    product_id = positive_int(data.get("productId"))
    if product_id is None:
        raise ValidationError("Invalid input: productId required")

    if "delta" in data:
        delta = _whole_number(data.get("delta"))
        if delta is None:
            raise ValidationError("Invalid input: delta must be an integer")
        cart = cart_service.apply_delta(current_user.id, product_id, delta)
    else:
        quantity = _whole_number(data.get("quantity"))
        if quantity is None or quantity < 0:
            raise ValidationError("Invalid input: productId and non-negative quantity required")
        cart = cart_service.add_quantity(current_user.id, product_id, quantity)

    return jsonify(cart_service.cart_payload(cart))


@functions_bp.post("/merge-cart")
@requires(Capability.MANAGE_CART)
def merge_cart():
    data = json_body()
    raw = data.get("items")
    if not isinstance(raw, list):
        raise ValidationError("items must be a list")

    lines = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        product = entry.get("product")
        pid = positive_int(product.get("id") if isinstance(product, dict) else entry.get("productId"))
        qty = _whole_number(entry.get("quantity"))
        if pid is None or qty is None:
            continue
        lines.append((pid, qty))

    cart = cart_service.merge_items(current_user.id, lines)
    current_app.logger.info("user %s merged %s guest line(s)", current_user.id, len(lines))
    return jsonify(cart_service.cart_payload(cart))


@functions_bp.post("/clear-cart")
@requires(Capability.MANAGE_CART)
def clear_cart():
    cart_service.clear(current_user.id)
    return jsonify({"success": True, "message": "Cart cleared"})


@functions_bp.post("/add-collection-to-cart")
@requires(Capability.MANAGE_CART)
def add_collection_to_cart():
    data = json_body()
    collection_id = positive_int(data.get("collectionId"))
    quantity = _whole_number(data.get("quantity", 1))
    if collection_id is None or quantity is None or quantity <= 0:
        raise ValidationError("collectionId and positive quantity required")
    cart = cart_service.add_collection(current_user.id, collection_id, quantity)
    return jsonify(cart_service.cart_payload(cart))
