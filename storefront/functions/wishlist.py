# storefront/functions/wishlist.py
from flask import current_app, jsonify
from flask_login import current_user
from sqlalchemy.exc import IntegrityError

from storefront.auth.capabilities import Capability, requires
from storefront.errors import NotFoundError, ValidationError
from storefront.extensions import db
from storefront.models.catalog import Product
from storefront.models.wishlist import WishlistItem
from storefront.utils.http import json_body, positive_int

from . import functions_bp


def _product_id_from_body() -> int:
    pid = positive_int(json_body().get("product_id"))
    if pid is None:
        raise ValidationError("Missing product_id")
    return pid


@functions_bp.get("/get-wishlist")
@requires(Capability.MANAGE_WISHLIST)
def get_wishlist():
    items = (
        WishlistItem.query.filter_by(user_id=current_user.id)
        .order_by(WishlistItem.created_at.desc(), WishlistItem.id.desc())
        .all()
    )
    return jsonify({"wishlist": [i.to_dict() for i in items]})


@functions_bp.post("/add-to-wishlist")
@requires(Capability.MANAGE_WISHLIST)
def add_to_wishlist():
    pid = _product_id_from_body()
    if db.session.get(Product, pid) is None:
        raise NotFoundError("Product not found")

    existing = WishlistItem.query.filter_by(user_id=current_user.id, product_id=pid).first()
    if existing:
        return jsonify({"success": True, "message": "Item already in wishlist"})

    item = WishlistItem(user_id=current_user.id, product_id=pid)
    db.session.add(item)
    try:
        db.session.commit()
    except IntegrityError:
        # concurrent add of the same product
        db.session.rollback()
        return jsonify({"success": True, "message": "Item already in wishlist"})

    current_app.logger.info("wishlist: user %s added product %s", current_user.id, pid)
    return jsonify({"success": True, "item": item.to_dict()}), 201


@functions_bp.post("/remove-from-wishlist")
@requires(Capability.MANAGE_WISHLIST)
def remove_from_wishlist():
    pid = _product_id_from_body()
    n = WishlistItem.query.filter_by(user_id=current_user.id, product_id=pid).delete()
    if not n:
        raise NotFoundError("Item not in wishlist")
    db.session.commit()
    return jsonify({"success": True})
