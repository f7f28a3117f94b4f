# storefront/functions/orders.py
from flask import jsonify, request
from flask_login import current_user

from storefront.auth.capabilities import Capability, has_capability, requires
from storefront.errors import NotFoundError, ValidationError
from storefront.extensions import db
from storefront.models.order import Order
from storefront.services import notifications
from storefront.services.orders import place_order
from storefront.utils.http import json_body

from . import functions_bp


@functions_bp.post("/create-order")
@requires(Capability.PLACE_ORDERS)
def create_order():
    data = json_body()
    order = place_order(current_user, data.get("shippingAddress"), data.get("totalAmount"))

    notifications.send_order_confirmation(order)
    notifications.notify_new_order(order)

    return jsonify({"success": True, "order": order.to_dict()}), 201


@functions_bp.get("/get-my-orders")
@requires(Capability.PLACE_ORDERS)
def get_my_orders():
    orders = (
        Order.query.filter_by(user_id=current_user.id)
        .order_by(Order.created_at.desc())
        .all()
    )
    return jsonify({"success": True, "data": [o.to_dict() for o in orders]})


@functions_bp.get("/get-order-detail")
@requires(Capability.PLACE_ORDERS)
def get_order_detail():
    order_id = (request.args.get("id") or "").strip()
    if not order_id:
        raise ValidationError("Missing order ID")

    order = db.session.get(Order, order_id)
    # someone else's order looks exactly like a missing one
    if order is None or (order.user_id != current_user.id and not has_capability(Capability.VIEW_ANY_ORDER)):
        raise NotFoundError("Order not found")
    return jsonify({"success": True, "data": order.to_dict()})
