# storefront/functions/admin.py
from __future__ import annotations

from flask import current_app, jsonify, request
from flask_login import current_user
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from storefront.auth.capabilities import Capability, requires
from storefront.errors import ConflictError, NotFoundError, ValidationError
from storefront.extensions import db
from storefront.models.auth import AdminPushToken, Role, User
from storefront.models.cart import CartItem
from storefront.models.catalog import Category, Product, collection_items
from storefront.models.order import Order, OrderItem
from storefront.models.wishlist import WishlistItem
from storefront.services import notifications, storage
from storefront.services.orders import set_status
from storefront.utils.http import decimal_field, form_or_json, json_body, page_args, positive_int, total_pages
from storefront.utils.slugs import generate_slug

from . import functions_bp


# ---- users ------------------------------------------------------------------

@functions_bp.get("/admin-get-users")
@requires(Capability.MANAGE_USERS)
def admin_get_users():
    page, limit, offset = page_args()
    q = User.query
    term = (request.args.get("search") or "").strip()
    if term:
        like = f"%{term}%"
        q = q.filter(or_(User.name.ilike(like), User.email.ilike(like)))
    role = (request.args.get("role") or "").strip().upper()
    if role:
        if role not in {r.value for r in Role}:
            raise ValidationError(f"Unknown role: {role}")
        q = q.filter(User.role == role)

    total = q.count()
    rows = q.order_by(User.name.asc(), User.id.asc()).offset(offset).limit(limit).all()
    users = [
        {
            "id": u.id,
            "profile": {"full_name": u.name},
            "email": u.email,
            "role": u.role,
            "created_at": u.created_at.isoformat() if u.created_at else None,
        }
        for u in rows
    ]
    return jsonify({"users": users, "totalPages": total_pages(total, limit), "totalUsers": total})


# ---- orders -----------------------------------------------------------------

@functions_bp.get("/get-admin-orders")
@requires(Capability.MANAGE_ORDERS)
def get_admin_orders():
    page, limit, offset = page_args()
    q = Order.query
    term = (request.args.get("search") or "").strip()
    if term:
        q = q.filter(Order.id.ilike(f"%{term}%"))
    status = (request.args.get("status") or "").strip().upper()
    if status:
        q = q.filter(Order.status == status)

    total = q.count()
    rows = q.order_by(Order.created_at.desc()).offset(offset).limit(limit).all()
    return jsonify({
        "success": True,
        "data": {
            "orders": [o.to_dict(with_items=False) for o in rows],
            "totalPages": total_pages(total, limit),
            "totalOrders": total,
            "currentPage": page,
        },
    })


@functions_bp.post("/update-admin-order-status")
@requires(Capability.MANAGE_ORDERS)
def update_admin_order_status():
    data = json_body()
    order_id = str(data.get("orderId") or "").strip()
    if not order_id:
        raise ValidationError("orderId is required")
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    set_status(order, data.get("status"))
    return jsonify({"success": True, "data": order.to_dict()})


# ---- products ---------------------------------------------------------------

def _stock_value(raw):
    if isinstance(raw, bool):
        return None
    try:
        n = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return n if n >= 0 else None


def _truthy(raw) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _category_id(raw):
    if raw in (None, ""):
        return None
    cid = positive_int(raw)
    if cid is None or db.session.get(Category, cid) is None:
        raise ValidationError("Invalid categoryId")
    return cid


def _unique_product_slug(name: str, exclude_id: int | None = None) -> str:
    slug = generate_slug(name)
    if not slug:
        raise ValidationError("Product name must contain letters or digits")
    clash = Product.query.filter(Product.slug == slug)
    if exclude_id is not None:
        clash = clash.filter(Product.id != exclude_id)
    if clash.first():
        raise ConflictError(f'A product with the slug "{slug}" already exists.')
    return slug


def _image_list(raw) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return [raw] if raw.strip() else []
    if isinstance(raw, list):
        return [str(x) for x in raw if x]
    raise ValidationError("images must be a list of URLs")


@functions_bp.get("/get-admin-products")
@requires(Capability.MANAGE_CATALOG)
def get_admin_products():
    page, limit, offset = page_args()
    q = Product.query
    term = (request.args.get("search") or "").strip()
    if term:
        q = q.filter(Product.name.ilike(f"%{term}%"))
    total = q.count()
    rows = q.order_by(Product.created_at.desc(), Product.id.desc()).offset(offset).limit(limit).all()
    return jsonify({
        "success": True,
        "data": [p.to_dict() for p in rows],
        "count": total,
        "currentPage": page,
        "totalPages": total_pages(total, limit),
    })


@functions_bp.post("/create-admin-product")
@requires(Capability.MANAGE_CATALOG)
def create_admin_product():
    data = form_or_json()
    name = str(data.get("name") or "").strip()
    description = data.get("description")
    price = decimal_field(data.get("price"))
    stock = _stock_value(data.get("stockQuantity"))
    if not name or description is None or data.get("price") is None or data.get("stockQuantity") is None:
        raise ValidationError("name, description, price and stockQuantity are required")
    if price is None or price < 0:
        raise ValidationError("price must be a non-negative number")
    if stock is None:
        raise ValidationError("stockQuantity must be a non-negative integer")
    discount = decimal_field(data.get("discount", 0))
    if discount is None or not (0 <= discount <= 100):
        raise ValidationError("discount must be a percentage between 0 and 100")

    slug = _unique_product_slug(name)
    category_id = _category_id(data.get("categoryId"))
    images = _image_list(data.get("images")) if not request.files else []

    uploaded = storage.store_images(request.files.getlist("images"))
    try:
        product = Product(
            name=name,
            slug=slug,
            description=str(description),
            price=price,
            discount=discount,
            stock_quantity=stock,
            images=images + uploaded,
            category_id=category_id,
            seller_id=current_user.id,
            is_active=_truthy(data.get("isActive", True)),
        )
        db.session.add(product)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        storage.remove_stored(uploaded)
        raise ConflictError(f'A product with the slug "{slug}" already exists.')
    except Exception:
        db.session.rollback()
        storage.remove_stored(uploaded)
        raise

    current_app.logger.info("product %s (%s) created by %s", product.id, slug, current_user.id)
    return jsonify({"success": True, "data": product.to_dict()}), 201


@functions_bp.post("/update-admin-product")
@requires(Capability.MANAGE_CATALOG)
def update_admin_product():
    data = form_or_json()
    pid = positive_int(data.get("id"))
    if pid is None:
        raise ValidationError("Product id is required")
    product = db.session.get(Product, pid)
    if product is None:
        raise NotFoundError("Product not found")

    if "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("name cannot be empty")
        if name != product.name:
            product.slug = _unique_product_slug(name, exclude_id=product.id)
        product.name = name
    if "description" in data:
        product.description = str(data.get("description") or "")
    if "price" in data:
        price = decimal_field(data.get("price"))
        if price is None or price < 0:
            raise ValidationError("price must be a non-negative number")
        product.price = price
    if "discount" in data:
        discount = decimal_field(data.get("discount"))
        if discount is None or not (0 <= discount <= 100):
            raise ValidationError("discount must be a percentage between 0 and 100")
        product.discount = discount
    if "stockQuantity" in data:
        stock = _stock_value(data.get("stockQuantity"))
        if stock is None:
            raise ValidationError("stockQuantity must be a non-negative integer")
        product.stock_quantity = stock
    if "categoryId" in data:
        product.category_id = _category_id(data.get("categoryId"))
    if "isActive" in data:
        product.is_active = _truthy(data.get("isActive"))

    previous = list(product.images or [])
    kept = _image_list(data.get("images")) if "images" in data and not request.files else previous

    uploaded = storage.store_images(request.files.getlist("images"))
    try:
        product.images = kept + uploaded
        db.session.commit()
    except Exception:
        db.session.rollback()
        storage.remove_stored(uploaded)
        raise

    dropped = [p for p in previous if p not in kept]
    storage.remove_stored(dropped)
    current_app.logger.info("product %s updated (+%s images, -%s images)", pid, len(uploaded), len(dropped))
    return jsonify({"success": True, "data": product.to_dict()})


@functions_bp.post("/delete-admin-product")
@requires(Capability.MANAGE_CATALOG)
def delete_admin_product():
    pid = positive_int(json_body().get("id"))
    if pid is None:
        raise ValidationError("Product id is required")
    product = db.session.get(Product, pid)
    if product is None:
        raise NotFoundError("Product not found")
    if OrderItem.query.filter_by(product_id=pid).first():
        raise ConflictError("Product appears in orders; set isActive to false instead")

    images = list(product.images or [])
    try:
        CartItem.query.filter_by(product_id=pid).delete(synchronize_session="fetch")
        WishlistItem.query.filter_by(product_id=pid).delete(synchronize_session="fetch")
        db.session.execute(collection_items.delete().where(collection_items.c.product_id == pid))
        db.session.delete(product)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    storage.remove_stored(images)
    current_app.logger.info("product %s deleted by %s", pid, current_user.id)
    return jsonify({"success": True})


# ---- categories -------------------------------------------------------------

@functions_bp.post("/create-admin-category")
@requires(Capability.MANAGE_CATALOG)
def create_admin_category():
    data = json_body()
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Invalid category name provided.")
    name = name.strip()
    slug = generate_slug(name)
    if not slug:
        raise ValidationError("Invalid category name provided.")
    if Category.query.filter_by(slug=slug).first():
        raise ConflictError(f'A category with the name "{name}" already exists.')

    cat = Category(name=name, slug=slug, description=data.get("description"))
    db.session.add(cat)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f'A category with the name "{name}" already exists.')
    return jsonify({"success": True, "data": cat.to_dict()}), 201


# ---- notifications ----------------------------------------------------------

@functions_bp.post("/register-admin-push-token")
@requires(Capability.MANAGE_ORDERS)
def register_admin_push_token():
    token = str(json_body().get("token") or "").strip()
    if not token:
        raise ValidationError("token is required")
    row = AdminPushToken.query.filter_by(token=token).first()
    if row is None:
        db.session.add(AdminPushToken(token=token, user_id=current_user.id))
    else:
        row.user_id = current_user.id
    db.session.commit()
    return jsonify({"success": True})


@functions_bp.post("/send-admin-notification")
@requires(Capability.SEND_NOTIFICATIONS)
def send_admin_notification():
    data = json_body()
    title = str(data.get("title") or "").strip()
    if not title:
        raise ValidationError("title is required")
    payload = data.get("data")
    if payload is not None and not isinstance(payload, dict):
        raise ValidationError("data must be an object")

    note, delivered = notifications.notify_admins(
        str(data.get("type") or "general"), title, str(data.get("body") or ""), payload
    )
    return jsonify({"success": True, "delivered": delivered, "notification": note.to_dict()})
