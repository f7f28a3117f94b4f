# storefront/functions/catalog.py
import math

from flask import current_app, jsonify, request

from storefront.errors import NotFoundError, ValidationError
from storefront.models.catalog import Category, Collection, Product
from storefront.utils.http import page_args, positive_int, total_pages

from . import functions_bp

_PRODUCT_SORTS = {
    "name": Product.name,
    "price": Product.price,
    "createdAt": Product.created_at,
}
_COLLECTION_SORTS = {
    "name": Collection.name,
    "price": Collection.price,
    "createdAt": Collection.created_at,
}


def _float_arg(name):
    raw = request.args.get(name)
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _ordering(columns: dict, default: str):
    col = columns.get(request.args.get("sortBy") or default, columns[default])
    if (request.args.get("sortOrder") or "asc").lower() == "desc":
        return col.desc()
    return col.asc()


def _price_filtered(query, column):
    lo, hi = _float_arg("price_gte"), _float_arg("price_lte")
    if lo is not None:
        query = query.filter(column >= lo)
    if hi is not None:
        query = query.filter(column <= hi)
    return query


@functions_bp.get("/get-public-products")
def get_public_products():
    page, limit, offset = page_args(default_limit=12)

    q = Product.query.filter(Product.is_active.is_(True))

    slug = request.args.get("category")
    if slug:
        cat = Category.query.filter_by(slug=slug).first()
        if not cat:
            current_app.logger.warning("category slug %r not found, returning empty page", slug)
            return jsonify({"success": True, "data": [], "count": 0, "currentPage": page, "totalPages": 0})
        q = q.filter(Product.category_id == cat.id)

    term = (request.args.get("search") or "").strip()
    if term:
        q = q.filter(Product.name.ilike(f"%{term}%"))
    q = _price_filtered(q, Product.price)

    count = q.order_by(None).count()
    rows = q.order_by(_ordering(_PRODUCT_SORTS, "name"), Product.id.asc()).offset(offset).limit(limit).all()
    return jsonify({
        "success": True,
        "data": [p.to_dict() for p in rows],
        "count": count,
        "currentPage": page,
        "totalPages": total_pages(count, limit),
    })


@functions_bp.get("/get-public-product-detail")
def get_public_product_detail():
    slug = (request.args.get("slug") or "").strip()
    pid = positive_int(request.args.get("id"))
    if not slug and pid is None:
        raise ValidationError("Missing product identifier (slug or ID)")

    q = Product.query.filter(Product.is_active.is_(True))
    product = q.filter_by(slug=slug).first() if slug else q.filter_by(id=pid).first()
    if not product:
        raise NotFoundError("Product not found")
    return jsonify({"success": True, "data": product.to_dict()})


@functions_bp.get("/get-public-categories")
def get_public_categories():
    cats = Category.query.order_by(Category.name.asc()).all()
    return jsonify({"success": True, "data": [c.to_dict() for c in cats]})


@functions_bp.get("/get-public-collections")
def get_public_collections():
    page, limit, offset = page_args(default_limit=12)

    q = Collection.query.filter(Collection.status == "active")
    term = (request.args.get("search") or "").strip()
    if term:
        q = q.filter(Collection.name.ilike(f"%{term}%"))
    q = _price_filtered(q, Collection.price)

    count = q.order_by(None).count()
    rows = q.order_by(_ordering(_COLLECTION_SORTS, "createdAt"), Collection.id.asc()).offset(offset).limit(limit).all()
    return jsonify({
        "success": True,
        "data": [c.to_dict() for c in rows],
        "count": count,
        "currentPage": page,
        "totalPages": total_pages(count, limit),
    })
