# storefront/utils/http.py
from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation

from flask import request

from storefront.errors import ValidationError


def json_body() -> dict:
    """Request JSON as a dict; anything else is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        if not request.data:
            return {}
        raise ValidationError("Invalid JSON")
    if not isinstance(data, dict):
        raise ValidationError("JSON body must be an object")
    return data


def form_or_json() -> dict:
    # multipart uploads carry their fields in request.form
    if request.files or request.form:
        return request.form.to_dict()
    return json_body()


def positive_int(value) -> int | None:
    """Coerce ids that may arrive as strings or numbers; None when invalid."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        n = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


def finite_number(value) -> Decimal | None:
    """A JSON number (not bool, not NaN/inf) as Decimal; None otherwise."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return Decimal(str(value))


def decimal_field(value) -> Decimal | None:
    """Like finite_number but also accepts numeric strings (form posts)."""
    if isinstance(value, str):
        try:
            d = Decimal(value.strip())
        except InvalidOperation:
            return None
        return d if d.is_finite() else None
    return finite_number(value)


def page_args(default_limit: int = 10, max_limit: int = 100) -> tuple[int, int, int]:
    """(page, limit, offset) from ?page=&limit= with sane floors."""
    page = request.args.get("page", 1, type=int) or 1
    limit = request.args.get("limit", default_limit, type=int) or default_limit
    page = max(page, 1)
    limit = min(max(limit, 1), max_limit)
    return page, limit, (page - 1) * limit


def total_pages(count: int, limit: int) -> int:
    return math.ceil((count or 0) / limit) if limit else 0
