# storefront/auth/capabilities.py
from __future__ import annotations

import enum
from functools import wraps

from flask import g
from flask_login import current_user

from storefront.errors import AuthError, ForbiddenError
from storefront.models.auth import Role


class Capability(str, enum.Enum):
    MANAGE_LEDGER = "manage_ledger"
    MANAGE_CART = "manage_cart"
    MANAGE_WISHLIST = "manage_wishlist"
    PLACE_ORDERS = "place_orders"
    VIEW_ANY_ORDER = "view_any_order"
    MANAGE_ORDERS = "manage_orders"
    MANAGE_CATALOG = "manage_catalog"
    MANAGE_USERS = "manage_users"
    SEND_NOTIFICATIONS = "send_notifications"


_SHOPPER = frozenset({
    Capability.MANAGE_LEDGER,
    Capability.MANAGE_CART,
    Capability.MANAGE_WISHLIST,
    Capability.PLACE_ORDERS,
})

ROLE_CAPABILITIES: dict[Role, frozenset] = {
    Role.USER: _SHOPPER,
    Role.SELLER: _SHOPPER | {Capability.SEND_NOTIFICATIONS},
    Role.ADMIN: frozenset(Capability),
}


def current_role() -> Role | None:
    """
    Resolve the caller's role once per request and keep it on `g`.
    Anonymous callers have no role.
    """
    if "role" in g:
        return g.role
    role = None
    if getattr(current_user, "is_authenticated", False):
        role = Role.parse(getattr(current_user, "role", None))
    g.role = role
    return role


def has_capability(cap: Capability) -> bool:
    role = current_role()
    if role is None:
        return False
    return cap in ROLE_CAPABILITIES.get(role, frozenset())


def requires(*caps: Capability):
    """View decorator: 401 when anonymous, 403 when a capability is missing."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if current_role() is None:
                raise AuthError("Authentication required")
            missing = [c.value for c in caps if not has_capability(c)]
            if missing:
                raise ForbiddenError(f"Forbidden: role '{g.role.value}' lacks {', '.join(missing)}")
            return fn(*args, **kwargs)
        return wrapper
    return decorator
