from flask import Blueprint, request

from .cors import apply_cors

functions_bp = Blueprint("functions_bp", __name__, url_prefix="/functions/v1")


@functions_bp.before_request
def _preflight():
    # answer pre-flight before any auth runs
    if request.method == "OPTIONS":
        return "ok", 200


functions_bp.after_request(apply_cors)

from . import admin, cart, catalog, orders, wishlist  # noqa: E402,F401
