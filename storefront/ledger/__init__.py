from flask import Blueprint

ledger_bp = Blueprint("ledger_bp", __name__, url_prefix="/api/v1")

from . import routes  # noqa: E402
