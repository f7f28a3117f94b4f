from flask import Blueprint

# 1) Define the ONE blueprint object
auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api/v1/auth")

# 2) Now import routes so decorators attach to THIS auth_bp
from . import routes  # noqa: E402
