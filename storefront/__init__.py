# storefront/__init__.py
import logging
import uuid
from pathlib import Path

from dotenv import find_dotenv, load_dotenv
from flask import Flask, g, request, send_from_directory
from flask_login import current_user

from storefront.errors import AuthError, register_error_handlers
from storefront.extensions import db, login_manager, mail, migrate

load_dotenv(find_dotenv(), override=False)  # picks up your .env locally


def create_app(config_object: str = "config.Config"):
    app = Flask(__name__, instance_relative_config=True)
    Path(app.instance_path).mkdir(parents=True, exist_ok=True)

    # 1) Base config object (config.py at project root)
    app.config.from_object(config_object)

    # 2) Instance overrides (instance/config.py) – safe if missing
    app.config.from_pyfile("config.py", silent=True)

    # 3) Environment overrides (e.g., FLASK_SQLALCHEMY_DATABASE_URI)
    app.config.from_prefixed_env()

    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise RuntimeError("DATABASE_URL is not set; refusing to start without a database")

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # 4) Init extensions AFTER config
    db.init_app(app)
    mail.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id: str):
        from storefront.models.auth import User
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @login_manager.request_loader
    def load_user_from_header(req):
        from storefront.auth.tokens import bearer_token, load_access_token
        from storefront.models.auth import User
        uid = load_access_token(bearer_token(req.headers.get("Authorization")))
        if uid is None:
            return None
        user = db.session.get(User, uid)
        if user is None or not user.is_active:
            return None
        return user

    @login_manager.unauthorized_handler
    def _unauthorized():
        raise AuthError("Authentication required")

    register_error_handlers(app)

    @app.before_request
    def _trace_in():
        g.reqid = str(uuid.uuid4())[:8]
        if request.method == "OPTIONS":
            user_id = None
        else:
            user_id = current_user.get_id() if current_user.is_authenticated else None
        app.logger.info(
            "[%s] → %s %s ep=%s args=%s user_id=%s",
            g.reqid, request.method, request.path, request.endpoint,
            dict(request.args), user_id,
        )

    @app.after_request
    def _trace_out(resp):
        rid = getattr(g, "reqid", "????")
        app.logger.info("[%s] ← %s", rid, resp.status)
        return resp

    @app.route("/healthz")
    def healthz():
        return "ok", 200

    @app.route("/uploads/products/<path:filename>")
    def product_upload(filename):
        return send_from_directory(app.config["PRODUCT_UPLOAD_DIR"], filename)

    # 5) Blueprints
    from storefront.auth import auth_bp
    from storefront.functions import functions_bp
    from storefront.ledger import ledger_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(ledger_bp)
    app.register_blueprint(functions_bp)

    from storefront.cli import register_cli
    register_cli(app)

    # 6) Create tables + default admin
    if app.config.get("AUTO_CREATE_TABLES"):
        with app.app_context():
            import storefront.models  # noqa: F401  (register every table)
            db.create_all()

    email = (app.config.get("DEFAULT_ADMIN_EMAIL") or "").strip().lower()
    if email:
        with app.app_context():
            _ensure_default_admin(app, email)

    return app


def _ensure_default_admin(app, email: str) -> None:
    from sqlalchemy.exc import SQLAlchemyError

    from storefront.models.auth import Role, User
    try:
        if User.query.filter_by(email=email).first():
            return
        u = User(name="Admin", email=email, role=Role.ADMIN.value)
        u.set_password(app.config.get("DEFAULT_ADMIN_PASSWORD") or uuid.uuid4().hex)
        db.session.add(u)
        db.session.commit()
        app.logger.info("seeded default admin %s", email)
    except SQLAlchemyError:
        # tables may not exist yet (fresh database before `flask db upgrade`)
        db.session.rollback()
        app.logger.warning("default admin not seeded; database not ready")
