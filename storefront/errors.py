# storefront/errors.py
from __future__ import annotations

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from storefront.extensions import db


class ApiError(Exception):
    """An error the client can act on; carries its own HTTP status."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    @property
    def status(self) -> str:
        # 'fail' for client errors, 'error' for server errors
        return "fail" if 400 <= self.status_code < 500 else "error"


class ValidationError(ApiError):
    status_code = 400


class AuthError(ApiError):
    status_code = 401


class ForbiddenError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    status_code = 409


def _payload(message: str, status: int):
    body = {"success": False, "message": message, "error": message}
    return jsonify(body), status


def register_error_handlers(app) -> None:
    @app.errorhandler(ApiError)
    def _api_error(err: ApiError):
        if err.status_code >= 500:
            db.session.rollback()
        app.logger.warning("api error %s: %s", err.status_code, err.message)
        return _payload(err.message, err.status_code)

    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        return _payload(err.description or err.name, err.code or 500)

    @app.errorhandler(Exception)
    def _unhandled(err: Exception):
        db.session.rollback()
        current_app.logger.exception("unhandled error: %s", err)
        if current_app.config.get("APP_ENV") == "development":
            return _payload(str(err), 500)
        return _payload("Something went wrong", 500)
