# storefront/auth/routes.py
from __future__ import annotations

import time

from flask import current_app, jsonify
from flask_login import current_user, login_required

from storefront.errors import AuthError, ConflictError, ValidationError
from storefront.extensions import db
from storefront.models.auth import Role, User
from storefront.utils.http import json_body

from . import auth_bp
from .tokens import make_access_token


def _norm_email(email) -> str | None:
    e = email.strip() if isinstance(email, str) else None
    return e.lower() if e else None


@auth_bp.post("/register")
def register():
    data = json_body()
    email = _norm_email(data.get("email"))
    password = data.get("password")
    if not email or not password:
        raise ValidationError("Please provide email and password")

    if User.query.filter_by(email=email).first():
        raise ConflictError("User already registered with this email")

    name = (data.get("name") or "").strip() or f"User_{int(time.time() * 1000)}"
    user = User(name=name, email=email, role=Role.USER.value)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("registered user id=%s email=%s", user.id, email)

    return jsonify({
        "success": True,
        "message": "User registered successfully",
        "token": make_access_token(user),
        "user": user.to_dict(),
    }), 201


@auth_bp.post("/login")
def login():
    data = json_body()
    email = _norm_email(data.get("email"))
    password = data.get("password")
    if not email or not password:
        raise ValidationError("Please provide email and password")

    user = User.query.filter_by(email=email).first()
    # same message either way so the endpoint doesn't reveal which emails exist
    if not user or not user.is_active or not user.check_password(password):
        current_app.logger.warning("login failed for %s", email)
        raise AuthError("Invalid credentials")

    return jsonify({
        "success": True,
        "message": "Login successful",
        "token": make_access_token(user),
        "user": user.to_dict(),
    })


@auth_bp.get("/me")
@login_required
def me():
    return jsonify({"success": True, "user": current_user.to_dict()})
