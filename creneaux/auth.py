"""Identity forwarded by the upstream authentication service."""
from __future__ import annotations

from functools import wraps

from flask import current_app, request
from flask_restx import abort

from .extensions import db
from .models import User


def current_user() -> User | None:
    user_id = (request.headers.get(current_app.config["USER_HEADER"]) or "").strip()
    if not user_id:
        return None
    return db.session.get(User, user_id)


def login_required(fn):
    @wraps(fn)
    def decorated(*args, **kwargs):
        if current_user() is None:
            abort(401, "Authentification requise")
        return fn(*args, **kwargs)

    return decorated


def role_required(*roles):
    def wrapper(fn):
        @wraps(fn)
        def decorated(*args, **kwargs):
            user = current_user()
            if user is None:
                abort(401, "Authentification requise")
            if user.role not in roles:
                current_app.logger.warning(
                    "User %s (%s) denied access to %s", user.id, user.role, request.path
                )
                abort(403, "Accès refusé")
            return fn(*args, **kwargs)

        return decorated

    return wrapper
