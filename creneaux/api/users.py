"""User endpoints: directory for teachers, management for administrators."""
from __future__ import annotations

from typing import Any

from flask import current_app
from flask_restx import Namespace, Resource, fields
from sqlalchemy import func, select

from ..auth import current_user, login_required, role_required
from ..domain import ROLE_ADMIN, ROLE_TEACHER, ROLES
from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import Reservation, User
from .params import get_or_404, json_payload


ns = Namespace("users", description="Teachers and administrators")

user_model = ns.model(
    "User",
    {
        "id": fields.String(readonly=True),
        "first_name": fields.String(required=True),
        "last_name": fields.String(required=True),
        "email": fields.String(required=True),
        "role": fields.String(enum=list(ROLES), default=ROLE_TEACHER),
        "full_name": fields.String(readonly=True),
    },
)


def serialize_user(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
        "role": user.role,
        "full_name": user.full_name,
    }


def _user_fields(payload: dict[str, Any], *, partial: bool = False) -> dict[str, Any]:
    values: dict[str, Any] = {}
    errors: list[dict[str, str]] = []
    for name, limit in (("first_name", 50), ("last_name", 50), ("email", 255)):
        if name not in payload and partial:
            continue
        value = (payload.get(name) or "").strip()
        if not value:
            errors.append({"field": name, "message": "Ce champ est obligatoire"})
        elif len(value) > limit:
            errors.append({"field": name, "message": f"{limit} caractères maximum"})
        else:
            values[name] = value
    if "email" in values and "@" not in values["email"]:
        errors.append({"field": "email", "message": "Adresse email invalide"})
        values.pop("email")
    if "role" in payload or not partial:
        role = payload.get("role") or ROLE_TEACHER
        if role not in ROLES:
            errors.append(
                {"field": "role", "message": f"Le rôle doit être {ROLE_TEACHER} ou {ROLE_ADMIN}"}
            )
        else:
            values["role"] = role
    if errors:
        raise ValidationError(errors)
    return values


def _ensure_email_available(email: str, user_id: str | None = None) -> None:
    statement = select(User.id).where(func.lower(User.email) == email.lower())
    existing = db.session.scalar(statement)
    if existing is not None and existing != user_id:
        raise ConflictError("Un utilisateur utilise déjà cette adresse email", field="email")


@ns.route("")
class UserList(Resource):
    @ns.marshal_list_with(user_model)
    @login_required
    def get(self) -> list[dict[str, Any]]:
        users = db.session.scalars(select(User).order_by(User.last_name, User.first_name)).all()
        return [serialize_user(user) for user in users]

    @ns.expect(user_model)
    @ns.marshal_with(user_model, code=201)
    @role_required(ROLE_ADMIN)
    def post(self) -> tuple[dict[str, Any], int]:
        values = _user_fields(json_payload())
        _ensure_email_available(values["email"])
        user = User(**values)
        db.session.add(user)
        db.session.commit()
        current_app.logger.info("User %s created with role %s", user.email, user.role)
        return serialize_user(user), 201


@ns.route("/me")
class CurrentUser(Resource):
    @ns.marshal_with(user_model)
    @login_required
    def get(self) -> dict[str, Any]:
        return serialize_user(current_user())


@ns.route("/<string:user_id>")
class UserResource(Resource):
    @ns.marshal_with(user_model)
    @login_required
    def get(self, user_id: str) -> dict[str, Any]:
        user = get_or_404(User, user_id, "Utilisateur", "Utilisateur non trouvé")
        return serialize_user(user)

    @ns.expect(user_model)
    @ns.marshal_with(user_model)
    @role_required(ROLE_ADMIN)
    def put(self, user_id: str) -> dict[str, Any]:
        user = get_or_404(User, user_id, "Utilisateur", "Utilisateur non trouvé")
        values = _user_fields(json_payload(), partial=True)
        if "email" in values:
            _ensure_email_available(values["email"], user.id)
        for name, value in values.items():
            setattr(user, name, value)
        db.session.commit()
        return serialize_user(user)

    @role_required(ROLE_ADMIN)
    def delete(self, user_id: str) -> tuple[str, int]:
        user = get_or_404(User, user_id, "Utilisateur", "Utilisateur non trouvé")
        if user.id == current_user().id:
            raise ConflictError("Impossible de supprimer son propre compte")
        owned = db.session.scalar(
            select(func.count(Reservation.id)).where(Reservation.user_id == user.id)
        )
        if owned:
            raise ConflictError(
                "Impossible de supprimer un utilisateur ayant des réservations",
                reservations=owned,
            )
        db.session.delete(user)
        db.session.commit()
        current_app.logger.info("User %s deleted", user.email)
        return "", 204
