"""Track (filière) endpoints."""
from __future__ import annotations

from typing import Any

from flask import current_app
from flask_restx import Namespace, Resource, fields
from sqlalchemy import func, select

from ..auth import login_required, role_required
from ..domain import ROLE_ADMIN
from ..errors import ConflictError, MissingField, ValidationError
from ..extensions import db
from ..models import Filiere, Reservation
from .params import get_or_404, json_payload


ns = Namespace("filieres", description="Training tracks sharing the slot catalog")

filiere_model = ns.model(
    "Filiere",
    {
        "id": fields.String(readonly=True),
        "name": fields.String(required=True),
    },
)


def serialize_filiere(filiere: Filiere) -> dict[str, Any]:
    return {"id": filiere.id, "name": filiere.name}


@ns.route("")
class FiliereList(Resource):
    @ns.marshal_list_with(filiere_model)
    @login_required
    def get(self) -> list[dict[str, Any]]:
        filieres = db.session.scalars(select(Filiere).order_by(Filiere.name)).all()
        return [serialize_filiere(filiere) for filiere in filieres]

    @ns.expect(filiere_model)
    @ns.marshal_with(filiere_model, code=201)
    @role_required(ROLE_ADMIN)
    def post(self) -> tuple[dict[str, Any], int]:
        name = (json_payload().get("name") or "").strip()
        if not name:
            raise MissingField("name", "Le nom de la filière est requis")
        if len(name) > 100:
            raise ValidationError([{"field": "name", "message": "100 caractères maximum"}])
        duplicate = db.session.scalar(
            select(Filiere.id).where(func.lower(Filiere.name) == name.lower())
        )
        if duplicate is not None:
            raise ConflictError("Cette filière existe déjà", field="name")
        filiere = Filiere(name=name)
        db.session.add(filiere)
        db.session.commit()
        current_app.logger.info("Filiere %s created", filiere.name)
        return serialize_filiere(filiere), 201


@ns.route("/<string:filiere_id>")
class FiliereResource(Resource):
    @ns.marshal_with(filiere_model)
    @login_required
    def get(self, filiere_id: str) -> dict[str, Any]:
        return serialize_filiere(
            get_or_404(Filiere, filiere_id, "Filière", "Filière non trouvée")
        )

    @role_required(ROLE_ADMIN)
    def delete(self, filiere_id: str) -> tuple[str, int]:
        filiere = get_or_404(Filiere, filiere_id, "Filière", "Filière non trouvée")
        booked = db.session.scalar(
            select(func.count(Reservation.id)).where(Reservation.filiere_id == filiere.id)
        )
        if booked:
            raise ConflictError(
                "Impossible de supprimer une filière ayant des réservations",
                reservations=booked,
            )
        db.session.delete(filiere)
        db.session.commit()
        current_app.logger.info("Filiere %s deleted", filiere.name)
        return "", 204
