"""Slot catalog endpoints, including creation of the standard weekly grid."""
from __future__ import annotations

from datetime import time
from typing import Any

from flask import current_app
from flask_restx import Namespace, Resource, fields
from sqlalchemy import func, select

from ..auth import login_required, role_required
from ..domain import ROLE_ADMIN
from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import Reservation, Slot
from ..seed import ensure_standard_slots
from ..utils import WEEKDAYS, format_time, parse_time, weekday_index
from .params import get_or_404, json_payload


ns = Namespace("slots", description="Recurring weekly slots")

slot_model = ns.model(
    "Slot",
    {
        "id": fields.String(readonly=True),
        "weekday": fields.String(required=True, enum=list(WEEKDAYS)),
        "start_time": fields.String(required=True, description="HH:MM"),
        "end_time": fields.String(required=True, description="HH:MM"),
    },
)

standard_response = ns.model(
    "StandardSlots",
    {
        "created": fields.Integer,
        "slots": fields.List(fields.Nested(slot_model)),
    },
)


def serialize_slot(slot: Slot) -> dict[str, Any]:
    return {
        "id": slot.id,
        "weekday": slot.weekday,
        "start_time": format_time(slot.start_time),
        "end_time": format_time(slot.end_time),
    }


def ordered_slots() -> list[Slot]:
    slots = db.session.scalars(select(Slot)).all()
    return sorted(slots, key=lambda slot: (weekday_index(slot.weekday), slot.start_time))


def _find_slot(weekday: str, start: time, end: time) -> Slot | None:
    return db.session.scalar(
        select(Slot).where(
            Slot.weekday == weekday, Slot.start_time == start, Slot.end_time == end
        )
    )


def _slot_fields(payload: dict[str, Any]) -> tuple[str, time, time]:
    errors: list[dict[str, str]] = []
    weekday = payload.get("weekday")
    if weekday not in WEEKDAYS:
        errors.append(
            {"field": "weekday", "message": "Le jour doit être compris entre Lundi et Vendredi"}
        )
    parsed: dict[str, time] = {}
    for name in ("start_time", "end_time"):
        try:
            parsed[name] = parse_time(payload.get(name) or "")
        except ValueError:
            errors.append({"field": name, "message": "Format d'heure invalide (HH:MM)"})
    if len(parsed) == 2 and parsed["end_time"] <= parsed["start_time"]:
        errors.append(
            {"field": "end_time", "message": "L'heure de fin doit être après l'heure de début"}
        )
    if errors:
        raise ValidationError(errors)
    return weekday, parsed["start_time"], parsed["end_time"]


@ns.route("")
class SlotList(Resource):
    @ns.marshal_list_with(slot_model)
    @login_required
    def get(self) -> list[dict[str, Any]]:
        return [serialize_slot(slot) for slot in ordered_slots()]

    @ns.expect(slot_model)
    @ns.marshal_with(slot_model, code=201)
    @role_required(ROLE_ADMIN)
    def post(self) -> tuple[dict[str, Any], int]:
        weekday, start, end = _slot_fields(json_payload())
        if _find_slot(weekday, start, end) is not None:
            raise ConflictError("Ce créneau existe déjà")
        slot = Slot(weekday=weekday, start_time=start, end_time=end)
        db.session.add(slot)
        db.session.commit()
        current_app.logger.info(
            "Slot %s %s-%s created", weekday, format_time(start), format_time(end)
        )
        return serialize_slot(slot), 201


@ns.route("/standard")
class StandardSlots(Resource):
    @ns.marshal_with(standard_response, code=201)
    @role_required(ROLE_ADMIN)
    def post(self) -> tuple[dict[str, Any], int]:
        created = ensure_standard_slots()
        current_app.logger.info("%s standard slot(s) created", len(created))
        return {
            "created": len(created),
            "slots": [serialize_slot(slot) for slot in ordered_slots()],
        }, 201


@ns.route("/<string:slot_id>")
class SlotResource(Resource):
    @ns.marshal_with(slot_model)
    @login_required
    def get(self, slot_id: str) -> dict[str, Any]:
        return serialize_slot(get_or_404(Slot, slot_id, "Créneau", "Créneau non trouvé"))

    @role_required(ROLE_ADMIN)
    def delete(self, slot_id: str) -> tuple[str, int]:
        slot = get_or_404(Slot, slot_id, "Créneau", "Créneau non trouvé")
        booked = db.session.scalar(
            select(func.count(Reservation.id)).where(Reservation.slot_id == slot.id)
        )
        if booked:
            raise ConflictError(
                "Impossible de supprimer un créneau réservé", reservations=booked
            )
        db.session.delete(slot)
        db.session.commit()
        current_app.logger.info("Slot %s deleted", slot.id)
        return "", 204
