"""Reservation endpoints."""
from __future__ import annotations

from typing import Any

from flask import request
from flask_restx import Namespace, Resource, fields

from ..auth import current_user, login_required
from ..availability import split_upcoming
from ..domain import ReservationRecord
from ..errors import ValidationError
from ..repository import repository_for_app
from ..utils import week_dates
from .params import date_arg, json_payload, local_today


ns = Namespace("reservations", description="Book, edit and cancel slot reservations")

# Presence and length rules live in guard.py; the schema only checks types.
reservation_input = ns.model(
    "ReservationInput",
    {
        "filiere_id": fields.String(description="Required"),
        "slot_id": fields.String(description="Required"),
        "date": fields.String(description="Required, YYYY-MM-DD"),
        "title": fields.String(description="Required, at most 200 characters"),
        "description": fields.String(description="Required, 10 to 2000 characters"),
        "axis": fields.String(description="At most 200 characters"),
        "room": fields.String(description="At most 50 characters"),
    },
)

reservation_changes = ns.model(
    "ReservationChanges",
    {
        "title": fields.String(description="At most 200 characters"),
        "description": fields.String(description="10 to 2000 characters"),
        "axis": fields.String(description="At most 200 characters"),
        "room": fields.String(description="At most 50 characters"),
    },
)

reservation_model = ns.model(
    "Reservation",
    {
        "id": fields.String(readonly=True),
        "user_id": fields.String,
        "filiere_id": fields.String,
        "slot_id": fields.String,
        "date": fields.String(description="YYYY-MM-DD"),
        "title": fields.String,
        "description": fields.String,
        "axis": fields.String,
        "room": fields.String,
    },
)

mine_model = ns.model(
    "MyReservations",
    {
        "upcoming": fields.List(fields.Nested(reservation_model)),
        "past": fields.List(fields.Nested(reservation_model)),
    },
)


def serialize_reservation(record: ReservationRecord) -> dict[str, Any]:
    return record.as_dict()


def _date_range() -> tuple[Any, Any] | None:
    week = date_arg("week")
    if week is not None:
        days = week_dates(week)
        return days[0], days[-1]
    start = date_arg("start")
    end = date_arg("end")
    if start is None and end is None:
        return None
    if start is not None and end is not None and end < start:
        raise ValidationError(
            [{"field": "end", "message": "La date de fin doit suivre la date de début"}]
        )
    return start or end, end or start


@ns.route("")
class ReservationList(Resource):
    @ns.doc(
        params={
            "filiere_id": "Restrict to one track",
            "start": "First date (YYYY-MM-DD)",
            "end": "Last date (YYYY-MM-DD)",
            "week": "Any date of the week to list",
        }
    )
    @ns.marshal_list_with(reservation_model)
    @login_required
    def get(self) -> list[dict[str, Any]]:
        records = repository_for_app().list_reservations(
            request.args.get("filiere_id") or None, _date_range()
        )
        return [serialize_reservation(record) for record in records]

    @ns.expect(reservation_input, validate=True)
    @ns.marshal_with(reservation_model, code=201)
    @login_required
    def post(self) -> tuple[dict[str, Any], int]:
        payload = json_payload()
        payload["user_id"] = current_user().id
        record = repository_for_app().create_reservation(payload)
        return serialize_reservation(record), 201


@ns.route("/mine")
class MyReservations(Resource):
    @ns.marshal_with(mine_model)
    @login_required
    def get(self) -> dict[str, Any]:
        records = repository_for_app().list_reservations(user_id=current_user().id)
        upcoming, past = split_upcoming(records, local_today())
        return {
            "upcoming": [serialize_reservation(record) for record in upcoming],
            "past": [serialize_reservation(record) for record in past],
        }


@ns.route("/<string:reservation_id>")
class ReservationResource(Resource):
    @ns.marshal_with(reservation_model)
    @login_required
    def get(self, reservation_id: str) -> dict[str, Any]:
        return serialize_reservation(repository_for_app().get(reservation_id))

    @ns.expect(reservation_changes, validate=True)
    @ns.marshal_with(reservation_model)
    @login_required
    def put(self, reservation_id: str) -> dict[str, Any]:
        record = repository_for_app().update_reservation(
            reservation_id, json_payload(), current_user().id
        )
        return serialize_reservation(record)

    @login_required
    def delete(self, reservation_id: str) -> tuple[str, int]:
        repository_for_app().delete_reservation(reservation_id, current_user().id)
        return "", 204
