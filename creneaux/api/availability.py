"""Weekly availability view."""
from __future__ import annotations

from typing import Any

from flask import current_app, request
from flask_restx import Namespace, Resource, fields

from ..auth import login_required
from ..availability import derive_week, time_grid
from ..domain import SlotStatus
from ..extensions import db
from ..models import Filiere
from ..repository import load_snapshot
from ..utils import format_time, local_now, week_dates
from .params import date_arg, get_or_404


ns = Namespace("availability", description="Derived status of every slot for one week")

person_model = ns.model(
    "SlotUser",
    {
        "id": fields.String,
        "first_name": fields.String,
        "last_name": fields.String,
        "email": fields.String,
        "role": fields.String,
    },
)

track_model = ns.model("SlotFiliere", {"id": fields.String, "name": fields.String})

booking_model = ns.model(
    "SlotReservation",
    {
        "id": fields.String,
        "user_id": fields.String,
        "filiere_id": fields.String,
        "title": fields.String,
        "description": fields.String,
        "axis": fields.String,
        "room": fields.String,
    },
)

display_model = ns.model(
    "SlotDisplay",
    {
        "id": fields.String,
        "weekday": fields.String,
        "start_time": fields.String,
        "end_time": fields.String,
        "date": fields.String,
        "status": fields.String(enum=[status.value for status in SlotStatus]),
        "reservation": fields.Nested(booking_model, allow_null=True),
        "user": fields.Nested(person_model, allow_null=True),
        "filiere": fields.Nested(track_model, allow_null=True),
    },
)

week_model = ns.model(
    "AvailabilityWeek",
    {
        "week_start": fields.String,
        "week_end": fields.String,
        "filiere_id": fields.String,
        "time_ranges": fields.List(fields.String),
        "slots": fields.List(fields.Nested(display_model)),
    },
)


@ns.route("")
class AvailabilityResource(Resource):
    @ns.doc(params={"date": "Any date of the week (YYYY-MM-DD)", "filiere_id": "Track"})
    @ns.marshal_with(week_model)
    @login_required
    def get(self) -> dict[str, Any]:
        now = local_now(current_app.config["LOCAL_TIMEZONE"])
        reference = date_arg("date", now.date())
        filiere_id = request.args.get("filiere_id") or None
        if filiere_id is not None:
            get_or_404(Filiere, filiere_id, "Filière", "Filière non trouvée")

        days = week_dates(reference)
        snapshot = load_snapshot(db.session, filiere_id, (days[0], days[-1]))
        displays = derive_week(snapshot, reference, now, filiere_id)
        return {
            "week_start": days[0].isoformat(),
            "week_end": days[-1].isoformat(),
            "filiere_id": filiere_id,
            "time_ranges": [
                f"{format_time(start)}-{format_time(end)}" for start, end in time_grid(displays)
            ],
            "slots": [display.as_dict() for display in displays],
        }
