"""Administrator supervision of the booked weeks."""
from __future__ import annotations

from typing import Any

from flask import request
from flask_restx import Namespace, Resource, fields

from ..auth import role_required
from ..domain import ROLE_ADMIN
from ..extensions import db
from ..models import Filiere
from ..repository import load_snapshot
from ..supervision import week_overview
from ..utils import week_dates
from .params import date_arg, get_or_404, local_today


ns = Namespace("supervision", description="Weekly overview for administrators")

detail_model = ns.model(
    "SupervisedReservation",
    {
        "id": fields.String,
        "date": fields.String,
        "weekday": fields.String,
        "start_time": fields.String,
        "end_time": fields.String,
        "time_range": fields.String,
        "title": fields.String,
        "description": fields.String,
        "axis": fields.String,
        "room": fields.String,
        "filiere_id": fields.String,
        "filiere_name": fields.String,
        "user_id": fields.String,
        "user_name": fields.String,
        "user_email": fields.String,
    },
)

overview_model = ns.model(
    "WeekOverview",
    {
        "week_start": fields.String,
        "week_end": fields.String,
        "total": fields.Integer,
        "counts": fields.Raw(description="Reservations per filière name"),
        "reservations": fields.List(fields.Nested(detail_model)),
    },
)


@ns.route("/week")
class WeekSupervision(Resource):
    @ns.doc(params={"date": "Any date of the week (YYYY-MM-DD)", "filiere_id": "Track"})
    @ns.marshal_with(overview_model)
    @role_required(ROLE_ADMIN)
    def get(self) -> dict[str, Any]:
        reference = date_arg("date", local_today())
        filiere_id = request.args.get("filiere_id") or None
        if filiere_id is not None:
            get_or_404(Filiere, filiere_id, "Filière", "Filière non trouvée")
        days = week_dates(reference)
        snapshot = load_snapshot(db.session, filiere_id, (days[0], days[-1]))
        return week_overview(snapshot, reference, filiere_id)
