"""Administrator overview of the reservations booked for one week."""
from __future__ import annotations

from datetime import date, time
from typing import Any

from .availability import week_reservations
from .domain import ReservationRecord, Snapshot
from .utils import format_time, week_dates, weekday_label


def describe_reservation(record: ReservationRecord, snapshot: Snapshot) -> dict[str, Any]:
    slot = snapshot.slot(record.slot_id)
    user = snapshot.user(record.user_id)
    filiere = snapshot.filiere(record.filiere_id)
    details = record.as_dict()
    details.update(
        {
            "weekday": weekday_label(record.date),
            "start_time": format_time(slot.start) if slot else None,
            "end_time": format_time(slot.end) if slot else None,
            "time_range": f"{format_time(slot.start)} - {format_time(slot.end)}" if slot else None,
            "filiere_name": filiere.name if filiere else None,
            "user_name": user.full_name if user else None,
            "user_email": user.email if user else None,
        }
    )
    return details


def week_overview(
    snapshot: Snapshot, reference: date, filiere_id: str | None = None
) -> dict[str, Any]:
    days = week_dates(reference)
    records = week_reservations(snapshot.reservations, reference, filiere_id)

    def order(record: ReservationRecord) -> tuple:
        slot = snapshot.slot(record.slot_id)
        return (record.date, slot.start if slot else time.min, record.filiere_id)

    records.sort(key=order)
    counts = {filiere.name: 0 for filiere in snapshot.filieres if filiere_id in (None, filiere.id)}
    for record in records:
        filiere = snapshot.filiere(record.filiere_id)
        if filiere is not None:
            counts[filiere.name] = counts.get(filiere.name, 0) + 1
    return {
        "week_start": days[0].isoformat(),
        "week_end": days[-1].isoformat(),
        "total": len(records),
        "counts": counts,
        "reservations": [describe_reservation(record, snapshot) for record in records],
    }
