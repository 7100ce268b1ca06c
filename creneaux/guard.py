"""Pre-write validation of new reservations.

The guard gives fast feedback before a write is attempted. It is advisory: two
clients can pass it concurrently, and the database uniqueness constraint on
``(slot_id, date, filiere_id)`` remains the authority.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Iterable, Mapping

from .domain import ReservationRecord, Snapshot
from .errors import MissingField, NotFound, SlotAlreadyBooked, ValidationError
from .utils import parse_date, weekday_label


REQUIRED_FIELDS = ("user_id", "filiere_id", "slot_id", "date", "title", "description")
EDITABLE_FIELDS = ("title", "description", "axis", "room")
TEXT_FIELDS = ("user_id", "filiere_id", "slot_id", "title", "description", "axis", "room")

TITLE_MAX_LENGTH = 200
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 2000
AXIS_MAX_LENGTH = 200
ROOM_MAX_LENGTH = 50


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _type_errors(values: Mapping[str, Any]) -> list[dict[str, str]]:
    return [
        {"field": name, "message": "Ce champ doit être une chaîne de caractères"}
        for name, value in values.items()
        if value is not None and not isinstance(value, str)
    ]


@dataclass(frozen=True)
class ReservationRequest:
    user_id: str | None
    filiere_id: str | None
    slot_id: str | None
    date: date | str | None
    title: str | None
    description: str | None
    axis: str | None = None
    room: str | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "ReservationRequest":
        if isinstance(payload, cls):
            return payload
        return cls(
            user_id=_clean(payload.get("user_id")),
            filiere_id=_clean(payload.get("filiere_id")),
            slot_id=_clean(payload.get("slot_id")),
            date=_clean(payload.get("date")),
            title=_clean(payload.get("title")),
            description=_clean(payload.get("description")),
            axis=_clean(payload.get("axis")),
            room=_clean(payload.get("room")),
        )

    def to_record(self, reservation_id: str, *, pending: bool = False) -> ReservationRecord:
        return ReservationRecord(
            id=reservation_id,
            user_id=self.user_id,
            filiere_id=self.filiere_id,
            slot_id=self.slot_id,
            date=self.date,
            title=self.title,
            description=self.description,
            axis=self.axis,
            room=self.room,
            pending=pending,
        )

    def as_payload(self) -> dict[str, Any]:
        reservation_date = self.date.isoformat() if isinstance(self.date, date) else self.date
        return {
            "user_id": self.user_id,
            "filiere_id": self.filiere_id,
            "slot_id": self.slot_id,
            "date": reservation_date,
            "title": self.title,
            "description": self.description,
            "axis": self.axis,
            "room": self.room,
        }


def require_fields(request: ReservationRequest) -> ReservationRequest:
    for name in REQUIRED_FIELDS:
        if getattr(request, name) in (None, ""):
            raise MissingField(name)
    errors = _type_errors({name: getattr(request, name) for name in TEXT_FIELDS})
    if not isinstance(request.date, (str, date)):
        errors.append({"field": "date", "message": "Le format de date doit être YYYY-MM-DD"})
    if errors:
        raise ValidationError(errors)
    if isinstance(request.date, date):
        return request
    try:
        parsed = parse_date(request.date)
    except ValueError:
        raise ValidationError(
            [{"field": "date", "message": "Le format de date doit être YYYY-MM-DD"}]
        ) from None
    return replace(request, date=parsed)


def find_conflict(
    reservations: Iterable[ReservationRecord],
    slot_id: str,
    on: date,
    filiere_id: str,
    *,
    ignore_id: str | None = None,
) -> ReservationRecord | None:
    for reservation in reservations:
        if reservation.id == ignore_id:
            continue
        if reservation.key == (slot_id, on, filiere_id):
            return reservation
    return None


def check_reservation(
    payload: ReservationRequest | Mapping[str, Any], snapshot: Snapshot
) -> ReservationRequest:
    """Validate a reservation candidate against ``snapshot``.

    Checks run in order and the first failure is raised: required fields
    (``MissingField``), referenced user, filière and slot (``NotFound``), then
    an existing booking of the same slot, date and filière
    (``SlotAlreadyBooked``). Returns the normalised request on success.
    """

    request = require_fields(ReservationRequest.from_mapping(payload))

    if snapshot.user(request.user_id) is None:
        raise NotFound("Utilisateur", request.user_id, "Utilisateur non trouvé")
    if snapshot.filiere(request.filiere_id) is None:
        raise NotFound("Filière", request.filiere_id, "Filière non trouvée")
    if snapshot.slot(request.slot_id) is None:
        raise NotFound("Créneau", request.slot_id, "Créneau non trouvé")

    existing = find_conflict(
        snapshot.reservations, request.slot_id, request.date, request.filiere_id
    )
    if existing is not None:
        raise SlotAlreadyBooked(existing)
    return request


def _length_errors(values: Mapping[str, Any]) -> list[dict[str, str]]:
    errors: list[dict[str, str]] = []
    title = values.get("title")
    if "title" in values:
        if not title:
            errors.append({"field": "title", "message": "Le titre du module est requis"})
        elif len(title) > TITLE_MAX_LENGTH:
            errors.append(
                {"field": "title", "message": "Le titre ne peut pas dépasser 200 caractères"}
            )
    description = values.get("description")
    if "description" in values:
        if not description or len(description) < DESCRIPTION_MIN_LENGTH:
            errors.append(
                {
                    "field": "description",
                    "message": "La description doit contenir au moins 10 caractères",
                }
            )
        elif len(description) > DESCRIPTION_MAX_LENGTH:
            errors.append(
                {
                    "field": "description",
                    "message": "La description ne peut pas dépasser 2000 caractères",
                }
            )
    axis = values.get("axis")
    if axis and len(axis) > AXIS_MAX_LENGTH:
        errors.append(
            {"field": "axis", "message": "L'axe pédagogique ne peut pas dépasser 200 caractères"}
        )
    room = values.get("room")
    if room and len(room) > ROOM_MAX_LENGTH:
        errors.append(
            {"field": "room", "message": "Le nom de la salle ne peut pas dépasser 50 caractères"}
        )
    return errors


def validate_fields(request: ReservationRequest, snapshot: Snapshot, today: date) -> None:
    """Field-level rules applied on top of the guard before a write."""

    errors = _length_errors(
        {
            "title": request.title,
            "description": request.description,
            "axis": request.axis,
            "room": request.room,
        }
    )
    if request.date < today:
        errors.append({"field": "date", "message": "La date ne peut pas être dans le passé"})
    slot = snapshot.slot(request.slot_id)
    if slot is not None and weekday_label(request.date) != slot.weekday:
        errors.append(
            {
                "field": "date",
                "message": f"La date ne tombe pas un {slot.weekday.lower()}",
            }
        )
    if errors:
        raise ValidationError(errors)


def validate_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Normalise a partial update; only the editable fields may change."""

    frozen = sorted(set(changes) - set(EDITABLE_FIELDS))
    if frozen:
        raise ValidationError(
            [
                {"field": name, "message": "Ce champ ne peut pas être modifié"}
                for name in frozen
            ]
        )
    errors = _type_errors(changes)
    if errors:
        raise ValidationError(errors)
    cleaned = {name: _clean(value) for name, value in changes.items()}
    errors = _length_errors(cleaned)
    if errors:
        raise ValidationError(errors)
    return cleaned
