"""Plain snapshot types consumed by the availability deriver and the guard.

The SQLAlchemy models convert themselves into these frozen records so that the
core logic never touches a database session and can be exercised with
hand-built fixtures.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, time
from enum import Enum
from typing import Any, Iterable, Mapping

from .utils import WEEKDAYS, format_time, parse_date, parse_time, weekday_index


ROLE_TEACHER = "enseignant"
ROLE_ADMIN = "admin"
ROLES = (ROLE_TEACHER, ROLE_ADMIN)


class SlotStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    ELAPSED = "elapsed"


@dataclass(frozen=True)
class TimeSlot:
    id: str
    weekday: str
    start: time
    end: time

    def __post_init__(self) -> None:
        if self.weekday not in WEEKDAYS:
            raise ValueError(f"Jour de la semaine invalide: {self.weekday!r}")
        if self.end <= self.start:
            raise ValueError("L'heure de fin doit être après l'heure de début")

    @property
    def weekday_index(self) -> int:
        return weekday_index(self.weekday)

    @property
    def sort_key(self) -> tuple[int, time, time]:
        return (self.weekday_index, self.start, self.end)

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "weekday": self.weekday,
            "start_time": format_time(self.start),
            "end_time": format_time(self.end),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "TimeSlot":
        return cls(
            id=str(payload["id"]),
            weekday=payload["weekday"],
            start=parse_time(payload["start_time"]),
            end=parse_time(payload["end_time"]),
        )


@dataclass(frozen=True)
class UserRef:
    id: str
    first_name: str
    last_name: str
    email: str
    role: str = ROLE_TEACHER

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "role": self.role,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "UserRef":
        return cls(
            id=str(payload["id"]),
            first_name=payload.get("first_name", ""),
            last_name=payload.get("last_name", ""),
            email=payload.get("email", ""),
            role=payload.get("role", ROLE_TEACHER),
        )


@dataclass(frozen=True)
class TrackRef:
    id: str
    name: str

    def as_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "TrackRef":
        return cls(id=str(payload["id"]), name=payload["name"])


@dataclass(frozen=True)
class ReservationRecord:
    id: str
    user_id: str
    filiere_id: str
    slot_id: str
    date: date
    title: str
    description: str
    axis: str | None = None
    room: str | None = None
    pending: bool = False

    @property
    def key(self) -> tuple[str, date, str]:
        return (self.slot_id, self.date, self.filiere_id)

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "filiere_id": self.filiere_id,
            "slot_id": self.slot_id,
            "date": self.date.isoformat(),
            "title": self.title,
            "description": self.description,
            "axis": self.axis,
            "room": self.room,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ReservationRecord":
        return cls(
            id=str(payload["id"]),
            user_id=str(payload["user_id"]),
            filiere_id=str(payload["filiere_id"]),
            slot_id=str(payload["slot_id"]),
            date=parse_date(payload["date"]),
            title=payload["title"],
            description=payload["description"],
            axis=payload.get("axis"),
            room=payload.get("room"),
        )


@dataclass(frozen=True)
class Snapshot:
    """Immutable view over the four collections the core reads."""

    slots: tuple[TimeSlot, ...] = ()
    reservations: tuple[ReservationRecord, ...] = ()
    users: tuple[UserRef, ...] = ()
    filieres: tuple[TrackRef, ...] = ()
    _index: dict[str, dict[str, Any]] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "slots", tuple(self.slots))
        object.__setattr__(self, "reservations", tuple(self.reservations))
        object.__setattr__(self, "users", tuple(self.users))
        object.__setattr__(self, "filieres", tuple(self.filieres))
        self._index.update(
            {
                "slots": {slot.id: slot for slot in self.slots},
                "users": {user.id: user for user in self.users},
                "filieres": {filiere.id: filiere for filiere in self.filieres},
                "reservations": {item.id: item for item in self.reservations},
            }
        )

    def slot(self, slot_id: str | None) -> TimeSlot | None:
        return self._index["slots"].get(slot_id)

    def user(self, user_id: str | None) -> UserRef | None:
        return self._index["users"].get(user_id)

    def filiere(self, filiere_id: str | None) -> TrackRef | None:
        return self._index["filieres"].get(filiere_id)

    def reservation(self, reservation_id: str | None) -> ReservationRecord | None:
        return self._index["reservations"].get(reservation_id)

    def with_reservations(self, reservations: Iterable[ReservationRecord]) -> "Snapshot":
        return replace(self, reservations=tuple(reservations))


@dataclass(frozen=True)
class SlotDisplay:
    """A catalog slot projected onto one date of the viewed week."""

    slot: TimeSlot
    date: date
    status: SlotStatus
    reservation: ReservationRecord | None = None
    user: UserRef | None = None
    filiere: TrackRef | None = None

    def as_dict(self) -> dict[str, Any]:
        payload = self.slot.as_dict()
        payload.update(
            {
                "date": self.date.isoformat(),
                "status": self.status.value,
                "reservation": self.reservation.as_dict() if self.reservation else None,
                "user": self.user.as_dict() if self.user else None,
                "filiere": self.filiere.as_dict() if self.filiere else None,
            }
        )
        return payload
