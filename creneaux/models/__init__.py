"""SQLAlchemy models for Créneaux."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..domain import ROLE_ADMIN, ROLE_TEACHER, ReservationRecord, TimeSlot, TrackRef, UserRef
from ..extensions import db
from ..utils import WEEKDAYS


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


_WEEKDAY_LIST = ", ".join(f"'{label}'" for label in WEEKDAYS)


class User(db.Model):
    __tablename__ = "users"

    ROLE_TEACHER = ROLE_TEACHER
    ROLE_ADMIN = ROLE_ADMIN

    id = Column(String(36), primary_key=True, default=_new_id)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    role = Column(String(20), nullable=False, default=ROLE_TEACHER)

    reservations = relationship("Reservation", back_populates="user")

    __table_args__ = (
        CheckConstraint(f"role IN ('{ROLE_TEACHER}', '{ROLE_ADMIN}')", name="ck_user_role"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_ref(self) -> UserRef:
        return UserRef(
            id=self.id,
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            role=self.role,
        )

    def __repr__(self) -> str:  # pragma: no cover - repr helper
        return f"<User {self.email}>"


class Filiere(db.Model):
    __tablename__ = "filieres"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(100), nullable=False, unique=True)

    reservations = relationship("Reservation", back_populates="filiere")

    def to_ref(self) -> TrackRef:
        return TrackRef(id=self.id, name=self.name)

    def __repr__(self) -> str:  # pragma: no cover - repr helper
        return f"<Filiere {self.name}>"


class Slot(db.Model):
    """A recurring weekly time window, bookable once per date and filière."""

    __tablename__ = "creneaux"

    id = Column(String(36), primary_key=True, default=_new_id)
    weekday = Column(String(10), nullable=False)
    start_time = Column(db.Time, nullable=False)
    end_time = Column(db.Time, nullable=False)

    reservations = relationship("Reservation", back_populates="slot")

    __table_args__ = (
        CheckConstraint(f"weekday IN ({_WEEKDAY_LIST})", name="ck_slot_weekday"),
        CheckConstraint("end_time > start_time", name="ck_slot_end_after_start"),
        UniqueConstraint("weekday", "start_time", "end_time", name="uq_slot_window"),
    )

    def to_time_slot(self) -> TimeSlot:
        return TimeSlot(
            id=self.id,
            weekday=self.weekday,
            start=self.start_time,
            end=self.end_time,
        )

    def __repr__(self) -> str:  # pragma: no cover - repr helper
        return f"<Slot {self.weekday} {self.start_time}-{self.end_time}>"


class Reservation(db.Model):
    __tablename__ = "reservations"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    filiere_id = Column(String(36), ForeignKey("filieres.id"), nullable=False)
    slot_id = Column(String(36), ForeignKey("creneaux.id"), nullable=False)
    date = Column(db.Date, nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    axis = Column(String(200), nullable=True)
    room = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="reservations")
    filiere = relationship("Filiere", back_populates="reservations")
    slot = relationship("Slot", back_populates="reservations")

    __table_args__ = (
        UniqueConstraint(
            "slot_id", "date", "filiere_id", name="uq_reservation_slot_date_filiere"
        ),
    )

    def to_record(self) -> ReservationRecord:
        return ReservationRecord(
            id=self.id,
            user_id=self.user_id,
            filiere_id=self.filiere_id,
            slot_id=self.slot_id,
            date=self.date,
            title=self.title,
            description=self.description,
            axis=self.axis,
            room=self.room,
        )

    def __repr__(self) -> str:  # pragma: no cover - repr helper
        return f"<Reservation {self.slot_id} {self.date} {self.filiere_id}>"
