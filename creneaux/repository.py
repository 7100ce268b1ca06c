"""Database-backed catalog and reservation store."""
from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Any, Callable, Iterator, Mapping

from flask import Flask, current_app, has_app_context
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .domain import ReservationRecord, Snapshot, TimeSlot, TrackRef, UserRef
from .errors import (
    ConflictError,
    Forbidden,
    MissingField,
    NotFound,
    SlotAlreadyBooked,
    StoreConnectionError,
)
from .events import (
    RESERVATION_CREATED,
    RESERVATION_DELETED,
    RESERVATION_UPDATED,
    ChangeNotifier,
)
from .extensions import db
from .guard import (
    ReservationRequest,
    check_reservation,
    require_fields,
    validate_changes,
    validate_fields,
)
from .models import Filiere, Reservation, Slot, User
from .sync import ReservationBackend
from .utils import local_now


class CatalogProvider:
    """Read-only access to the slot catalog and the reference entities."""

    def __init__(self, session: Session):
        self.session = session

    def _all(self, statement) -> list[Any]:
        try:
            return list(self.session.scalars(statement).all())
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreConnectionError("Impossible de joindre la base de données") from exc

    def list_slots(self) -> list[TimeSlot]:
        slots = [slot.to_time_slot() for slot in self._all(select(Slot))]
        return sorted(slots, key=lambda slot: slot.sort_key)

    def list_users(self) -> list[UserRef]:
        users = self._all(select(User).order_by(User.last_name, User.first_name))
        return [user.to_ref() for user in users]

    def list_filieres(self) -> list[TrackRef]:
        return [filiere.to_ref() for filiere in self._all(select(Filiere).order_by(Filiere.name))]


class ReservationRepository:
    """CRUD over reservations with the guard applied before every insert."""

    def __init__(
        self,
        session: Session,
        notifier: ChangeNotifier | None = None,
        *,
        today: Callable[[], date] = date.today,
    ):
        self.session = session
        self.notifier = notifier
        self.today = today

    # Queries ---------------------------------------------------------
    def _scalars(self, statement) -> list[Any]:
        try:
            return list(self.session.scalars(statement).all())
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreConnectionError("Impossible de joindre la base de données") from exc

    def _get(self, reservation_id: str | None) -> Reservation:
        if not reservation_id:
            raise MissingField("reservation_id", "ID de réservation manquant")
        try:
            reservation = self.session.get(Reservation, reservation_id)
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreConnectionError("Impossible de joindre la base de données") from exc
        if reservation is None:
            raise NotFound("Réservation", reservation_id, "Réservation non trouvée")
        return reservation

    def get(self, reservation_id: str) -> ReservationRecord:
        return self._get(reservation_id).to_record()

    def list_reservations(
        self,
        filiere_id: str | None = None,
        date_range: tuple[date, date] | None = None,
        *,
        user_id: str | None = None,
    ) -> list[ReservationRecord]:
        statement = select(Reservation).join(Slot)
        if filiere_id:
            statement = statement.where(Reservation.filiere_id == filiere_id)
        if user_id:
            statement = statement.where(Reservation.user_id == user_id)
        if date_range is not None:
            start, end = date_range
            statement = statement.where(Reservation.date >= start, Reservation.date <= end)
        statement = statement.order_by(Reservation.date, Slot.start_time)
        return [reservation.to_record() for reservation in self._scalars(statement)]

    def _find_key(self, slot_id: str, on: date, filiere_id: str) -> list[Reservation]:
        return self._scalars(
            select(Reservation).where(
                Reservation.slot_id == slot_id,
                Reservation.date == on,
                Reservation.filiere_id == filiere_id,
            )
        )

    def guard_snapshot(self, request: ReservationRequest) -> Snapshot:
        """Load only the rows the guard needs to judge ``request``."""

        try:
            user = self.session.get(User, request.user_id)
            filiere = self.session.get(Filiere, request.filiere_id)
            slot = self.session.get(Slot, request.slot_id)
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreConnectionError("Impossible de joindre la base de données") from exc
        existing = self._find_key(request.slot_id, request.date, request.filiere_id)
        return Snapshot(
            slots=[slot.to_time_slot()] if slot else [],
            reservations=[reservation.to_record() for reservation in existing],
            users=[user.to_ref()] if user else [],
            filieres=[filiere.to_ref()] if filiere else [],
        )

    # Writes ----------------------------------------------------------
    def _commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreConnectionError("L'enregistrement a échoué") from exc

    def _publish(self, event_type: str, record: ReservationRecord) -> None:
        if self.notifier is not None:
            self.notifier.publish(
                event_type,
                {"reservation_id": record.id, "filiere_id": record.filiere_id},
            )

    def create_reservation(
        self, fields: ReservationRequest | Mapping[str, Any]
    ) -> ReservationRecord:
        request = require_fields(ReservationRequest.from_mapping(fields))
        snapshot = self.guard_snapshot(request)
        request = check_reservation(request, snapshot)
        validate_fields(request, snapshot, self.today())

        reservation = Reservation(
            user_id=request.user_id,
            filiere_id=request.filiere_id,
            slot_id=request.slot_id,
            date=request.date,
            title=request.title,
            description=request.description,
            axis=request.axis,
            room=request.room,
        )
        self.session.add(reservation)
        try:
            self._commit()
        except IntegrityError as exc:
            # Another writer took the slot between the guard and the commit.
            existing = self._find_key(request.slot_id, request.date, request.filiere_id)
            if existing:
                raise SlotAlreadyBooked(existing[0].to_record()) from exc
            raise ConflictError("La réservation viole une contrainte d'intégrité") from exc

        record = reservation.to_record()
        current_app.logger.info(
            "Reservation %s created for slot %s on %s (filiere %s)",
            record.id,
            record.slot_id,
            record.date.isoformat(),
            record.filiere_id,
        )
        self._publish(RESERVATION_CREATED, record)
        return record

    def update_reservation(
        self,
        reservation_id: str,
        changes: Mapping[str, Any],
        requesting_user_id: str | None,
    ) -> ReservationRecord:
        if not requesting_user_id:
            raise MissingField("requesting_user_id", "ID utilisateur manquant")
        cleaned = validate_changes(changes)
        reservation = self._get(reservation_id)
        if reservation.user_id != requesting_user_id:
            current_app.logger.warning(
                "User %s attempted to update reservation %s owned by %s",
                requesting_user_id,
                reservation_id,
                reservation.user_id,
            )
            raise Forbidden("Vous n'êtes pas autorisé à modifier cette réservation")
        for name, value in cleaned.items():
            setattr(reservation, name, value)
        try:
            self._commit()
        except IntegrityError as exc:
            raise ConflictError("La réservation viole une contrainte d'intégrité") from exc

        record = reservation.to_record()
        current_app.logger.info("Reservation %s updated (%s)", record.id, ", ".join(cleaned))
        self._publish(RESERVATION_UPDATED, record)
        return record

    def delete_reservation(self, reservation_id: str, requesting_user_id: str | None) -> ReservationRecord:
        if not requesting_user_id:
            raise MissingField("requesting_user_id", "ID utilisateur manquant")
        reservation = self._get(reservation_id)
        if reservation.user_id != requesting_user_id:
            current_app.logger.warning(
                "User %s attempted to delete reservation %s owned by %s",
                requesting_user_id,
                reservation_id,
                reservation.user_id,
            )
            raise Forbidden("Vous n'êtes pas autorisé à supprimer cette réservation")

        record = reservation.to_record()
        self.session.delete(reservation)
        self._commit()
        current_app.logger.info("Reservation %s deleted", record.id)
        self._publish(RESERVATION_DELETED, record)
        return record


def get_notifier(app: Flask | None = None) -> ChangeNotifier:
    app = app or current_app
    return app.extensions["change_notifier"]


def repository_for_app(app: Flask | None = None) -> ReservationRepository:
    app = app or current_app._get_current_object()
    timezone_name = app.config["LOCAL_TIMEZONE"]
    return ReservationRepository(
        db.session,
        get_notifier(app),
        today=lambda: local_now(timezone_name).date(),
    )


class SqlReservationBackend(ReservationBackend):
    """Sync-layer backend talking to the database of a Flask application."""

    def __init__(self, app: Flask):
        self.app = app

    @contextmanager
    def _context(self) -> Iterator[None]:
        if has_app_context() and current_app._get_current_object() is self.app:
            yield
            return
        with self.app.app_context():
            yield

    def list_slots(self) -> list[TimeSlot]:
        with self._context():
            return CatalogProvider(db.session).list_slots()

    def list_users(self) -> list[UserRef]:
        with self._context():
            return CatalogProvider(db.session).list_users()

    def list_filieres(self) -> list[TrackRef]:
        with self._context():
            return CatalogProvider(db.session).list_filieres()

    def list_reservations(
        self,
        filiere_id: str | None = None,
        date_range: tuple[date, date] | None = None,
    ) -> list[ReservationRecord]:
        with self._context():
            return repository_for_app(self.app).list_reservations(filiere_id, date_range)

    def create_reservation(self, request: ReservationRequest) -> ReservationRecord:
        with self._context():
            return repository_for_app(self.app).create_reservation(request)

    def update_reservation(
        self,
        reservation_id: str,
        changes: Mapping[str, Any],
        requesting_user_id: str,
    ) -> ReservationRecord:
        with self._context():
            return repository_for_app(self.app).update_reservation(
                reservation_id, changes, requesting_user_id
            )

    def delete_reservation(self, reservation_id: str, requesting_user_id: str) -> None:
        with self._context():
            repository_for_app(self.app).delete_reservation(reservation_id, requesting_user_id)

    def subscribe(self, callback):
        return get_notifier(self.app).subscribe(callback)


def load_snapshot(
    session: Session,
    filiere_id: str | None = None,
    date_range: tuple[date, date] | None = None,
) -> Snapshot:
    catalog = CatalogProvider(session)
    reservations = ReservationRepository(session).list_reservations(filiere_id, date_range)
    return Snapshot(
        slots=catalog.list_slots(),
        reservations=reservations,
        users=catalog.list_users(),
        filieres=catalog.list_filieres(),
    )
