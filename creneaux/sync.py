"""Optimistic synchronisation between a local snapshot and the reservation store.

Mutations are applied to the local snapshot first (tagged ``pending``), then
sent to the backend. A confirmed write replaces the pending record with the
authoritative one; a rejected write is rolled back and followed by a forced
refetch. Every successful write also schedules a delayed refetch as a safety
net, and change notifications from the backend trigger an immediate one.
"""
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable, Iterable, Mapping

from .availability import derive_week
from .domain import ReservationRecord, Snapshot, SlotDisplay, TimeSlot, TrackRef, UserRef
from .errors import Forbidden, MissingField, NotFound, ReservationError
from .guard import ReservationRequest, check_reservation, validate_changes


logger = logging.getLogger(__name__)

Scheduler = Callable[[float, Callable[[], None]], Any]


class ReservationBackend:
    """Contract between the sync layer and the authoritative store."""

    def list_slots(self) -> list[TimeSlot]:  # pragma: no cover - interface
        raise NotImplementedError

    def list_users(self) -> list[UserRef]:  # pragma: no cover - interface
        raise NotImplementedError

    def list_filieres(self) -> list[TrackRef]:  # pragma: no cover - interface
        raise NotImplementedError

    def list_reservations(
        self,
        filiere_id: str | None = None,
        date_range: tuple[date, date] | None = None,
    ) -> list[ReservationRecord]:  # pragma: no cover - interface
        raise NotImplementedError

    def create_reservation(
        self, request: ReservationRequest
    ) -> ReservationRecord:  # pragma: no cover - interface
        raise NotImplementedError

    def update_reservation(
        self,
        reservation_id: str,
        changes: Mapping[str, Any],
        requesting_user_id: str,
    ) -> ReservationRecord:  # pragma: no cover - interface
        raise NotImplementedError

    def delete_reservation(
        self, reservation_id: str, requesting_user_id: str
    ) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def subscribe(self, callback: Callable[[Any], None]) -> Callable[[], None] | None:
        """Register for change events; backends without a channel return ``None``."""
        return None


def _start_timer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class ReservationStore:
    """Process-wide owner of the slot, user, filière and reservation collections."""

    def __init__(
        self,
        backend: ReservationBackend,
        *,
        refresh_delay: float = 0.5,
        schedule: Scheduler | None = None,
    ) -> None:
        self.backend = backend
        self.refresh_delay = refresh_delay
        self._schedule = schedule or _start_timer
        self._lock = threading.RLock()
        self._snapshot = Snapshot()
        self._pending: dict[str, ReservationRecord] = {}
        self._sequence = 0
        self._timers: list[Any] = []
        self._unsubscribe = backend.subscribe(self._on_change)

    # Reading ---------------------------------------------------------
    @property
    def snapshot(self) -> Snapshot:
        with self._lock:
            return self._snapshot

    @property
    def reservations(self) -> tuple[ReservationRecord, ...]:
        return self.snapshot.reservations

    def availability(
        self,
        reference: date,
        now: datetime | None = None,
        filiere_id: str | None = None,
    ) -> list[SlotDisplay]:
        return derive_week(self.snapshot, reference, now or datetime.now(), filiere_id)

    # Reconciliation --------------------------------------------------
    def refresh(self) -> bool:
        """Refetch every collection; returns ``False`` when superseded."""

        with self._lock:
            self._sequence += 1
            sequence = self._sequence

        slots = self.backend.list_slots()
        users = self.backend.list_users()
        filieres = self.backend.list_filieres()
        reservations = self.backend.list_reservations()

        with self._lock:
            if sequence != self._sequence:
                logger.debug(
                    "Discarding stale refresh #%s (latest is #%s)", sequence, self._sequence
                )
                return False
            confirmed = {reservation.key for reservation in reservations}
            self._pending = {
                pending_id: record
                for pending_id, record in self._pending.items()
                if record.key not in confirmed
            }
            self._snapshot = Snapshot(
                slots=slots,
                reservations=[*reservations, *self._pending.values()],
                users=users,
                filieres=filieres,
            )
        return True

    def schedule_refresh(self, delay: float | None = None) -> Any:
        handle = self._schedule(
            self.refresh_delay if delay is None else delay, self._refresh_quietly
        )
        with self._lock:
            self._timers.append(handle)
        return handle

    def _refresh_quietly(self) -> None:
        try:
            self.refresh()
        except ReservationError as exc:
            logger.warning("Refresh failed, keeping local state: %s", exc)

    def _on_change(self, event: Any) -> None:
        logger.debug("Change notification received: %s", getattr(event, "type", event))
        self._refresh_quietly()

    def _set_reservations(
        self, transform: Callable[[list[ReservationRecord]], Iterable[ReservationRecord]]
    ) -> None:
        self._snapshot = self._snapshot.with_reservations(
            transform(list(self._snapshot.reservations))
        )

    # Mutations -------------------------------------------------------
    def create_reservation(
        self, fields: ReservationRequest | Mapping[str, Any]
    ) -> ReservationRecord:
        request = check_reservation(fields, self.snapshot)
        pending = request.to_record(f"pending-{uuid.uuid4().hex}", pending=True)
        with self._lock:
            self._pending[pending.id] = pending
            self._set_reservations(lambda items: [*items, pending])

        try:
            created = self.backend.create_reservation(request)
        except ReservationError as exc:
            with self._lock:
                self._pending.pop(pending.id, None)
                self._set_reservations(
                    lambda items: [item for item in items if item.id != pending.id]
                )
            logger.warning("Reservation rejected by the store: %s", exc)
            self._refresh_quietly()
            raise

        with self._lock:
            self._pending.pop(pending.id, None)
            self._set_reservations(
                lambda items: [
                    *(item for item in items if item.id not in (pending.id, created.id)),
                    created,
                ]
            )
        self.schedule_refresh()
        return created

    def update_reservation(
        self,
        reservation_id: str,
        changes: Mapping[str, Any],
        requesting_user_id: str,
    ) -> ReservationRecord:
        if not requesting_user_id:
            raise MissingField("requesting_user_id", "ID utilisateur manquant")
        cleaned = validate_changes(changes)
        previous = self.snapshot.reservation(reservation_id)
        if previous is None:
            raise NotFound("Réservation", reservation_id, "Réservation non trouvée")
        if previous.user_id != requesting_user_id:
            raise Forbidden("Vous n'êtes pas autorisé à modifier cette réservation")

        optimistic = replace(previous, pending=True, **cleaned)
        with self._lock:
            self._set_reservations(
                lambda items: [optimistic if item.id == reservation_id else item for item in items]
            )

        try:
            updated = self.backend.update_reservation(
                reservation_id, cleaned, requesting_user_id
            )
        except ReservationError as exc:
            with self._lock:
                self._set_reservations(
                    lambda items: [previous if item.id == reservation_id else item for item in items]
                )
            logger.warning("Update of %s rejected by the store: %s", reservation_id, exc)
            self._refresh_quietly()
            raise

        with self._lock:
            self._set_reservations(
                lambda items: [updated if item.id == reservation_id else item for item in items]
            )
        self.schedule_refresh()
        return updated

    def delete_reservation(self, reservation_id: str, requesting_user_id: str) -> None:
        if not requesting_user_id:
            raise MissingField("requesting_user_id", "ID utilisateur manquant")
        previous = self.snapshot.reservation(reservation_id)
        if previous is None:
            raise NotFound("Réservation", reservation_id, "Réservation non trouvée")
        if previous.user_id != requesting_user_id:
            raise Forbidden("Vous n'êtes pas autorisé à supprimer cette réservation")

        with self._lock:
            self._set_reservations(
                lambda items: [item for item in items if item.id != reservation_id]
            )

        try:
            self.backend.delete_reservation(reservation_id, requesting_user_id)
        except ReservationError as exc:
            with self._lock:
                self._set_reservations(
                    lambda items: items
                    if any(item.id == reservation_id for item in items)
                    else [*items, previous]
                )
            logger.warning("Deletion of %s rejected by the store: %s", reservation_id, exc)
            self._refresh_quietly()
            raise

        self.schedule_refresh()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        with self._lock:
            timers, self._timers = self._timers, []
        for timer in timers:
            cancel = getattr(timer, "cancel", None)
            if cancel is not None:
                cancel()
