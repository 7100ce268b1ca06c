"""Weekly availability derivation.

Status is never stored: every read projects the standing slot catalog onto the
viewed week and compares it with the reservations and the current time.
"""
from __future__ import annotations

from datetime import date, datetime, time
from typing import Iterable

from .domain import ReservationRecord, Snapshot, SlotDisplay, SlotStatus, TimeSlot
from .utils import resolve_weekday, week_dates, week_monday


def slot_start(slot: TimeSlot, on: date, now: datetime | None = None) -> datetime:
    tzinfo = now.tzinfo if now is not None else None
    return datetime.combine(on, slot.start, tzinfo=tzinfo)


def is_elapsed(slot: TimeSlot, on: date, now: datetime) -> bool:
    # A slot occurrence is elapsed from the instant it starts, not when it ends.
    today = now.date()
    if on < today:
        return True
    return on == today and slot_start(slot, on, now) <= now


def slot_status(
    slot: TimeSlot, on: date, reservation: ReservationRecord | None, now: datetime
) -> SlotStatus:
    if is_elapsed(slot, on, now):
        return SlotStatus.ELAPSED
    if reservation is not None:
        return SlotStatus.RESERVED
    return SlotStatus.AVAILABLE


def find_reservation(
    reservations: Iterable[ReservationRecord],
    slot_id: str,
    on: date,
    filiere_id: str | None = None,
) -> ReservationRecord | None:
    for reservation in reservations:
        if reservation.slot_id != slot_id or reservation.date != on:
            continue
        if filiere_id is not None and reservation.filiere_id != filiere_id:
            continue
        return reservation
    return None


def derive_week(
    snapshot: Snapshot,
    reference: date,
    now: datetime,
    filiere_id: str | None = None,
) -> list[SlotDisplay]:
    """Return one display record per catalog slot for the week of ``reference``.

    Without ``filiere_id`` any track's reservation marks the slot as reserved;
    with it, only reservations of that track count.
    """

    monday = week_monday(reference)
    displays: list[SlotDisplay] = []
    for slot in sorted(snapshot.slots, key=lambda item: item.sort_key):
        on = resolve_weekday(monday, slot.weekday)
        reservation = find_reservation(snapshot.reservations, slot.id, on, filiere_id)
        status = slot_status(slot, on, reservation, now)
        user = filiere = None
        if reservation is not None:
            user = snapshot.user(reservation.user_id)
            filiere = snapshot.filiere(reservation.filiere_id)
        displays.append(
            SlotDisplay(
                slot=slot,
                date=on,
                status=status,
                reservation=reservation,
                user=user,
                filiere=filiere,
            )
        )
    return displays


def week_reservations(
    reservations: Iterable[ReservationRecord],
    reference: date,
    filiere_id: str | None = None,
) -> list[ReservationRecord]:
    days = week_dates(reference)
    first, last = days[0], days[-1]
    selected = [
        reservation
        for reservation in reservations
        if first <= reservation.date <= last
        and (filiere_id is None or reservation.filiere_id == filiere_id)
    ]
    return sorted(selected, key=lambda item: (item.date, item.slot_id))


def split_upcoming(
    reservations: Iterable[ReservationRecord], today: date
) -> tuple[list[ReservationRecord], list[ReservationRecord]]:
    upcoming: list[ReservationRecord] = []
    past: list[ReservationRecord] = []
    for reservation in sorted(reservations, key=lambda item: item.date):
        if reservation.date < today:
            past.append(reservation)
        else:
            upcoming.append(reservation)
    past.reverse()
    return upcoming, past


def time_grid(displays: Iterable[SlotDisplay]) -> list[tuple[time, time]]:
    """Distinct time ranges of the week, used to lay out a weekday grid."""

    return sorted({(display.slot.start, display.slot.end) for display in displays})
