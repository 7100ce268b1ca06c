from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo


DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"

WEEKDAYS: tuple[str, ...] = ("Lundi", "Mardi", "Mercredi", "Jeudi", "Vendredi")


def parse_date(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value.strip(), DATE_FORMAT).date()


def parse_time(value: str | time) -> time:
    if isinstance(value, time):
        return value
    return datetime.strptime(value.strip(), TIME_FORMAT).time()


def format_time(value: time) -> str:
    return value.strftime(TIME_FORMAT)


def week_monday(reference: date) -> date:
    """Return the Monday of the week shown for ``reference``.

    Saturday still shows the week that is ending. Sunday already shows the
    coming week.
    """

    if reference.weekday() == 6:
        return reference + timedelta(days=1)
    return reference - timedelta(days=reference.weekday())


def week_dates(reference: date) -> list[date]:
    monday = week_monday(reference)
    return [monday + timedelta(days=offset) for offset in range(len(WEEKDAYS))]


def weekday_index(label: str) -> int:
    try:
        return WEEKDAYS.index(label)
    except ValueError as exc:
        raise ValueError(f"Jour de la semaine invalide: {label!r}") from exc


def weekday_label(day: date) -> str | None:
    index = day.weekday()
    if index >= len(WEEKDAYS):
        return None
    return WEEKDAYS[index]


def resolve_weekday(monday: date, label: str) -> date:
    return monday + timedelta(days=weekday_index(label))


def local_now(timezone_name: str) -> datetime:
    """Current wall-clock time in ``timezone_name``, returned naive."""

    return datetime.now(ZoneInfo(timezone_name)).replace(tzinfo=None)
