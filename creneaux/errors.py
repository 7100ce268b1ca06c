"""Error taxonomy shared by the guard, the repositories and the API."""
from __future__ import annotations

from typing import Any


class ReservationError(Exception):
    """Base class for every reservation failure surfaced to users."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"message": self.message, "kind": self.kind}
        payload.update(self.details)
        return payload


class MissingField(ReservationError):
    kind = "missing_field"

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"Le champ « {field} » est obligatoire", field=field)
        self.field = field


class ValidationError(ReservationError):
    kind = "validation_error"

    def __init__(self, errors: list[dict[str, str]], message: str | None = None) -> None:
        if message is None:
            message = "; ".join(f"{error['field']}: {error['message']}" for error in errors)
        super().__init__(message, errors=errors)
        self.errors = errors


class NotFound(ReservationError):
    kind = "not_found"
    status_code = 404

    def __init__(self, entity: str, identifier: Any, message: str | None = None) -> None:
        super().__init__(
            message or f"{entity} introuvable ({identifier})",
            entity=entity,
            identifier=identifier,
        )
        self.entity = entity
        self.identifier = identifier


class ConflictError(ReservationError):
    kind = "conflict"
    status_code = 409


class SlotAlreadyBooked(ConflictError):
    kind = "slot_already_booked"

    def __init__(self, existing: Any, message: str | None = None) -> None:
        summary = existing.as_dict() if hasattr(existing, "as_dict") else existing
        super().__init__(
            message or "Ce créneau est déjà réservé à cette date",
            existing_reservation=summary,
        )
        self.existing = existing


class Forbidden(ReservationError):
    kind = "forbidden"
    status_code = 403


class StoreConnectionError(ReservationError):
    kind = "connection_error"
    status_code = 503


_KINDS: dict[str, type[ReservationError]] = {
    cls.kind: cls
    for cls in (
        MissingField,
        ValidationError,
        NotFound,
        ConflictError,
        SlotAlreadyBooked,
        Forbidden,
        StoreConnectionError,
    )
}


def error_from_payload(status_code: int, payload: dict[str, Any] | None) -> ReservationError:
    """Rebuild the exception described by an API error body."""

    payload = payload or {}
    message = payload.get("message") or f"HTTP {status_code}"
    kind = payload.get("kind")
    cls = _KINDS.get(kind or "")
    if cls is MissingField:
        return MissingField(payload.get("field", "?"), message)
    if cls is ValidationError:
        return ValidationError(payload.get("errors") or [], message)
    if cls is NotFound:
        return NotFound(payload.get("entity", "?"), payload.get("identifier"), message)
    if cls is SlotAlreadyBooked:
        return SlotAlreadyBooked(payload.get("existing_reservation"), message)
    if cls is not None:
        return cls(message)
    if status_code == 403:
        return Forbidden(message)
    if status_code == 404:
        return NotFound("resource", None, message)
    if status_code == 409:
        return ConflictError(message)
    if status_code >= 500:
        return StoreConnectionError(message)
    return ValidationError([], message)
