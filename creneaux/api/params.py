"""Query-string and lookup helpers shared by the namespaces."""
from __future__ import annotations

from datetime import date
from typing import Any

from flask import current_app, request

from ..errors import NotFound, ValidationError
from ..extensions import db
from ..utils import local_now, parse_date


def local_today() -> date:
    return local_now(current_app.config["LOCAL_TIMEZONE"]).date()


def date_arg(name: str, default: date | None = None) -> date | None:
    value = (request.args.get(name) or "").strip()
    if not value:
        return default
    try:
        return parse_date(value)
    except ValueError:
        raise ValidationError(
            [{"field": name, "message": "Le format de date doit être YYYY-MM-DD"}]
        ) from None


def json_payload() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return {}
    return dict(payload)


def get_or_404(model: Any, identifier: str, label: str, message: str) -> Any:
    instance = db.session.get(model, identifier)
    if instance is None:
        raise NotFound(label, identifier, message)
    return instance
