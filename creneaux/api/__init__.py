"""REST API definition using Flask-RESTX."""
from __future__ import annotations

from typing import Any

from flask_restx import Api

from ..errors import ReservationError
from .availability import ns as availability_ns
from .filieres import ns as filieres_ns
from .health import ns as health_ns
from .reservations import ns as reservations_ns
from .slots import ns as slots_ns
from .supervision import ns as supervision_ns
from .users import ns as users_ns


def handle_reservation_error(error: ReservationError) -> tuple[dict[str, Any], int]:
    return error.to_dict(), error.status_code


def register_namespaces(api: Api) -> None:
    """Register all API namespaces once on the shared ``Api`` object."""
    if health_ns in api.namespaces:
        return
    api.errorhandler(ReservationError)(handle_reservation_error)
    api.add_namespace(health_ns, path="/health")
    api.add_namespace(users_ns, path="/users")
    api.add_namespace(filieres_ns, path="/filieres")
    api.add_namespace(slots_ns, path="/slots")
    api.add_namespace(reservations_ns, path="/reservations")
    api.add_namespace(availability_ns, path="/availability")
    api.add_namespace(supervision_ns, path="/supervision")
