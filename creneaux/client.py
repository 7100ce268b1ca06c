"""HTTP backend for the sync layer, talking to a remote Créneaux API."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping

import httpx

from .domain import ReservationRecord, TimeSlot, TrackRef, UserRef
from .errors import StoreConnectionError, error_from_payload
from .guard import ReservationRequest
from .sync import ReservationBackend


logger = logging.getLogger(__name__)


class HttpReservationBackend(ReservationBackend):
    """Backend calling the REST API as the user named in ``user_id``.

    Transport failures surface as ``StoreConnectionError``; error bodies from
    the API are turned back into the matching ``ReservationError`` subclass.
    There is no push channel, so ``subscribe`` is inherited and returns None.
    """

    def __init__(
        self,
        base_url: str,
        user_id: str | None = None,
        *,
        user_header: str = "X-User-Id",
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.user_id = user_id
        self.user_header = user_header
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"), timeout=timeout, transport=transport
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpReservationBackend":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(
        self, method: str, path: str, *, user_id: str | None = None, **kwargs: Any
    ) -> Any:
        headers = {}
        acting = user_id or self.user_id
        if acting:
            headers[self.user_header] = acting
        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise StoreConnectionError(f"Impossible de joindre le serveur: {exc}") from exc

        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = {"message": response.text or None}
            raise error_from_payload(response.status_code, payload)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def list_slots(self) -> list[TimeSlot]:
        return [TimeSlot.from_dict(item) for item in self._request("GET", "/slots")]

    def list_users(self) -> list[UserRef]:
        return [UserRef.from_dict(item) for item in self._request("GET", "/users")]

    def list_filieres(self) -> list[TrackRef]:
        return [TrackRef.from_dict(item) for item in self._request("GET", "/filieres")]

    def list_reservations(
        self,
        filiere_id: str | None = None,
        date_range: tuple[date, date] | None = None,
    ) -> list[ReservationRecord]:
        params: dict[str, str] = {}
        if filiere_id:
            params["filiere_id"] = filiere_id
        if date_range is not None:
            params["start"] = date_range[0].isoformat()
            params["end"] = date_range[1].isoformat()
        items = self._request("GET", "/reservations", params=params)
        return [ReservationRecord.from_dict(item) for item in items]

    def create_reservation(self, request: ReservationRequest) -> ReservationRecord:
        payload = {name: value for name, value in request.as_payload().items() if value is not None}
        # The API books for the caller named in the header, not the body.
        user_id = payload.pop("user_id", None)
        created = self._request("POST", "/reservations", json=payload, user_id=user_id)
        return ReservationRecord.from_dict(created)

    def update_reservation(
        self,
        reservation_id: str,
        changes: Mapping[str, Any],
        requesting_user_id: str,
    ) -> ReservationRecord:
        updated = self._request(
            "PUT",
            f"/reservations/{reservation_id}",
            json={name: "" if value is None else value for name, value in changes.items()},
            user_id=requesting_user_id,
        )
        return ReservationRecord.from_dict(updated)

    def delete_reservation(self, reservation_id: str, requesting_user_id: str) -> None:
        self._request(
            "DELETE", f"/reservations/{reservation_id}", user_id=requesting_user_id
        )
