"""In-process change notification.

Subscribers receive coarse "something changed" events: the payload names the
affected reservation but consumers are expected to refetch rather than patch
their state from it.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable


logger = logging.getLogger(__name__)

RESERVATION_CREATED = "reservation.created"
RESERVATION_UPDATED = "reservation.updated"
RESERVATION_DELETED = "reservation.deleted"


@dataclass(frozen=True)
class ChangeEvent:
    type: str
    payload: dict[str, Any] = field(default_factory=dict)


Subscriber = Callable[[ChangeEvent], None]


class ChangeNotifier:
    """Publish/subscribe hub shared by the repository and its listeners."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event_type: str, payload: dict[str, Any] | None = None) -> ChangeEvent:
        event = ChangeEvent(type=event_type, payload=dict(payload or {}))
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                # The write is committed by now; remaining subscribers still run.
                logger.exception("Change subscriber failed on %s", event_type)
        return event

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)
