"""In-process fan-out of device events to dashboard subscribers."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from threading import Lock, RLock
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Protocol

from settings import get_settings

logger = logging.getLogger(__name__)

SENSOR_DATA_EVENT = "sensor_data"
SAVED_SENSOR_DATA_EVENT = "saved_sensor_data"
ACTUATOR_STATES_EVENT = "actuator_states"
COMMAND_UPDATE_EVENT = "command_update"


class Broadcaster(Protocol):
    def publish(self, event: str, payload: Mapping[str, Any]) -> None:
        ...


@dataclass(frozen=True, slots=True)
class BroadcastEvent:
    sequence: int
    event: str
    payload: Dict[str, Any]
    published_at: datetime


Subscriber = Callable[[BroadcastEvent], None]


class EventHub:
    """Best-effort publisher with a bounded backlog for polling clients.

    Events get a monotonically increasing sequence number and are delivered to
    subscribers in publish order. A failing subscriber is logged and skipped.
    """

    def __init__(self, backlog_size: int = 500) -> None:
        self._backlog: Deque[BroadcastEvent] = deque(maxlen=backlog_size)
        self._subscribers: List[Subscriber] = []
        self._sequence = 0
        self._lock = Lock()
        # Held across numbering and delivery so callbacks see sequence order.
        # Reentrant so a subscriber may publish from its own callback.
        self._delivery_lock = RLock()

    def publish(self, event: str, payload: Mapping[str, Any]) -> None:
        with self._delivery_lock:
            with self._lock:
                self._sequence += 1
                entry = BroadcastEvent(
                    sequence=self._sequence,
                    event=event,
                    payload=dict(payload),
                    published_at=datetime.now(timezone.utc),
                )
                self._backlog.append(entry)
                subscribers = list(self._subscribers)
            for subscriber in subscribers:
                try:
                    subscriber(entry)
                except Exception:  # noqa: BLE001 - delivery is best effort
                    logger.exception("Subscriber failed to handle event", extra={"event": event})

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register ``subscriber`` and return a callable that removes it."""

        with self._lock:
            self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return unsubscribe

    def events_since(self, after: int = 0, limit: Optional[int] = None) -> List[BroadcastEvent]:
        with self._lock:
            events = [entry for entry in self._backlog if entry.sequence > after]
        if limit is not None:
            events = events[:limit]
        return events

    @property
    def latest_sequence(self) -> int:
        with self._lock:
            return self._sequence


@lru_cache
def build_default_hub() -> EventHub:
    return EventHub(backlog_size=get_settings().event_backlog_size)
