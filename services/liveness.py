"""Device connectivity inferred from traffic timing."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Callable, Dict, Optional

DEFAULT_LIVENESS_WINDOW = timedelta(seconds=30)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LivenessTracker:
    """Tracks the last time the device was heard from."""

    def __init__(
        self,
        window: timedelta = DEFAULT_LIVENESS_WINDOW,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.window = window
        self._clock = clock
        self._last_activity: Optional[datetime] = None
        self._lock = Lock()

    @property
    def last_activity(self) -> Optional[datetime]:
        with self._lock:
            return self._last_activity

    def record_activity(self, now: Optional[datetime] = None) -> None:
        with self._lock:
            self._last_activity = now or self._clock()

    def is_active(self, now: Optional[datetime] = None) -> bool:
        with self._lock:
            last = self._last_activity
        if last is None:
            return False
        return (now or self._clock()) - last < self.window

    def status(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        return {"active": self.is_active(now), "last_ping": self.last_activity}
