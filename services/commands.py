"""Single-slot command channel between dashboards and the polling device."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Optional

from models.records import PendingCommand
from services.broadcaster import COMMAND_UPDATE_EVENT, Broadcaster

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CommandChannel:
    """Holds at most one pending action for the device.

    A new command replaces the pending one. The device drains the slot with
    :meth:`poll_and_clear`; only a single poller is supported because delivery
    is not fanned out. Nothing is retried: a command the device never polls is
    simply lost, and the acknowledgment posted by the device is the only
    confirmation that it was applied.
    """

    def __init__(
        self,
        broadcaster: Broadcaster,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.broadcaster = broadcaster
        self._clock = clock
        self._pending: Optional[PendingCommand] = None
        self._lock = Lock()

    def set_command(self, action: str) -> PendingCommand:
        action = (action or "").strip()
        if not action:
            raise ValueError("Missing action.")

        command = PendingCommand(action=action, created_at=self._clock())
        with self._lock:
            replaced = self._pending
            self._pending = command

        if replaced is not None:
            logger.info(
                "Replacing undelivered command",
                extra={"action": action, "reason": f"replaced {replaced.action!r}"},
            )
        else:
            logger.info("Command set", extra={"action": action})

        self.broadcaster.publish(COMMAND_UPDATE_EVENT, {"action": action})
        return command

    def poll_and_clear(self) -> Optional[str]:
        with self._lock:
            command, self._pending = self._pending, None
        if command is None:
            return None
        logger.info("Command delivered to device", extra={"action": command.action})
        return command.action

    def peek(self) -> Optional[PendingCommand]:
        with self._lock:
            return self._pending
