"""Exceptions raised by the device synchronization services."""

from __future__ import annotations

from typing import Iterable


class InvalidActuator(ValueError):
    """An ack or sync referenced an actuator outside the configured set."""

    def __init__(self, actuator_id: str, known: Iterable[str] = ()) -> None:
        self.actuator_id = actuator_id
        self.known = tuple(known)
        detail = f"Unknown actuator {actuator_id!r}."
        if self.known:
            detail += f" Expected one of: {', '.join(self.known)}."
        super().__init__(detail)


class MalformedSample(ValueError):
    """An ingestion request is missing a required field."""


class StorageError(RuntimeError):
    """The persistence layer failed to read or write."""
