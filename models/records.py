"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from models.errors import InvalidActuator


@dataclass(frozen=True, slots=True)
class SensorSample:
    """A single device reading.

    ``channels`` maps each configured numeric channel to its value, or ``None``
    when the device did not report it. ``None`` and ``0.0`` are different
    readings.
    """

    channels: Mapping[str, Optional[float]]
    fan_on: bool
    timestamp: datetime
    motion: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "channels", MappingProxyType(dict(self.channels)))

    def value(self, channel: str) -> Optional[float]:
        return self.channels.get(channel)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = dict(self.channels)
        payload["fan_on"] = self.fan_on
        payload["motion"] = self.motion
        payload["timestamp"] = self.timestamp.isoformat()
        return payload


@dataclass(frozen=True, slots=True)
class PendingCommand:
    """An action waiting for the device to pick it up."""

    action: str
    created_at: datetime


@dataclass(frozen=True)
class ActuatorCatalog:
    """Closed, ordered set of actuator ids fixed at configuration load."""

    ids: Tuple[str, ...]
    _members: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.ids:
            raise ValueError("At least one actuator id must be configured.")
        if len(set(self.ids)) != len(self.ids):
            raise ValueError("Actuator ids must be unique.")
        object.__setattr__(self, "_members", frozenset(self.ids))

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "ActuatorCatalog":
        return cls(ids=tuple(names))

    def __contains__(self, actuator_id: object) -> bool:
        return actuator_id in self._members

    def __iter__(self):
        return iter(self.ids)

    def __len__(self) -> int:
        return len(self.ids)

    def validate(self, actuator_id: str) -> str:
        if actuator_id not in self._members:
            raise InvalidActuator(actuator_id, self.ids)
        return actuator_id

    def all_off(self) -> Dict[str, bool]:
        return {actuator_id: False for actuator_id in self.ids}
