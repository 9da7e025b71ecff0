"""Ingestion boundary for readings posted by the device."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable, Dict, Mapping, Optional

from datastore.device_store import DeviceStateTable
from models.errors import MalformedSample
from models.records import SensorSample
from services.broadcaster import SAVED_SENSOR_DATA_EVENT, SENSOR_DATA_EVENT, Broadcaster
from services.liveness import LivenessTracker
from services.spike_filter import SpikeFilter

logger = logging.getLogger(__name__)

_TRUE_TOKENS = {"true", "on", "1"}
_FALSE_TOKENS = {"false", "off", "0"}

_UNSET = object()

# Key names sent by the device firmware, accepted alongside the canonical ones.
_FIELD_ALIASES: Dict[str, tuple] = {
    "fan_on": ("fanOn",),
    "temperature": ("temperature1",),
    "humidity": ("humidity1",),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class IngestionResult:
    sample: SensorSample
    persisted: bool


def parse_optional_number(value: Any) -> Optional[float]:
    """Normalize a raw channel value; anything that is not a finite number is absent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return None
        try:
            number = float(candidate)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def read_field(raw: Mapping[str, Any], name: str) -> Any:
    """Return ``raw[name]``, falling back to the firmware spelling of the key."""
    value = raw.get(name)
    if value is None:
        for alias in _FIELD_ALIASES.get(name, ()):
            value = raw.get(alias)
            if value is not None:
                break
    return value


def parse_flag(value: Any) -> Optional[bool]:
    """Interpret a boolean-like value, returning ``None`` when it is not one."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        token = value.strip().lower()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False
    return None


class IngestionService:
    """Turns raw readings into samples, filters them and fans them out.

    The read-baseline, decide, persist and update-watermark steps run under one
    lock, so the baseline used for a decision is always the last sample that
    was actually stored.
    """

    def __init__(
        self,
        table: DeviceStateTable,
        spike_filter: SpikeFilter,
        liveness: LivenessTracker,
        broadcaster: Broadcaster,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.table = table
        self.spike_filter = spike_filter
        self.liveness = liveness
        self.broadcaster = broadcaster
        self._clock = clock
        self._watermark: Any = _UNSET
        self._watermark_lock = Lock()

    @property
    def watermark(self) -> Optional[SensorSample]:
        with self._watermark_lock:
            return self._current_baseline()

    def parse_reading(self, raw: Mapping[str, Any]) -> SensorSample:
        """Validate a raw reading; samples are stamped with server time."""
        missing = [name for name in ("fan_on", "timestamp") if read_field(raw, name) is None]
        if missing:
            raise MalformedSample(f"Missing required fields: {', '.join(missing)}")

        raw_fan = read_field(raw, "fan_on")
        fan_on = parse_flag(raw_fan)
        if fan_on is None:
            raise MalformedSample(f"Invalid fan_on value: {raw_fan!r}")

        channels: Dict[str, Optional[float]] = {}
        for channel in self.spike_filter.channels:
            raw_value = read_field(raw, channel)
            value = parse_optional_number(raw_value)
            if value is None and raw_value is not None:
                logger.warning(
                    "Discarding non-numeric channel value",
                    extra={"channel": channel, "reason": repr(raw_value)},
                )
            channels[channel] = value

        motion = parse_flag(raw.get("motion")) or False
        return SensorSample(
            channels=channels,
            fan_on=fan_on,
            motion=motion,
            timestamp=self._clock(),
        )

    def ingest(self, raw: Mapping[str, Any]) -> IngestionResult:
        try:
            sample = self.parse_reading(raw)
        except MalformedSample as exc:
            logger.warning("Rejected sensor reading", extra={"reason": str(exc)})
            raise

        with self._watermark_lock:
            baseline = self._current_baseline()
            persisted = self.spike_filter.should_persist(sample, baseline)
            if persisted:
                self.table.insert_sample(sample)
                self._watermark = sample

        self.liveness.record_activity(sample.timestamp)

        payload = sample.to_payload()
        self.broadcaster.publish(SENSOR_DATA_EVENT, payload)
        if persisted:
            self.broadcaster.publish(SAVED_SENSOR_DATA_EVENT, payload)

        logger.debug("Sensor reading accepted", extra={"persisted": persisted})
        return IngestionResult(sample=sample, persisted=persisted)

    def _current_baseline(self) -> Optional[SensorSample]:
        if self._watermark is _UNSET:
            self._watermark = self.table.load_latest_sample()
        return self._watermark
