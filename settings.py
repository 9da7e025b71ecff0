from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Optional, Tuple


_STORE_PATH_ENV = "DEVICE_STORE_PATH"
_ACTUATOR_IDS_ENV = "ACTUATOR_IDS"
_THRESHOLDS_ENV = "SPIKE_THRESHOLDS"
_STALENESS_ENV = "STALENESS_WINDOW_SECONDS"
_LIVENESS_ENV = "LIVENESS_WINDOW_SECONDS"
_BACKLOG_ENV = "EVENT_BACKLOG_SIZE"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_ACTUATOR_IDS = ("led1", "led2", "led3")
DEFAULT_THRESHOLDS = {"temperature": 2.0, "humidity": 5.0, "voltage": 2.0}


@dataclass(frozen=True)
class Settings:
    store_path: Optional[str]
    actuator_ids: Tuple[str, ...]
    spike_thresholds: Dict[str, float] = field(hash=False)
    staleness_window_seconds: float
    liveness_window_seconds: float
    event_backlog_size: int
    log_level: str


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_actuator_ids(default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(_ACTUATOR_IDS_ENV)
    if value is None:
        return default
    ids: list[str] = []
    for part in value.split(","):
        candidate = part.strip()
        if candidate and candidate not in ids:
            ids.append(candidate)
    return tuple(ids) or default


def _read_thresholds(default: Dict[str, float]) -> Dict[str, float]:
    """Parse ``name=value`` pairs; malformed pairs are ignored."""
    value = os.getenv(_THRESHOLDS_ENV)
    if value is None:
        return dict(default)
    thresholds: Dict[str, float] = {}
    for part in value.split(","):
        name, sep, raw = part.partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        try:
            parsed = float(raw.strip())
        except ValueError:
            continue
        if parsed > 0:
            thresholds[name] = parsed
    return thresholds or dict(default)


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/device_store.json"),
        actuator_ids=_read_actuator_ids(DEFAULT_ACTUATOR_IDS),
        spike_thresholds=_read_thresholds(DEFAULT_THRESHOLDS),
        staleness_window_seconds=_read_positive_float(_STALENESS_ENV, 30 * 60.0),
        liveness_window_seconds=_read_positive_float(_LIVENESS_ENV, 30.0),
        event_backlog_size=_read_positive_int(_BACKLOG_ENV, 500),
        log_level=_read_log_level("INFO"),
    )
