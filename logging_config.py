"""Logging setup for the device sync service.

Records are stamped in UTC and any device context passed through ``extra=``
(actuator ids, states, event names, channels) is appended to the line as
``key=value`` pairs. Actuator states print as ``on``/``off`` and whole state
maps as ``led1=on,led2=off``, matching the device's own command vocabulary.
"""

from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Any, Iterable, Mapping, Sequence

from settings import get_settings

_DEFAULT_EXTRA_KEYS = (
    "actuator_id",
    "state",
    "action",
    "event",
    "channel",
    "persisted",
    "reason",
    "states",
)

_configured = False


_ON_OFF_KEYS = frozenset({"state", "states"})


def _render_value(key: str, value: Any) -> str:
    if key in _ON_OFF_KEYS:
        if isinstance(value, bool):
            return "on" if value else "off"
        if isinstance(value, Mapping):
            return ",".join(f"{name}={_render_value(key, item)}" for name, item in value.items())
    return str(value)


class ContextualFormatter(logging.Formatter):
    """Formatter rendering UTC timestamps and appending known ``extra`` fields."""

    converter = time.gmtime

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context_parts: list[str] = []
        for key in self._extra_keys:
            if not hasattr(record, key):
                continue
            value = getattr(record, key, None)
            if value is None:
                continue
            context_parts.append(f"{key}={_render_value(key, value)}")
        if context_parts:
            return f"{message} | {' '.join(context_parts)}"
        return message


def configure_logging(level: str | int | None = None) -> None:
    """Configure service-wide logging; device context is appended as key=value pairs."""
    global _configured
    if _configured:
        return

    settings = get_settings()
    log_level = level if level is not None else settings.log_level

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "style": "%",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "level": log_level,
                    "formatter": "contextual",
                }
            },
            "loggers": {
                "httpx": {"level": "WARNING"},
                "uvicorn.access": {"level": "WARNING"},
            },
            "root": {"handlers": ["default"], "level": log_level},
        }
    )

    _configured = True
