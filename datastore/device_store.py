from __future__ import annotations
import json
import logging
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError

from app.schemas import ActuatorStateRecord, SensorSampleRecord
from models.errors import StorageError
from models.records import SensorSample
from settings import get_settings

logger = logging.getLogger(__name__)


class DeviceStateTable:
    """Key-value store for actuator states, stored samples and the last-update marker.

    Every write is flushed to ``persistence_path`` when one is configured. A
    write that cannot be flushed raises :class:`StorageError` and leaves the
    in-memory table as it was before the call.
    """

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._actuators: Dict[str, ActuatorStateRecord] = {}
        self._samples: List[SensorSampleRecord] = []
        self._last_update: Optional[datetime] = None
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def upsert_actuator_state(
        self, actuator_id: str, state: bool, updated_at: datetime
    ) -> None:
        record = ActuatorStateRecord(
            actuator_id=actuator_id, state=state, updated_at=updated_at
        )
        with self._lock:
            previous = self._actuators.get(actuator_id)
            self._actuators[actuator_id] = record
            try:
                self._persist()
            except StorageError:
                if previous is None:
                    self._actuators.pop(actuator_id, None)
                else:
                    self._actuators[actuator_id] = previous
                raise

    def load_all_actuator_states(self) -> List[Tuple[str, bool]]:
        with self._lock:
            return [(record.actuator_id, record.state) for record in self._actuators.values()]

    def insert_sample(self, sample: SensorSample) -> None:
        record = SensorSampleRecord.from_sample(sample)
        with self._lock:
            previous_update = self._last_update
            self._samples.append(record)
            self._last_update = sample.timestamp
            try:
                self._persist()
            except StorageError:
                self._samples.pop()
                self._last_update = previous_update
                raise

    def load_latest_sample(self) -> Optional[SensorSample]:
        with self._lock:
            if not self._samples:
                return None
            latest = max(self._samples, key=lambda record: record.timestamp)
            return latest.to_sample()

    def list_samples(self, limit: int = 100) -> List[SensorSample]:
        """Return up to ``limit`` stored samples, newest first."""

        with self._lock:
            ordered = sorted(self._samples, key=lambda record: record.timestamp, reverse=True)
            return [record.to_sample() for record in ordered[: max(limit, 0)]]

    def last_update(self) -> Optional[datetime]:
        with self._lock:
            return self._last_update

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            "actuator_states": {
                actuator_id: record.model_dump(mode="json")
                for actuator_id, record in self._actuators.items()
            },
            "samples": [record.model_dump(mode="json") for record in self._samples],
            "last_update": self._last_update.isoformat() if self._last_update else None,
        }
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))
        except OSError as exc:
            raise StorageError(
                f"Could not write table {self.name!r} to {self.persistence_path}."
            ) from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, ValueError):
            data = {}

        if not isinstance(data, dict):
            logger.warning(
                "Ignoring store file with unexpected layout",
                extra={"reason": type(data).__name__},
            )
            data = {}

        actuator_rows = data.get("actuator_states")
        if isinstance(actuator_rows, dict):
            for actuator_id, payload in actuator_rows.items():
                try:
                    self._actuators[actuator_id] = ActuatorStateRecord.model_validate(payload)
                except ValidationError:
                    logger.warning(
                        "Skipping unreadable actuator row",
                        extra={"actuator_id": actuator_id, "reason": "validation failed"},
                    )

        sample_rows = data.get("samples")
        if isinstance(sample_rows, list):
            for payload in sample_rows:
                try:
                    self._samples.append(SensorSampleRecord.model_validate(payload))
                except ValidationError:
                    logger.warning(
                        "Skipping unreadable sample row", extra={"reason": "validation failed"}
                    )

        last_update = data.get("last_update")
        if isinstance(last_update, str):
            try:
                self._last_update = datetime.fromisoformat(last_update)
            except ValueError:
                logger.warning("Ignoring unreadable last_update", extra={"reason": last_update})
        if self._last_update is None and self._samples:
            self._last_update = max(record.timestamp for record in self._samples)


@lru_cache
def build_default_table(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> DeviceStateTable:
    settings = get_settings()
    table_name = "device_state" if name is None else name
    table_path = settings.store_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return DeviceStateTable(name=table_name, persistence_path=persistence)
