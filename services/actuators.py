"""Authoritative actuator state with mutual exclusion."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, Mapping

from datastore.device_store import DeviceStateTable
from models.errors import StorageError
from models.records import ActuatorCatalog
from services.broadcaster import ACTUATOR_STATES_EVENT, Broadcaster

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActuatorStateStore:
    """Owns the actuator map, persists every transition and broadcasts it.

    Turning one actuator on turns every other actuator off. The in-memory map
    is the source of truth for the process: a failed write is logged and the
    transition stands. Transitions are serialized so the broadcasts go out in
    the order the transitions were applied, while readers only wait on the
    short state lock and already see a transition whose persistence is still
    in flight.
    """

    def __init__(
        self,
        catalog: ActuatorCatalog,
        table: DeviceStateTable,
        broadcaster: Broadcaster,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.catalog = catalog
        self.table = table
        self.broadcaster = broadcaster
        self._clock = clock
        self._states: Dict[str, bool] = catalog.all_off()
        self._state_lock = Lock()
        self._transition_lock = Lock()

    def initialize(self) -> None:
        """Load persisted states, falling back to all-off on any failure."""
        try:
            rows = self.table.load_all_actuator_states()
        except Exception:  # noqa: BLE001 - startup must not fail on storage
            logger.exception("Could not load actuator states; defaulting to all off")
            with self._state_lock:
                self._states = self.catalog.all_off()
            return

        loaded = self.catalog.all_off()
        for actuator_id, state in rows:
            if actuator_id not in self.catalog:
                logger.warning(
                    "Ignoring stored state for unknown actuator",
                    extra={"actuator_id": actuator_id},
                )
                continue
            loaded[actuator_id] = bool(state)

        with self._state_lock:
            self._states = loaded
        logger.info("Actuator states loaded", extra={"states": loaded})

    def apply_ack(self, actuator_id: str, new_state: bool) -> Dict[str, bool]:
        self.catalog.validate(actuator_id)
        new_state = bool(new_state)

        with self._transition_lock:
            with self._state_lock:
                self._states[actuator_id] = new_state
                if new_state:
                    for other in self._states:
                        if other != actuator_id:
                            self._states[other] = False
                snapshot = dict(self._states)

            logger.info(
                "Actuator acknowledged",
                extra={"actuator_id": actuator_id, "state": new_state},
            )
            self._persist_and_publish(snapshot)
        return snapshot

    def sync_full_state(self, reported: Mapping[str, bool]) -> Dict[str, bool]:
        """Overwrite the map with a snapshot reported by the device.

        The device is trusted to report a consistent snapshot, so mutual
        exclusion is not re-applied here.
        """
        for actuator_id in reported:
            self.catalog.validate(actuator_id)

        with self._transition_lock:
            with self._state_lock:
                for actuator_id, state in reported.items():
                    self._states[actuator_id] = bool(state)
                snapshot = dict(self._states)

            if sum(snapshot.values()) > 1:
                logger.warning(
                    "Device reported more than one actuator on",
                    extra={"states": snapshot},
                )
            else:
                logger.info("Actuator states synced from device", extra={"states": snapshot})
            self._persist_and_publish(snapshot)
        return snapshot

    def get_all(self) -> Dict[str, bool]:
        with self._state_lock:
            return dict(self._states)

    def _persist_and_publish(self, snapshot: Dict[str, bool]) -> None:
        updated_at = self._clock()
        for actuator_id, state in snapshot.items():
            try:
                self.table.upsert_actuator_state(actuator_id, state, updated_at)
            except StorageError:
                logger.exception(
                    "Failed to persist actuator state",
                    extra={"actuator_id": actuator_id, "state": state},
                )
        self.broadcaster.publish(ACTUATOR_STATES_EVENT, snapshot)
