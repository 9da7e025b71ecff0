"""Wiring of the device synchronization services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

from datastore.device_store import DeviceStateTable, build_default_table
from models.records import ActuatorCatalog
from services.actuators import ActuatorStateStore
from services.broadcaster import EventHub, build_default_hub
from services.commands import CommandChannel
from services.ingestion import IngestionService
from services.liveness import LivenessTracker
from services.spike_filter import SpikeFilter
from settings import Settings, get_settings


@dataclass
class DeviceRuntime:
    """Owned state objects shared by the HTTP layer."""

    table: DeviceStateTable
    hub: EventHub
    liveness: LivenessTracker
    commands: CommandChannel
    actuators: ActuatorStateStore
    ingestion: IngestionService

    def start(self) -> None:
        self.actuators.initialize()


def build_runtime(table: DeviceStateTable, hub: EventHub, settings: Settings) -> DeviceRuntime:
    liveness = LivenessTracker(window=timedelta(seconds=settings.liveness_window_seconds))
    spike_filter = SpikeFilter(
        thresholds=settings.spike_thresholds,
        staleness_window=timedelta(seconds=settings.staleness_window_seconds),
    )
    return DeviceRuntime(
        table=table,
        hub=hub,
        liveness=liveness,
        commands=CommandChannel(broadcaster=hub),
        actuators=ActuatorStateStore(
            catalog=ActuatorCatalog.from_names(settings.actuator_ids),
            table=table,
            broadcaster=hub,
        ),
        ingestion=IngestionService(
            table=table,
            spike_filter=spike_filter,
            liveness=liveness,
            broadcaster=hub,
        ),
    )


@lru_cache
def build_default_runtime() -> DeviceRuntime:
    """Factory that wires the runtime with the default table and hub."""
    return build_runtime(build_default_table(), build_default_hub(), get_settings())
