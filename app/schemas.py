"""Pydantic schemas for the HTTP API layer and the persisted records."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field

from models.records import SensorSample


class SensorSampleRecord(BaseModel):
    """Stored representation of a sensor sample."""

    channels: Dict[str, Optional[float]] = Field(default_factory=dict)
    fan_on: bool
    motion: bool = False
    timestamp: datetime

    @classmethod
    def from_sample(cls, sample: SensorSample) -> "SensorSampleRecord":
        return cls(
            channels=dict(sample.channels),
            fan_on=sample.fan_on,
            motion=sample.motion,
            timestamp=sample.timestamp,
        )

    def to_sample(self) -> SensorSample:
        return SensorSample(
            channels=dict(self.channels),
            fan_on=self.fan_on,
            motion=self.motion,
            timestamp=self.timestamp,
        )


class ActuatorStateRecord(BaseModel):
    """Persisted state of one actuator."""

    actuator_id: str
    state: bool
    updated_at: datetime


class MessageResponse(BaseModel):
    message: str


class SensorIngestResponse(BaseModel):
    """Reply sent to the device after a reading was accepted."""

    message: str = "Data received successfully"
    persisted: bool = Field(
        ..., description="Whether the reading was significant enough to be stored."
    )


class CommandRequest(BaseModel):
    action: str = Field(..., description="Opaque action token, e.g. 'led1_on'.")


class CommandResponse(BaseModel):
    command: Optional[str] = None


class AckRequest(BaseModel):
    """Device confirmation that an actuator change was physically applied."""

    actuator: str = Field(..., validation_alias=AliasChoices("actuator", "led"))
    state: bool


class ActuatorStatesPayload(BaseModel):
    states: Dict[str, bool]


class DeviceStatus(BaseModel):
    active: bool
    last_ping: Optional[datetime] = None


class LastUpdateResponse(BaseModel):
    last_update: Optional[datetime] = None


class BroadcastEventOut(BaseModel):
    sequence: int = Field(..., ge=1)
    event: str
    payload: Dict[str, Any]
    published_at: datetime


class EventFeed(BaseModel):
    """Backlog slice returned to polling dashboards."""

    events: List[BroadcastEventOut] = Field(default_factory=list)
    latest_sequence: int = Field(..., ge=0)
