"""HTTP route definitions for the device and the dashboards."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from app.schemas import (
    AckRequest,
    ActuatorStatesPayload,
    BroadcastEventOut,
    CommandRequest,
    CommandResponse,
    DeviceStatus,
    EventFeed,
    LastUpdateResponse,
    MessageResponse,
    SensorIngestResponse,
    SensorSampleRecord,
)
from models.errors import InvalidActuator, MalformedSample, StorageError
from services.runtime import DeviceRuntime, build_default_runtime

logger = logging.getLogger(__name__)

router = APIRouter()
device_router = APIRouter(prefix="/api")


def get_runtime() -> DeviceRuntime:
    return build_default_runtime()


@device_router.post(
    "/sensor-data",
    response_model=SensorIngestResponse,
    summary="Receive a reading from the device.",
)
def receive_sensor_data(
    reading: Dict[str, Any] = Body(...),
    runtime: DeviceRuntime = Depends(get_runtime),
) -> SensorIngestResponse:
    try:
        result = runtime.ingestion.ingest(reading)
    except MalformedSample as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except StorageError as exc:
        logger.exception("Failed to store sensor reading")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store sensor reading.",
        ) from exc
    return SensorIngestResponse(persisted=result.persisted)


@device_router.get(
    "/sensor-data",
    response_model=List[SensorSampleRecord],
    summary="Stored readings, oldest first.",
)
def list_sensor_data(
    limit: int = Query(100, ge=1, le=1000),
    runtime: DeviceRuntime = Depends(get_runtime),
) -> List[SensorSampleRecord]:
    samples = runtime.table.list_samples(limit)
    return [SensorSampleRecord.from_sample(sample) for sample in reversed(samples)]


@device_router.get(
    "/sensor-data/latest",
    response_model=SensorSampleRecord,
    summary="Most recently stored reading.",
)
def latest_sensor_data(
    runtime: DeviceRuntime = Depends(get_runtime),
) -> SensorSampleRecord:
    sample = runtime.table.load_latest_sample()
    if sample is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No sensor data found.",
        )
    return SensorSampleRecord.from_sample(sample)


@device_router.get("/last-update", response_model=LastUpdateResponse)
def last_update(runtime: DeviceRuntime = Depends(get_runtime)) -> LastUpdateResponse:
    return LastUpdateResponse(last_update=runtime.table.last_update())


@device_router.get(
    "/device-status",
    response_model=DeviceStatus,
    summary="Whether the device has been heard from recently.",
)
def device_status(runtime: DeviceRuntime = Depends(get_runtime)) -> DeviceStatus:
    return DeviceStatus(**runtime.liveness.status())


@device_router.post(
    "/command",
    response_model=MessageResponse,
    summary="Queue an action for the device, replacing any pending one.",
)
def post_command(
    request: CommandRequest,
    runtime: DeviceRuntime = Depends(get_runtime),
) -> MessageResponse:
    try:
        runtime.commands.set_command(request.action)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return MessageResponse(message="Command set")


@device_router.get(
    "/command",
    response_model=CommandResponse,
    summary="Device poll: return and clear the pending action.",
)
def poll_command(runtime: DeviceRuntime = Depends(get_runtime)) -> CommandResponse:
    return CommandResponse(command=runtime.commands.poll_and_clear())


@device_router.post(
    "/ack",
    response_model=MessageResponse,
    summary="Device confirmation that an actuator change was applied.",
)
def post_ack(
    ack: AckRequest,
    runtime: DeviceRuntime = Depends(get_runtime),
) -> MessageResponse:
    try:
        runtime.actuators.apply_ack(ack.actuator, ack.state)
    except InvalidActuator as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return MessageResponse(message="ack received")


@device_router.get("/actuator-states", response_model=ActuatorStatesPayload)
def get_actuator_states(
    runtime: DeviceRuntime = Depends(get_runtime),
) -> ActuatorStatesPayload:
    return ActuatorStatesPayload(states=runtime.actuators.get_all())


@device_router.post(
    "/actuator-states",
    response_model=MessageResponse,
    summary="Device report of its complete actuator state.",
)
def sync_actuator_states(
    payload: ActuatorStatesPayload,
    runtime: DeviceRuntime = Depends(get_runtime),
) -> MessageResponse:
    try:
        runtime.actuators.sync_full_state(payload.states)
    except InvalidActuator as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return MessageResponse(message="states synced")


@device_router.get(
    "/events",
    response_model=EventFeed,
    summary="Broadcast events published after the given sequence number.",
)
def get_events(
    after: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    runtime: DeviceRuntime = Depends(get_runtime),
) -> EventFeed:
    latest = runtime.hub.latest_sequence
    events = runtime.hub.events_since(after=after, limit=limit)
    return EventFeed(
        events=[
            BroadcastEventOut(
                sequence=entry.sequence,
                event=entry.event,
                payload=entry.payload,
                published_at=entry.published_at,
            )
            for entry in events
        ],
        latest_sequence=latest,
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}


router.include_router(device_router)
