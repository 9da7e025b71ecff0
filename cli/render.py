from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_value(value: Any) -> str:
    return "n/a" if value is None else str(value)


def render_status(payload: Dict[str, Any]) -> None:
    device = payload.get("device") or {}
    echo_heading("Device")
    active = bool(device.get("active"))
    typer.secho(
        f"status: {'active' if active else 'inactive'}",
        fg=typer.colors.GREEN if active else typer.colors.YELLOW,
    )
    typer.echo(f"last_ping: {_format_value(device.get('last_ping'))}")

    typer.echo()
    echo_heading("Actuators")
    states = payload.get("states") or {}
    if not states:
        typer.echo("No actuators reported.")
        return
    for actuator_id, state in states.items():
        typer.echo(f"  - {actuator_id}: {'on' if state else 'off'}")


def render_sample(sample: Optional[Dict[str, Any]]) -> None:
    echo_heading("Latest Reading")
    if not sample:
        typer.echo("No sensor data stored.")
        return
    echo_key_values([("timestamp", sample.get("timestamp"))])
    channels = sample.get("channels") or {}
    echo_key_values((name, _format_value(value)) for name, value in channels.items())
    echo_key_values(
        [
            ("fan_on", sample.get("fan_on")),
            ("motion", sample.get("motion")),
        ]
    )


def render_history(samples: List[Dict[str, Any]]) -> None:
    echo_heading("Stored Readings")
    if not samples:
        typer.echo("No sensor data stored.")
        return
    for sample in samples:
        channels = sample.get("channels") or {}
        values = " ".join(f"{name}={_format_value(value)}" for name, value in channels.items())
        typer.echo(f"  - {sample.get('timestamp')} {values} fan_on={sample.get('fan_on')}")
