from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_history, render_sample, render_status


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for inspecting and commanding the connected device.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show device liveness and actuator states."""
    state = _get_state(ctx)
    render_status(state.client.get_status())


@app.command("send")
def send_command(
    ctx: typer.Context,
    action: str = typer.Argument(..., help="Action token for the device, e.g. led1_on."),
) -> None:
    """Queue an action for the device, replacing any pending one."""
    state = _get_state(ctx)
    state.client.send_command(action)
    typer.secho(f"Command queued. action={action}", fg=typer.colors.GREEN)
    typer.echo("The device applies it on its next poll; watch `status` for the ack.")


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the most recently stored reading."""
    state = _get_state(ctx)
    render_sample(state.client.get_latest())


@app.command("history")
def history_command(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", min=1, max=1000, help="Number of readings."),
) -> None:
    """List stored readings, oldest first."""
    state = _get_state(ctx)
    render_history(state.client.get_history(limit))
