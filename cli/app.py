from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_reading, render_readings, render_stats


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for pushing readings to and querying the sensor hub.",
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
        help="Sensor hub base URL (defaults to API_BASE_URL env or http://localhost:3000).",
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


@app.command("send")
def send_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Identifier of the sensor node."),
    temperature: float = typer.Argument(..., help="Temperature in degrees Celsius."),
    humidity: float = typer.Argument(..., help="Relative humidity in percent."),
    location: Optional[str] = typer.Option(None, "--location", "-l", help="Where the sensor sits."),
    timestamp: Optional[int] = typer.Option(None, "--timestamp", help="Device time marker."),
    query: bool = typer.Option(
        False,
        "--query/--body",
        help="Send fields as URL query parameters instead of a JSON body.",
    ),
) -> None:
    """Push a single reading to the hub."""
    state = _get_state(ctx)
    reading = state.client.send_reading(
        device_id,
        temperature,
        humidity,
        location=location,
        timestamp=timestamp,
        use_query=query,
    )
    typer.secho(f"Reading accepted. id={reading.get('id')}", fg=typer.colors.GREEN)
    render_reading(reading)


@app.command("list")
def list_command(
    ctx: typer.Context,
    device: Optional[str] = typer.Option(None, "--device", "-d", help="Only show this device."),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Maximum readings to show."),
) -> None:
    """Show the most recent readings, newest first."""
    state = _get_state(ctx)
    payload = state.client.list_readings(device_id=device, limit=limit)
    render_readings(payload)


@app.command("stats")
def stats_command(ctx: typer.Context) -> None:
    """Show aggregate statistics across retained readings."""
    state = _get_state(ctx)
    payload = state.client.get_stats()
    render_stats(payload)
