from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def format_reading(reading: Mapping[str, Any]) -> str:
    return (
        f"[{reading.get('received_at')}] {reading.get('device_id')} "
        f"{reading.get('temperature')}C {reading.get('humidity')}% "
        f"@ {reading.get('location')} (id={reading.get('id')})"
    )


def render_reading(reading: Mapping[str, Any]) -> None:
    echo_heading("Stored Reading")
    echo_key_values(
        [
            ("id", reading.get("id")),
            ("device_id", reading.get("device_id")),
            ("temperature", reading.get("temperature")),
            ("humidity", reading.get("humidity")),
            ("location", reading.get("location")),
            ("timestamp", reading.get("timestamp")),
            ("received_at", reading.get("received_at")),
        ]
    )


def render_readings(payload: Dict[str, Any]) -> None:
    device_id = payload.get("device_id")
    heading = f"Readings for {device_id}" if device_id else "Recent Readings"
    echo_heading(heading)

    count = payload.get("count", 0)
    total = payload.get("total")
    summary = f"showing {count} of {total}" if total is not None else f"showing {count}"
    typer.echo(summary)

    readings = payload.get("data") or []
    if not readings:
        typer.echo("No readings recorded.")
        return
    for reading in readings:
        typer.echo(f"  - {format_reading(reading)}")


def render_stats(payload: Dict[str, Any]) -> None:
    echo_heading("Statistics")
    stats = payload.get("stats") or {}
    if not stats:
        typer.echo(payload.get("message") or "No data available")
        return

    echo_key_values([("total_records", stats.get("total_records"))])
    for measurement in ("temperature", "humidity"):
        values = stats.get(measurement) or {}
        typer.echo(
            f"{measurement}: min={values.get('min')} max={values.get('max')} avg={values.get('avg')}"
        )
    devices = stats.get("devices") or []
    typer.echo(f"devices: {', '.join(devices)}")

    latest = stats.get("latest_reading")
    if latest:
        typer.echo(f"latest: {format_reading(latest)}")
