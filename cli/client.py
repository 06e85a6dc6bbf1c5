from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the sensor hub API."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def send_reading(
        self,
        device_id: str,
        temperature: float,
        humidity: float,
        location: Optional[str] = None,
        timestamp: Optional[int] = None,
        use_query: bool = False,
    ) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            "device_id": device_id,
            "temperature": temperature,
            "humidity": humidity,
        }
        if location is not None:
            fields["location"] = location
        if timestamp is not None:
            fields["timestamp"] = timestamp

        if use_query:
            payload = self._request("GET", "/api/sensor-data", params=fields)
        else:
            payload = self._request("POST", "/api/sensor-data", json=fields)
        data = payload.get("data")
        if not isinstance(data, dict):
            raise typer.BadParameter("Unexpected response payload when sending reading.")
        return data

    def list_readings(self, device_id: Optional[str] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        params = {"limit": limit} if limit is not None else None
        path = f"/api/data/{quote(device_id, safe='')}" if device_id else "/api/data"
        return self._request("GET", path, params=params)

    def get_stats(self) -> Dict[str, Any]:
        return self._request("GET", "/api/stats")

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.RequestError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("message")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
