"""Domain models shared across services."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional, Union

DEFAULT_LOCATION = "Unknown"

Number = Union[int, float]


@dataclass(slots=True, frozen=True)
class ReadingCandidate:
    """Raw reading fields collected from a request, before validation.

    Blank strings have already been collapsed to ``None`` by the ingestion
    layer, so ``None`` always means "not supplied".
    """

    device_id: Optional[str] = None
    temperature: Any = None
    humidity: Any = None
    timestamp: Any = None
    location: Optional[str] = None


def parse_measurement(value: Any) -> float:
    """Parse a temperature/humidity value supplied as a number or numeric string."""
    if isinstance(value, bool):
        raise ValueError("Boolean is not a measurement.")
    if isinstance(value, (int, float)):
        try:
            parsed = float(value)
        except OverflowError as exc:
            raise ValueError("Measurement is too large.") from exc
    elif isinstance(value, str):
        parsed = float(value.strip())
    else:
        raise ValueError(f"Unsupported measurement type {type(value).__name__}.")

    if not math.isfinite(parsed):
        raise ValueError("Measurement must be a finite number.")
    return parsed


def parse_timestamp(value: Any) -> Optional[Number]:
    """Return the caller's numeric time marker, or ``None`` when unusable.

    Zero counts as unusable, matching devices that report ``0`` before their
    clock has synchronised.
    """
    if value is None or isinstance(value, bool):
        return None

    parsed: Number
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        parsed = value
    elif isinstance(value, str):
        candidate = value.strip()
        try:
            parsed = int(candidate)
        except ValueError:
            try:
                parsed = float(candidate)
            except ValueError:
                return None
    else:
        return None

    if isinstance(parsed, float):
        if not math.isfinite(parsed):
            return None
        if parsed.is_integer():
            parsed = int(parsed)
    return parsed or None
