"""Normalisation of incoming sensor payloads into reading candidates."""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

from models.records import ReadingCandidate


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip() or None
    return value


def _clean_text(value: Any) -> Optional[str]:
    cleaned = _clean(value)
    if cleaned is None or isinstance(cleaned, bool):
        return None
    if isinstance(cleaned, (str, int, float)):
        return str(cleaned)
    return None


def _build_candidate(source: Mapping[str, Any]) -> ReadingCandidate:
    return ReadingCandidate(
        device_id=_clean_text(source.get("device_id")),
        temperature=_clean(source.get("temperature")),
        humidity=_clean(source.get("humidity")),
        timestamp=_clean(source.get("timestamp")),
        location=_clean_text(source.get("location")),
    )


def candidate_from_body(payload: Mapping[str, Any]) -> ReadingCandidate:
    """Build a candidate from a decoded JSON object or form body."""
    return _build_candidate(payload)


def candidate_from_query(params: Mapping[str, str]) -> ReadingCandidate:
    """Build a candidate from URL query parameters.

    Every value arrives as a string, so an empty ``temperature=`` is treated
    exactly like a missing one.
    """
    return _build_candidate(params)


def decode_json_body(raw: bytes) -> dict[str, Any]:
    """Decode a JSON request body; an empty body decodes to an empty object."""
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError("Request body is not valid JSON.") from exc
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object.")
    return payload
