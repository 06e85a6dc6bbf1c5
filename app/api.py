"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from app.schemas import (
    DeviceReadingsResponse,
    ErrorResponse,
    IngestResponse,
    ReadingListResponse,
    StatsResponse,
)
from datastore.reading_store import DEFAULT_LIMIT, ReadingStore, build_default_store
from models.errors import ValidationError
from models.records import ReadingCandidate
from services.ingestion import candidate_from_body, candidate_from_query, decode_json_body

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")
_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


def get_store() -> ReadingStore:
    return build_default_store()


def parse_limit(raw: Optional[str]) -> int:
    """Interpret a ``limit`` query value, falling back to the default."""
    if raw is None:
        return DEFAULT_LIMIT
    try:
        parsed = int(raw.strip())
    except ValueError:
        return DEFAULT_LIMIT
    return parsed if parsed > 0 else DEFAULT_LIMIT


def _error_response(status_code: int, message: str, error: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(message=message, error=error)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _internal_error(exc: Exception) -> JSONResponse:
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        error=str(exc),
    )


async def _store_candidate(
    store: ReadingStore,
    candidate: ReadingCandidate,
    success_message: str,
) -> Union[IngestResponse, JSONResponse]:
    try:
        reading = await run_in_threadpool(store.append, candidate)
    except ValidationError as exc:
        logger.warning(
            "Rejected sensor payload",
            extra={
                "device_id": candidate.device_id,
                "missing_fields": exc.missing_fields or None,
                "invalid_fields": exc.invalid_fields or None,
            },
        )
        return _error_response(status.HTTP_400_BAD_REQUEST, str(exc))
    return IngestResponse(message=success_message, data=reading)


async def _read_body(request: Request) -> Mapping[str, Any]:
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith(_FORM_CONTENT_TYPES):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}
    return decode_json_body(await request.body())


@router.post(
    "/sensor-data",
    response_model=IngestResponse,
    responses=_ERROR_RESPONSES,
    summary="Ingest a reading sent as a JSON or form-encoded body.",
)
async def ingest_body(
    request: Request,
    store: ReadingStore = Depends(get_store),
) -> Union[IngestResponse, JSONResponse]:
    try:
        try:
            payload = await _read_body(request)
        except ValueError as exc:
            logger.warning("Unreadable sensor payload", extra={"reason": str(exc)})
            return _error_response(status.HTTP_400_BAD_REQUEST, str(exc))
        logger.debug("Received sensor body", extra={"device_id": payload.get("device_id")})
        candidate = candidate_from_body(payload)
        return await _store_candidate(store, candidate, "Data received and saved successfully")
    except Exception as exc:  # pragma: no cover - defensive catch-all
        logger.exception("Error processing sensor data")
        return _internal_error(exc)


@router.get(
    "/sensor-data",
    response_model=IngestResponse,
    responses=_ERROR_RESPONSES,
    summary="Ingest a reading sent as URL query parameters.",
)
async def ingest_query(
    request: Request,
    store: ReadingStore = Depends(get_store),
) -> Union[IngestResponse, JSONResponse]:
    try:
        candidate = candidate_from_query(request.query_params)
        return await _store_candidate(store, candidate, "Data received via GET")
    except Exception as exc:  # pragma: no cover - defensive catch-all
        logger.exception("Error processing GET sensor data")
        return _internal_error(exc)


@router.get(
    "/data",
    response_model=ReadingListResponse,
    responses=_ERROR_RESPONSES,
    summary="List the most recent readings, newest first.",
)
def list_readings(
    limit: Optional[str] = Query(None, description="Maximum readings to return (default 50)."),
    store: ReadingStore = Depends(get_store),
) -> Union[ReadingListResponse, JSONResponse]:
    try:
        readings, total = store.recent_with_total(parse_limit(limit))
        return ReadingListResponse(count=len(readings), total=total, data=readings)
    except Exception as exc:  # pragma: no cover - defensive catch-all
        logger.exception("Error listing readings", extra={"limit": limit})
        return _internal_error(exc)


@router.get(
    "/data/{device_id:path}",
    response_model=DeviceReadingsResponse,
    responses=_ERROR_RESPONSES,
    summary="List the most recent readings for one device, newest first.",
)
def list_device_readings(
    device_id: str,
    limit: Optional[str] = Query(None, description="Maximum readings to return (default 50)."),
    store: ReadingStore = Depends(get_store),
) -> Union[DeviceReadingsResponse, JSONResponse]:
    try:
        readings = store.by_device(device_id, parse_limit(limit))
        return DeviceReadingsResponse(device_id=device_id, count=len(readings), data=readings)
    except Exception as exc:  # pragma: no cover - defensive catch-all
        logger.exception("Error listing device readings", extra={"device_id": device_id})
        return _internal_error(exc)


@router.get(
    "/stats",
    response_model=StatsResponse,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
    summary="Aggregate statistics across every retained reading.",
)
def reading_stats(
    store: ReadingStore = Depends(get_store),
) -> Union[StatsResponse, JSONResponse]:
    try:
        stats = store.stats()
    except Exception as exc:  # pragma: no cover - defensive catch-all
        logger.exception("Error computing stats")
        return _internal_error(exc)
    if stats is None:
        return StatsResponse(message="No data available", stats={})
    return StatsResponse(stats=stats)


health_router = APIRouter()


@health_router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
