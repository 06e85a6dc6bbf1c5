"""Pydantic schemas for the HTTP API layer and the snapshot file."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from models.records import DEFAULT_LOCATION


class SensorReading(BaseModel):
    """One stored sensor observation. Immutable once appended."""

    model_config = ConfigDict(frozen=True)

    id: int
    device_id: str
    temperature: float
    humidity: float
    location: str = DEFAULT_LOCATION
    timestamp: Union[int, float]
    received_at: datetime


class MeasurementStats(BaseModel):
    """Min/max/average for one measurement across the store."""

    min: float
    max: float
    avg: float = Field(..., description="Mean rounded to two decimal places.")


class ReadingStats(BaseModel):
    """Aggregate statistics over every retained reading."""

    total_records: int = Field(..., ge=1)
    temperature: MeasurementStats
    humidity: MeasurementStats
    devices: List[str] = Field(default_factory=list)
    latest_reading: SensorReading


class IngestResponse(BaseModel):
    success: bool = True
    message: str
    data: SensorReading


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: Optional[str] = None


class ReadingListResponse(BaseModel):
    success: bool = True
    count: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    data: List[SensorReading]


class DeviceReadingsResponse(BaseModel):
    success: bool = True
    device_id: str
    count: int = Field(..., ge=0)
    data: List[SensorReading]


class StatsResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    stats: Union[ReadingStats, Dict[str, Any]] = Field(default_factory=dict)
