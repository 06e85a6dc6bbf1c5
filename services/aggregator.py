"""Aggregation logic for sensor readings."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from app.schemas import MeasurementStats, ReadingStats, SensorReading


def _summarise(values: List[float]) -> MeasurementStats:
    low, high = min(values), max(values)
    mean = sum(values) / len(values)
    # Rounding to 2dp can land outside [min, max] when values sit close together.
    avg = min(max(round(mean, 2), low), high)
    return MeasurementStats(min=low, max=high, avg=avg)


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def aggregate(self, readings: Sequence[SensorReading]) -> Optional[ReadingStats]:
        """Summarise readings in insertion order; ``None`` when there are none."""
        if not readings:
            return None

        temperatures: List[float] = []
        humidities: List[float] = []
        devices: Dict[str, None] = {}

        for reading in readings:
            temperatures.append(reading.temperature)
            humidities.append(reading.humidity)
            devices.setdefault(reading.device_id, None)

        return ReadingStats(
            total_records=len(readings),
            temperature=_summarise(temperatures),
            humidity=_summarise(humidities),
            devices=list(devices),
            latest_reading=readings[-1],
        )
