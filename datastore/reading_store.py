from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from functools import lru_cache
from itertools import islice
from threading import Lock
from typing import Deque, Iterable, Optional, Tuple

from app.schemas import ReadingStats, SensorReading
from models.errors import PersistenceError, ValidationError
from models.records import (
    DEFAULT_LOCATION,
    ReadingCandidate,
    parse_measurement,
    parse_timestamp,
)
from services.aggregator import Aggregator
from settings import DEFAULT_MAX_RETAINED, get_settings
from storage.snapshot import SnapshotFile, build_default_snapshot

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class ReadingStore:
    """Bounded, insertion-ordered window of the most recent sensor readings.

    Every mutation runs under a single lock together with the snapshot write,
    so id assignment and eviction always see a consistent sequence. Readings
    are frozen models, so handing them out without copying is safe.
    """

    def __init__(
        self,
        max_retained: int = DEFAULT_MAX_RETAINED,
        snapshot: Optional[SnapshotFile] = None,
        aggregator: Optional[Aggregator] = None,
    ) -> None:
        if max_retained < 1:
            raise ValueError("max_retained must be a positive integer.")
        self.max_retained = max_retained
        self.snapshot = snapshot
        self.aggregator = aggregator or Aggregator()
        self._readings: Deque[SensorReading] = deque(maxlen=max_retained)
        self._last_id = 0
        self._lock = Lock()
        if snapshot is not None:
            self._load_from_disk(snapshot)

    def __len__(self) -> int:
        with self._lock:
            return len(self._readings)

    def append(self, candidate: ReadingCandidate) -> SensorReading:
        """Validate, stamp and store a reading, evicting the oldest past capacity."""
        device_id, temperature, humidity = self._validate(candidate)

        with self._lock:
            received_at = datetime.now(timezone.utc)
            reading = SensorReading(
                id=self._next_id(received_at),
                device_id=device_id,
                temperature=temperature,
                humidity=humidity,
                location=candidate.location or DEFAULT_LOCATION,
                timestamp=parse_timestamp(candidate.timestamp) or _epoch_ms(received_at),
                received_at=received_at,
            )
            self._readings.append(reading)
            self._persist()

        logger.info(
            "Reading stored",
            extra={"device_id": reading.device_id, "reading_id": reading.id},
        )
        return reading

    def recent(self, limit: int = DEFAULT_LIMIT) -> list[SensorReading]:
        """Return up to ``limit`` readings, newest first."""
        readings, _total = self.recent_with_total(limit)
        return readings

    def recent_with_total(self, limit: int = DEFAULT_LIMIT) -> Tuple[list[SensorReading], int]:
        """Return ``recent(limit)`` and the store size from the same moment."""
        with self._lock:
            if limit <= 0:
                return [], len(self._readings)
            return list(islice(reversed(self._readings), limit)), len(self._readings)

    def by_device(self, device_id: str, limit: int = DEFAULT_LIMIT) -> list[SensorReading]:
        """Return the newest ``limit`` readings from one device, newest first."""
        if limit <= 0:
            return []
        with self._lock:
            matches = (
                reading for reading in reversed(self._readings) if reading.device_id == device_id
            )
            return list(islice(matches, limit))

    def stats(self) -> Optional[ReadingStats]:
        with self._lock:
            readings = list(self._readings)
        return self.aggregator.aggregate(readings)

    def replace_all(self, readings: Iterable[SensorReading]) -> None:
        """Swap in a trusted sequence wholesale, keeping only the newest records."""
        with self._lock:
            self._readings = deque(readings, maxlen=self.max_retained)
            self._last_id = max((reading.id for reading in self._readings), default=0)

    def flush(self) -> None:
        with self._lock:
            self._persist()

    def _next_id(self, received_at: datetime) -> int:
        # Wall-clock millis, bumped past the previous id when the clock stalls.
        self._last_id = max(_epoch_ms(received_at), self._last_id + 1)
        return self._last_id

    @staticmethod
    def _validate(candidate: ReadingCandidate) -> Tuple[str, float, float]:
        device_id = (candidate.device_id or "").strip()
        missing = [] if device_id else ["device_id"]
        for name in ("temperature", "humidity"):
            value = getattr(candidate, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)
        if missing:
            raise ValidationError(missing_fields=missing)

        parsed: dict[str, float] = {}
        invalid: list[str] = []
        for name in ("temperature", "humidity"):
            try:
                parsed[name] = parse_measurement(getattr(candidate, name))
            except ValueError:
                invalid.append(name)
        if invalid:
            raise ValidationError(invalid_fields=invalid)

        return device_id, parsed["temperature"], parsed["humidity"]

    def _persist(self) -> None:
        if self.snapshot is None:
            return
        try:
            self.snapshot.save(self._readings)
        except PersistenceError as exc:
            logger.error(
                "Failed to save snapshot; keeping in-memory data",
                extra={"path": str(self.snapshot.path), "reason": str(exc)},
            )

    def _load_from_disk(self, snapshot: SnapshotFile) -> None:
        try:
            readings = snapshot.load()
        except PersistenceError as exc:
            logger.error(
                "Failed to load snapshot; starting with an empty store",
                extra={"path": str(snapshot.path), "reason": str(exc)},
            )
            readings = []
            self._set_aside(snapshot)

        self.replace_all(readings)
        logger.info(
            "Loaded readings from snapshot",
            extra={"path": str(snapshot.path), "record_count": len(self)},
        )

    def _set_aside(self, snapshot: SnapshotFile) -> None:
        try:
            target = snapshot.quarantine()
        except PersistenceError as exc:
            # Saving now would overwrite the only copy of the old history.
            logger.error(
                "Could not move unreadable snapshot aside; persistence disabled",
                extra={"path": str(snapshot.path), "reason": str(exc)},
            )
            self.snapshot = None
            return
        logger.warning("Unreadable snapshot moved aside", extra={"path": str(target)})


@lru_cache
def build_default_store(max_retained: Optional[int] = None) -> ReadingStore:
    """Factory that wires the store with the configured snapshot file."""
    settings = get_settings()
    capacity = settings.max_retained if max_retained is None else max_retained
    return ReadingStore(max_retained=capacity, snapshot=build_default_snapshot())
