from __future__ import annotations

import logging
import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Any, List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError as SchemaError

from app.schemas import SensorReading
from models.errors import PersistenceError
from settings import get_settings

logger = logging.getLogger(__name__)

_READINGS_ADAPTER = TypeAdapter(List[SensorReading])
_RECORDS_ADAPTER = TypeAdapter(List[Any])


class SnapshotFile:
    """JSON array of readings on disk, rewritten in full on every save."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> list[SensorReading]:
        """Parse the snapshot, skipping individual records that fail validation.

        Only an unreadable file, invalid JSON or a non-array payload raise.
        """
        if not self.path.exists():
            return []

        try:
            raw = self.path.read_bytes()
        except OSError as exc:
            raise PersistenceError(f"Could not read snapshot {self.path}: {exc}") from exc

        if not raw.strip():
            return []

        try:
            records = _RECORDS_ADAPTER.validate_json(raw)
        except SchemaError as exc:
            raise PersistenceError(
                f"Snapshot {self.path} is not a JSON array: {exc}"
            ) from exc

        readings: list[SensorReading] = []
        for index, record in enumerate(records):
            try:
                readings.append(SensorReading.model_validate(record))
            except SchemaError as exc:
                logger.warning(
                    "Skipping unreadable snapshot record",
                    extra={
                        "path": str(self.path),
                        "record_index": index,
                        "reason": f"{exc.error_count()} validation error(s)",
                    },
                )
        return readings

    def quarantine(self) -> Path:
        """Move an unparseable snapshot aside so later saves cannot overwrite it."""
        target = self.path.with_name(f"{self.path.name}.corrupt")
        try:
            os.replace(self.path, target)
        except OSError as exc:
            raise PersistenceError(f"Could not move snapshot {self.path} aside: {exc}") from exc
        return target

    def save(self, readings: Sequence[SensorReading]) -> None:
        """Write to a sibling temp file, then rename it over the snapshot."""

        payload = _READINGS_ADAPTER.dump_json(list(readings), indent=2)
        temp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "wb",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                temp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, self.path)
        except OSError as exc:
            if temp_name is not None:
                Path(temp_name).unlink(missing_ok=True)
            raise PersistenceError(f"Could not write snapshot {self.path}: {exc}") from exc

        logger.debug(
            "Snapshot written",
            extra={"path": str(self.path), "record_count": len(readings)},
        )


@lru_cache
def build_default_snapshot(path: Optional[str] = None) -> Optional[SnapshotFile]:
    settings = get_settings()
    snapshot_path = settings.data_path if path is None else path
    if not snapshot_path:
        return None
    return SnapshotFile(Path(snapshot_path))
