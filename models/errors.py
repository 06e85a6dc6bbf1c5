"""Domain/service exceptions."""

from __future__ import annotations

from typing import Sequence


class ValidationError(ValueError):
    """Raised when a reading candidate lacks required fields or has bad numbers."""

    def __init__(
        self,
        missing_fields: Sequence[str] = (),
        invalid_fields: Sequence[str] = (),
    ) -> None:
        self.missing_fields = tuple(missing_fields)
        self.invalid_fields = tuple(invalid_fields)
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        if self.missing_fields:
            return f"Missing required fields: {', '.join(self.missing_fields)}"
        return f"Invalid numeric value for: {', '.join(self.invalid_fields)}"


class PersistenceError(Exception):
    """Raised when the snapshot file cannot be read, parsed or written."""
