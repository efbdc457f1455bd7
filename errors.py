# errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class AgriRiskError(Exception):
    pass


class NotFound(AgriRiskError):
    pass


class StationNotFound(NotFound):
    def __init__(self, key):
        self.key = key
        super().__init__(f"Station not found: {key}")


class SensorNotFound(NotFound):
    def __init__(self, sensor_type: str):
        self.sensor_type = sensor_type
        super().__init__(f"SensorNotFound: {sensor_type}")


class ValidationError(AgriRiskError):
    pass


class ComputationSkipped(AgriRiskError):
    """Raised when a scorer has nothing to work with (empty series)."""


class TransientIOError(AgriRiskError):
    pass


@dataclass(frozen=True)
class IngestError:
    """One non-fatal failure collected while ingesting a message."""

    kind: str
    detail: str
    sensor_type: Optional[str] = None

    def __str__(self) -> str:
        if self.sensor_type and self.kind == "SensorNotFound":
            return f"SensorNotFound: {self.sensor_type}"
        if self.sensor_type:
            return f"{self.kind} ({self.sensor_type}): {self.detail}"
        return f"{self.kind}: {self.detail}"

    @classmethod
    def from_exception(cls, exc: Exception, sensor_type: Optional[str] = None) -> "IngestError":
        return cls(type(exc).__name__, str(exc), sensor_type=sensor_type)
