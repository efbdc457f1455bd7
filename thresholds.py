# thresholds.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

from errors import ValidationError

# A violation is "high" below min * 0.8 or above max * 1.2.
HIGH_BELOW_FACTOR = 0.8
HIGH_ABOVE_FACTOR = 1.2

ALERT_TYPE_THRESHOLD = "threshold_violation"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    # device-health faults only; never assigned by threshold checks
    CRITICAL = "critical"


class ThresholdLike(Protocol):
    min_value: float
    max_value: float


@dataclass(frozen=True)
class ThresholdRange:
    min_value: float
    max_value: float

    def __post_init__(self):
        if not self.min_value < self.max_value:
            raise ValidationError(
                f"min_value must be less than max_value ({self.min_value} >= {self.max_value})"
            )


@dataclass(frozen=True)
class Violation:
    sensor_type: str
    value: float
    bound: str  # "min" | "max"
    limit: float
    severity: Severity
    message: str
    alert_type: str = ALERT_TYPE_THRESHOLD


def evaluate_reading(
    sensor_type: str, value: float, threshold: Optional[ThresholdLike]
) -> Optional[Violation]:
    if threshold is None:
        return None

    lo = float(threshold.min_value)
    hi = float(threshold.max_value)

    if value < lo:
        severity = (
            Severity.HIGH if value < lo * HIGH_BELOW_FACTOR else Severity.MEDIUM
        )
        message = (
            f"{sensor_type} is below threshold ({value:.1f} < {lo:g}) by {lo - value:.1f}"
        )
        return Violation(sensor_type, value, "min", lo, severity, message)

    if value > hi:
        severity = (
            Severity.HIGH if value > hi * HIGH_ABOVE_FACTOR else Severity.MEDIUM
        )
        message = (
            f"{sensor_type} is above threshold ({value:.1f} > {hi:g}) by {value - hi:.1f}"
        )
        return Violation(sensor_type, value, "max", hi, severity, message)

    return None


class ThresholdEvaluator:
    """Checks a value against the active threshold for its sensor type."""

    def __init__(self, lookup: Callable[[str], Optional[ThresholdLike]]):
        self.lookup = lookup

    def evaluate(self, sensor_type: str, value: float) -> Optional[Violation]:
        return evaluate_reading(sensor_type, value, self.lookup(sensor_type))
