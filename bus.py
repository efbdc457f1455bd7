# bus.py
"""
Blast Unit of Severity (BUS): rice blast disease pressure from an hourly
temperature / humidity window.

The scoring curve is domain data. ``BUSCoefficients`` carries it and can be
loaded from the ``disease.bus`` section of config.yml; the defaults below
reproduce the field-validated rule set.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from errors import ComputationSkipped, ValidationError
from leaf_wetness import HourlyObservation, LeafWetnessSeries, compute_leaf_wetness

HIGH_RISK_SCORE = 2.25
MEDIUM_RISK_SCORE = 1.5


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class TemperatureBand:
    low: float
    high: float
    penalty: float

    def outside(self, temperature: float) -> bool:
        return temperature < self.low or temperature > self.high


@dataclass(frozen=True)
class BUSCoefficients:
    wet_rh_pct: float = 90.0
    # no infection outside this range
    viable_temp_c: Tuple[float, float] = (15.0, 38.0)
    base_min_temp_c: float = 14.0
    lwd_floor_hours: int = 4
    # local day boundary for the LWD floor
    day_utc_offset_hours: float = 0.0
    lwd_divisor: float = 4.0
    sub_floor_weight: float = 0.0
    extended_wetness_hours: float = 16.0
    extended_wetness_offset: float = 12.0
    extended_wetness_divisor: float = 6.0
    temperature_bands: Tuple[TemperatureBand, ...] = field(
        default_factory=lambda: (
            TemperatureBand(23.0, 26.0, 2.0),
            TemperatureBand(19.0, 29.0, 2.0),
        )
    )

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "BUSCoefficients":
        if not d:
            return cls()
        kwargs: Dict[str, Any] = {}
        for name in (
            "wet_rh_pct",
            "base_min_temp_c",
            "lwd_divisor",
            "sub_floor_weight",
            "day_utc_offset_hours",
            "extended_wetness_hours",
            "extended_wetness_offset",
            "extended_wetness_divisor",
        ):
            if name in d:
                kwargs[name] = float(d[name])
        if "lwd_floor_hours" in d:
            kwargs["lwd_floor_hours"] = int(d["lwd_floor_hours"])
        if "viable_temp_c" in d:
            lo, hi = d["viable_temp_c"]
            kwargs["viable_temp_c"] = (float(lo), float(hi))
        if "temperature_bands" in d:
            kwargs["temperature_bands"] = tuple(
                TemperatureBand(float(b["low"]), float(b["high"]), float(b["penalty"]))
                for b in d["temperature_bands"]
            )
        coeffs = cls(**kwargs)
        coeffs.validate()
        return coeffs

    def validate(self) -> None:
        lo, hi = self.viable_temp_c
        if not lo < hi:
            raise ValidationError(f"viable_temp_c must be increasing, got {self.viable_temp_c}")
        if self.lwd_divisor <= 0 or self.extended_wetness_divisor <= 0:
            raise ValidationError("BUS divisors must be positive")
        if not 0.0 <= self.sub_floor_weight <= 1.0:
            raise ValidationError("sub_floor_weight must be within [0, 1]")
        if not -12.0 <= self.day_utc_offset_hours <= 14.0:
            raise ValidationError(
                f"day_utc_offset_hours out of range: {self.day_utc_offset_hours}"
            )
        for band in self.temperature_bands:
            if not band.low < band.high:
                raise ValidationError(f"Invalid temperature band {band}")


@dataclass
class BUSResult:
    bus_score: float
    risk_level: RiskLevel
    lwd_hours: int
    temperature_avg: float
    humidity_avg: float
    dew_point_avg: float = 0.0
    effective_lwd_hours: float = 0.0
    days_analyzed: float = 0.0
    data_points: int = 0
    has_data: bool = True
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["risk_level"] = self.risk_level.value
        return d


def classify_risk(bus_score: float) -> RiskLevel:
    if bus_score >= HIGH_RISK_SCORE:
        return RiskLevel.HIGH
    if bus_score >= MEDIUM_RISK_SCORE:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def bus_from_wetness(
    weighted_lwd: float, wet_temperature: float, coeffs: BUSCoefficients
) -> float:
    if weighted_lwd < coeffs.lwd_floor_hours or math.isnan(wet_temperature):
        return 0.0
    lo, hi = coeffs.viable_temp_c
    if wet_temperature < lo or wet_temperature > hi:
        return 0.0

    bus = 0.0
    if wet_temperature > coeffs.base_min_temp_c:
        bus = weighted_lwd / coeffs.lwd_divisor

    if weighted_lwd > coeffs.extended_wetness_hours:
        bus += (
            weighted_lwd - coeffs.extended_wetness_offset
        ) / coeffs.extended_wetness_divisor

    for band in coeffs.temperature_bands:
        if band.outside(wet_temperature):
            bus -= band.penalty

    return max(0.0, bus)


NO_DATA_MESSAGE = "No data available for BUS calculation"


def no_data_result(message: str = NO_DATA_MESSAGE) -> BUSResult:
    return BUSResult(
        bus_score=0.0,
        risk_level=RiskLevel.LOW,
        lwd_hours=0,
        temperature_avg=0.0,
        humidity_avg=0.0,
        has_data=False,
        message=message,
    )


def _wetness(hourly: Sequence[HourlyObservation], coeffs: BUSCoefficients) -> LeafWetnessSeries:
    if not hourly:
        raise ComputationSkipped(NO_DATA_MESSAGE)
    return compute_leaf_wetness(
        hourly,
        wet_rh_pct=coeffs.wet_rh_pct,
        daily_floor_hours=coeffs.lwd_floor_hours,
        utc_offset_hours=coeffs.day_utc_offset_hours,
    )


def score(
    hourly: Sequence[HourlyObservation],
    coeffs: Optional[BUSCoefficients] = None,
) -> BUSResult:
    coeffs = coeffs or BUSCoefficients()
    try:
        wetness = _wetness(hourly, coeffs)
    except ComputationSkipped as e:
        return no_data_result(str(e))

    weighted_lwd = (
        wetness.effective_lwd_hours + coeffs.sub_floor_weight * wetness.below_floor_hours
    )
    bus = round(bus_from_wetness(weighted_lwd, wetness.wet_temperature_avg, coeffs), 2)

    return BUSResult(
        bus_score=bus,
        risk_level=classify_risk(bus),
        lwd_hours=wetness.lwd_hours,
        temperature_avg=round(wetness.temperature_avg, 2),
        humidity_avg=round(wetness.humidity_avg, 2),
        dew_point_avg=round(wetness.dew_point_avg, 2),
        effective_lwd_hours=round(weighted_lwd, 2),
        days_analyzed=round(len(hourly) / 24.0, 2),
        data_points=len(hourly),
    )


def series_from_points(points: List[Any], temp_key: str, rh_key: str) -> List[HourlyObservation]:
    """Adapt store.HourlyPoint rows to observations."""
    return [
        HourlyObservation(p.hour, p.values[temp_key], p.values[rh_key]) for p in points
    ]


# -----------------------------
# Accuracy against field surveys
# -----------------------------


@dataclass
class GroundTruth:
    period: str
    actual_disease_severity: float
    actual_bus_score: Optional[float] = None
    infection_rate: Optional[float] = None
    location: str = ""

    @property
    def target(self) -> float:
        """Surveyed BUS when the study reports one, else disease severity (0-10)."""
        if self.actual_bus_score is not None:
            return self.actual_bus_score
        return self.actual_disease_severity


@dataclass
class PeriodError:
    period: str
    predicted: float
    actual: float
    error: float


@dataclass
class ValidationReport:
    mae: float
    rmse: float
    correlation: float
    sample_size: int
    predictions: List[PeriodError]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _paired(predictions: Sequence[float], actuals: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
    pred = np.asarray(predictions, dtype=float)
    act = np.asarray(actuals, dtype=float)
    if pred.shape != act.shape or pred.size == 0:
        raise ValidationError("predictions and actuals must have the same non-zero length")
    return pred, act


def mean_absolute_error(predictions: Sequence[float], actuals: Sequence[float]) -> float:
    pred, act = _paired(predictions, actuals)
    return float(np.mean(np.abs(pred - act)))


def root_mean_square_error(predictions: Sequence[float], actuals: Sequence[float]) -> float:
    pred, act = _paired(predictions, actuals)
    return float(np.sqrt(np.mean((pred - act) ** 2)))


def pearson_correlation(predictions: Sequence[float], actuals: Sequence[float]) -> float:
    """Pearson r; 0 when either side has no variance."""
    pred, act = _paired(predictions, actuals)
    dp = pred - pred.mean()
    da = act - act.mean()
    denominator = math.sqrt(float(np.sum(dp * dp)) * float(np.sum(da * da)))
    if denominator == 0:
        return 0.0
    return float(np.sum(dp * da)) / denominator


def validate(
    datasets: Sequence[Tuple[Sequence[HourlyObservation], GroundTruth]],
    coeffs: Optional[BUSCoefficients] = None,
) -> ValidationReport:
    """
    Score each hourly window and compare it with the surveyed value for the
    same period. Metrics are rounded to 3 decimals.
    """
    if not datasets:
        raise ValidationError("at least one validation dataset is required")

    rows: List[PeriodError] = []
    for hourly, truth in datasets:
        predicted = score(hourly, coeffs).bus_score
        actual = float(truth.target)
        rows.append(PeriodError(truth.period, predicted, actual, abs(predicted - actual)))

    predicted = [r.predicted for r in rows]
    actual = [r.actual for r in rows]
    return ValidationReport(
        mae=round(mean_absolute_error(predicted, actual), 3),
        rmse=round(root_mean_square_error(predicted, actual), 3),
        correlation=round(pearson_correlation(predicted, actual), 3),
        sample_size=len(rows),
        predictions=rows,
    )
