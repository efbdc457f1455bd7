# hazards.py
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional

from bus import RiskLevel

REFERENCE_PRESSURE_HPA = 1013.0


@dataclass(frozen=True)
class DroughtBands:
    high_rain_mm: float = 5.0
    high_soil_pct: float = 30.0
    medium_rain_mm: float = 10.0
    medium_soil_pct: float = 40.0
    window_days: int = 7


@dataclass(frozen=True)
class FloodBands:
    high_rain_mm: float = 100.0
    high_river_level: float = 8.0
    medium_rain_mm: float = 50.0
    medium_river_level: float = 6.0
    window_hours: int = 24


@dataclass(frozen=True)
class StormBands:
    high_wind_ms: float = 20.0
    high_pressure_delta_hpa: float = 10.0
    medium_wind_ms: float = 15.0
    medium_pressure_delta_hpa: float = 5.0
    reference_pressure_hpa: float = REFERENCE_PRESSURE_HPA


def _override(obj, d: Optional[Dict[str, Any]]):
    if not d:
        return obj
    known = {f.name for f in fields(obj)}
    updates = {}
    for k, v in d.items():
        if k in known:
            updates[k] = int(v) if k.startswith("window_") else float(v)
    return replace(obj, **updates)


@dataclass(frozen=True)
class HazardBands:
    drought: DroughtBands = field(default_factory=DroughtBands)
    flood: FloodBands = field(default_factory=FloodBands)
    storm: StormBands = field(default_factory=StormBands)

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "HazardBands":
        d = d or {}
        return cls(
            drought=_override(DroughtBands(), d.get("drought")),
            flood=_override(FloodBands(), d.get("flood")),
            storm=_override(StormBands(), d.get("storm")),
        )


@dataclass
class HazardResult:
    risk_level: RiskLevel
    risk_score: float
    details: Dict[str, float]


# Fixed score per level: (high, medium, low)
DROUGHT_SCORES = (8.5, 5.0, 2.0)
FLOOD_SCORES = (9.0, 5.5, 2.0)
STORM_SCORES = (8.0, 4.5, 1.5)


def _level_score(level: RiskLevel, scores) -> float:
    high, medium, low = scores
    return {RiskLevel.HIGH: high, RiskLevel.MEDIUM: medium, RiskLevel.LOW: low}[level]


def drought_risk(
    rainfall_7d: float, soil_moisture: float, bands: DroughtBands = DroughtBands()
) -> HazardResult:
    if rainfall_7d < bands.high_rain_mm and soil_moisture < bands.high_soil_pct:
        level = RiskLevel.HIGH
    elif rainfall_7d < bands.medium_rain_mm or soil_moisture < bands.medium_soil_pct:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW
    return HazardResult(
        risk_level=level,
        risk_score=_level_score(level, DROUGHT_SCORES),
        details={
            "rainfall_7days": round(rainfall_7d, 1),
            "soil_moisture": round(soil_moisture, 1),
        },
    )


def flood_risk(
    rainfall_24h: float, river_level: float, bands: FloodBands = FloodBands()
) -> HazardResult:
    if rainfall_24h > bands.high_rain_mm or river_level > bands.high_river_level:
        level = RiskLevel.HIGH
    elif rainfall_24h > bands.medium_rain_mm or river_level > bands.medium_river_level:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW
    return HazardResult(
        risk_level=level,
        risk_score=_level_score(level, FLOOD_SCORES),
        details={
            "rainfall_24hr": round(rainfall_24h, 1),
            "river_level": round(river_level, 1),
        },
    )


def storm_risk(
    wind_speed: float, pressure: float, bands: StormBands = StormBands()
) -> HazardResult:
    delta = abs(pressure - bands.reference_pressure_hpa)
    if wind_speed > bands.high_wind_ms or delta > bands.high_pressure_delta_hpa:
        level = RiskLevel.HIGH
    elif wind_speed > bands.medium_wind_ms or delta > bands.medium_pressure_delta_hpa:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW
    return HazardResult(
        risk_level=level,
        risk_score=_level_score(level, STORM_SCORES),
        details={
            "wind_speed": round(wind_speed, 1),
            "pressure": round(pressure, 1),
            "pressure_drop": round(delta, 1),
        },
    )
