# leaf_wetness.py
from __future__ import annotations

import datetime as dt
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np

WET_RH_PCT = 90.0
DAILY_WET_FLOOR_HOURS = 4


@dataclass
class HourlyObservation:
    timestamp: dt.datetime
    temperature: float  # °C
    humidity: float  # % RH


@dataclass
class WetnessHour:
    ts: dt.datetime
    temp: float
    rh: float
    dewpoint: float
    wet: bool
    below_floor: bool = False


@dataclass
class LeafWetnessSeries:
    hourly: List[WetnessHour] = field(default_factory=list)
    lwd_hours: int = 0
    effective_lwd_hours: int = 0
    below_floor_hours: int = 0
    temperature_avg: float = 0.0
    humidity_avg: float = 0.0
    dew_point_avg: float = 0.0
    wet_temperature_avg: float = float("nan")


def dew_point(temperature: float, humidity: float) -> float:
    """Linear approximation Td = T - (100 - RH) / 5."""
    return temperature - (100.0 - humidity) / 5.0


def compute_leaf_wetness(
    series: Sequence[HourlyObservation],
    wet_rh_pct: float = WET_RH_PCT,
    daily_floor_hours: int = DAILY_WET_FLOOR_HOURS,
    utc_offset_hours: float = 0.0,
) -> LeafWetnessSeries:
    """
    Derive dew point and wetness per hour plus window aggregates.

    Every wet hour counts toward ``lwd_hours``. Wet hours on a calendar day
    with fewer than ``daily_floor_hours`` wet hours are flagged ``below_floor``
    and excluded from ``effective_lwd_hours``. Days are local calendar days at
    ``utc_offset_hours`` from the naive-UTC timestamps.
    """
    if not series:
        return LeafWetnessSeries()

    temps = np.array([o.temperature for o in series], dtype=float)
    rhs = np.array([o.humidity for o in series], dtype=float)
    dews = dew_point(temps, rhs)
    wet = rhs > wet_rh_pct

    shift = dt.timedelta(hours=utc_offset_hours)
    days = [(o.timestamp + shift).date() for o in series]
    wet_per_day = Counter(d for d, w in zip(days, wet) if w)

    hourly: List[WetnessHour] = []
    below_floor_hours = 0
    for o, day, td, w in zip(series, days, dews, wet):
        short_day = bool(w) and wet_per_day[day] < daily_floor_hours
        if short_day:
            below_floor_hours += 1
        hourly.append(
            WetnessHour(
                ts=o.timestamp,
                temp=float(o.temperature),
                rh=float(o.humidity),
                dewpoint=float(td),
                wet=bool(w),
                below_floor=short_day,
            )
        )

    lwd_hours = int(wet.sum())
    return LeafWetnessSeries(
        hourly=hourly,
        lwd_hours=lwd_hours,
        effective_lwd_hours=lwd_hours - below_floor_hours,
        below_floor_hours=below_floor_hours,
        temperature_avg=float(temps.mean()),
        humidity_avg=float(rhs.mean()),
        dew_point_avg=float(dews.mean()),
        wet_temperature_avg=float(temps[wet].mean()) if lwd_hours else float("nan"),
    )
