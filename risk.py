# risk.py
from __future__ import annotations

import datetime as dt
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import bus
from bus import BUSCoefficients, BUSResult, RiskLevel
from errors import StationNotFound, TransientIOError
from field_mapper import SensorType
from hazards import HazardBands, HazardResult, drought_risk, flood_risk, storm_risk
from models import Station
from store import Store, to_utc_naive, utcnow

logger = logging.getLogger(__name__)

PILLARS = ("drought", "flood", "storm", "disease")

# Neutral inputs used when a station lacks the sensor.
NEUTRAL_SOIL_MOISTURE_PCT = 50.0
NEUTRAL_RIVER_LEVEL = 0.0
NEUTRAL_WIND_MS = 0.0

DISEASE_SERIES_TYPES = (SensorType.AIR_TEMPERATURE, SensorType.AIR_HUMIDITY)


@dataclass(frozen=True)
class AggregatorSettings:
    max_workers: int = 16
    fetch_timeout_s: float = 10.0

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "AggregatorSettings":
        d = d or {}
        return cls(
            max_workers=max(1, int(d.get("max_workers", cls.max_workers))),
            fetch_timeout_s=float(d.get("fetch_timeout_s", cls.fetch_timeout_s)),
        )


@dataclass
class StationRisk:
    station_id: int
    station_name: str
    province: Optional[str]
    risk_level: RiskLevel
    risk_score: float
    details: Dict[str, Any] = field(default_factory=dict)
    has_data: bool = True
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["risk_level"] = self.risk_level.value
        return d


@dataclass
class PillarSummary:
    pillar: str
    risk_level: RiskLevel
    affected_stations: int
    high_risk_count: int
    medium_risk_count: int
    low_risk_count: int
    stations: List[StationRisk]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pillar": self.pillar,
            "risk_level": self.risk_level.value,
            "affected_stations": self.affected_stations,
            "high_risk_count": self.high_risk_count,
            "medium_risk_count": self.medium_risk_count,
            "low_risk_count": self.low_risk_count,
            "stations": [s.to_dict() for s in self.stations],
        }


@dataclass
class RiskDashboardSummary:
    drought: PillarSummary
    flood: PillarSummary
    storm: PillarSummary
    disease: PillarSummary
    total_stations: int
    last_updated: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "drought": self.drought.to_dict(),
            "flood": self.flood.to_dict(),
            "storm": self.storm.to_dict(),
            "disease": self.disease.to_dict(),
            "total_stations": self.total_stations,
            "last_updated": self.last_updated,
        }


def summarize_pillar(pillar: str, station_risks: List[StationRisk]) -> PillarSummary:
    """high if >25% of stations are high, medium if >50% are medium, else low."""
    total = len(station_risks)
    high = sum(1 for s in station_risks if s.risk_level == RiskLevel.HIGH)
    medium = sum(1 for s in station_risks if s.risk_level == RiskLevel.MEDIUM)
    low = total - high - medium

    overall = RiskLevel.LOW
    if high > total * 0.25:
        overall = RiskLevel.HIGH
    elif medium > total * 0.5:
        overall = RiskLevel.MEDIUM

    return PillarSummary(
        pillar=pillar,
        risk_level=overall,
        affected_stations=high + medium,
        high_risk_count=high,
        medium_risk_count=medium,
        low_risk_count=low,
        stations=station_risks,
    )


def _placeholder(station: Station, error: str) -> StationRisk:
    return StationRisk(
        station_id=station.station_id,
        station_name=station.station_name,
        province=station.province,
        risk_level=RiskLevel.LOW,
        risk_score=0.0,
        has_data=False,
        error=error,
    )


def _from_hazard(station: Station, res: HazardResult) -> StationRisk:
    return StationRisk(
        station_id=station.station_id,
        station_name=station.station_name,
        province=station.province,
        risk_level=res.risk_level,
        risk_score=res.risk_score,
        details=res.details,
    )


class RiskAggregator:
    """
    Runs the four pillar scorers over every station.

    Read-only: every call recomputes from stored history. Station work is
    fanned out on a bounded thread pool shared by all pillars.
    """

    def __init__(
        self,
        store: Store,
        coeffs: Optional[BUSCoefficients] = None,
        bands: Optional[HazardBands] = None,
        settings: Optional[AggregatorSettings] = None,
    ):
        self.store = store
        self.coeffs = coeffs or BUSCoefficients()
        self.bands = bands or HazardBands()
        self.settings = settings or AggregatorSettings()
        self._pool = ThreadPoolExecutor(
            max_workers=self.settings.max_workers, thread_name_prefix="risk-station"
        )
        self._scorers: Dict[str, Callable[..., StationRisk]] = {
            "drought": self.station_drought,
            "flood": self.station_flood,
            "storm": self.station_storm,
            "disease": self.station_disease,
        }

    def close(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "RiskAggregator":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Per-station scorers
    # -------------------------------------------------------------------------

    def _latest(self, station_id: int, sensor_type: SensorType, as_of, default: float) -> float:
        row = self.store.get_latest_reading(station_id, sensor_type, as_of=as_of)
        return float(row.value) if row is not None else default

    def _accumulated(self, station_id: int, sensor_type: SensorType, days: float, as_of) -> float:
        points = self.store.get_hourly_series(
            station_id, [sensor_type], days=days, as_of=as_of, how="sum"
        )
        return float(sum(p.values[sensor_type.value] for p in points))

    def disease_result(self, station_id: int, days: int, as_of: dt.datetime) -> BUSResult:
        points = self.store.get_hourly_series(
            station_id, DISEASE_SERIES_TYPES, days=days, as_of=as_of
        )
        series = bus.series_from_points(
            points, SensorType.AIR_TEMPERATURE.value, SensorType.AIR_HUMIDITY.value
        )
        return bus.score(series, self.coeffs)

    def station_disease(self, station: Station, days: int, as_of: dt.datetime) -> StationRisk:
        res = self.disease_result(station.station_id, days, as_of)
        if not res.has_data:
            details: Dict[str, Any] = {"bus_score": 0.0, "message": res.message}
        else:
            details = {
                "bus_score": res.bus_score,
                "lwd_hours": res.lwd_hours,
                "effective_lwd_hours": res.effective_lwd_hours,
                "temperature_avg": res.temperature_avg,
                "humidity_avg": res.humidity_avg,
            }
        return StationRisk(
            station_id=station.station_id,
            station_name=station.station_name,
            province=station.province,
            risk_level=res.risk_level,
            risk_score=res.bus_score,
            details=details,
            has_data=res.has_data,
        )

    def station_drought(self, station: Station, days: int, as_of: dt.datetime) -> StationRisk:
        bands = self.bands.drought
        rain = self._accumulated(station.station_id, SensorType.RAINFALL, bands.window_days, as_of)
        soil = self._latest(
            station.station_id, SensorType.SOIL_MOISTURE, as_of, NEUTRAL_SOIL_MOISTURE_PCT
        )
        return _from_hazard(station, drought_risk(rain, soil, bands))

    def station_flood(self, station: Station, days: int, as_of: dt.datetime) -> StationRisk:
        bands = self.bands.flood
        rain = self._accumulated(
            station.station_id, SensorType.RAINFALL, bands.window_hours / 24.0, as_of
        )
        river = self._latest(station.station_id, SensorType.RIVER_LEVEL, as_of, NEUTRAL_RIVER_LEVEL)
        return _from_hazard(station, flood_risk(rain, river, bands))

    def station_storm(self, station: Station, days: int, as_of: dt.datetime) -> StationRisk:
        bands = self.bands.storm
        wind = self._latest(station.station_id, SensorType.WIND_SPEED, as_of, NEUTRAL_WIND_MS)
        pressure = self._latest(
            station.station_id, SensorType.AIR_PRESSURE, as_of, bands.reference_pressure_hpa
        )
        return _from_hazard(station, storm_risk(wind, pressure, bands))

    # -------------------------------------------------------------------------
    # Fan-out
    # -------------------------------------------------------------------------

    def _call(self, fn: Callable[..., Any], deadline: float, *args) -> Any:
        """Run a store lookup on the pool, bounded by ``deadline``."""
        fut = self._pool.submit(fn, *args)
        try:
            return fut.result(timeout=max(0.0, deadline - time.monotonic()))
        except FuturesTimeout as e:
            fut.cancel()
            raise TransientIOError(f"{getattr(fn, '__name__', 'lookup')} timed out") from e

    def _fan_out(
        self,
        pillar: str,
        stations: Sequence[Station],
        days: int,
        as_of: dt.datetime,
        deadline: float,
    ) -> List[StationRisk]:
        scorer = self._scorers[pillar]
        futures = [self._pool.submit(scorer, st, days, as_of) for st in stations]

        results: List[StationRisk] = []
        for station, fut in zip(stations, futures):
            try:
                results.append(fut.result(timeout=max(0.0, deadline - time.monotonic())))
            except FuturesTimeout:
                fut.cancel()
                logger.warning(
                    "%s risk timed out for station %s", pillar, station.station_id
                )
                results.append(_placeholder(station, "timeout"))
            except Exception as e:
                logger.warning(
                    "Error calculating %s risk for station %s: %s",
                    pillar,
                    station.station_id,
                    e,
                )
                results.append(_placeholder(station, str(e)))
        return results

    def _resolve(self, as_of: Optional[dt.datetime], timeout: Optional[float]):
        as_of = to_utc_naive(as_of) if as_of is not None else utcnow()
        timeout = self.settings.fetch_timeout_s if timeout is None else float(timeout)
        return as_of, timeout

    def compute_pillar(
        self,
        pillar: str,
        days: int = 10,
        as_of: Optional[dt.datetime] = None,
        timeout: Optional[float] = None,
        stations: Optional[Sequence[Station]] = None,
    ) -> PillarSummary:
        if pillar not in self._scorers:
            raise ValueError(f"Unknown pillar '{pillar}'. Supported: {', '.join(PILLARS)}.")
        as_of, timeout = self._resolve(as_of, timeout)
        deadline = time.monotonic() + timeout
        if stations is None:
            stations = self._call(self.store.get_all_stations, deadline)
        return summarize_pillar(pillar, self._fan_out(pillar, stations, days, as_of, deadline))

    def get_dashboard_summary(
        self,
        days: int = 10,
        as_of: Optional[dt.datetime] = None,
        timeout: Optional[float] = None,
    ) -> RiskDashboardSummary:
        as_of, timeout = self._resolve(as_of, timeout)
        deadline = time.monotonic() + timeout
        stations = self._call(self.store.get_all_stations, deadline)
        remaining = max(0.0, deadline - time.monotonic())

        with ThreadPoolExecutor(max_workers=len(PILLARS), thread_name_prefix="risk-pillar") as ex:
            futures = {
                p: ex.submit(self.compute_pillar, p, days, as_of, remaining, stations)
                for p in PILLARS
            }
            pillars = {p: f.result() for p, f in futures.items()}

        return RiskDashboardSummary(
            drought=pillars["drought"],
            flood=pillars["flood"],
            storm=pillars["storm"],
            disease=pillars["disease"],
            total_stations=len(stations),
            last_updated=as_of.isoformat(),
        )

    # -------------------------------------------------------------------------
    # Disease views
    # -------------------------------------------------------------------------

    def get_disease_risk(
        self,
        station_id: int,
        days: int = 10,
        as_of: Optional[dt.datetime] = None,
        timeout: Optional[float] = None,
    ) -> BUSResult:
        as_of, timeout = self._resolve(as_of, timeout)
        deadline = time.monotonic() + timeout
        station = self._call(self.store.get_station, deadline, station_id)
        if station is None:
            raise StationNotFound(station_id)
        return self._call(self.disease_result, deadline, station_id, days, as_of)

    def get_all_stations_disease_risk(
        self,
        days: int = 10,
        as_of: Optional[dt.datetime] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        summary = self.compute_pillar("disease", days, as_of, timeout)
        with_data = [s for s in summary.stations if s.has_data]
        return {
            "summary": {
                "total_stations": len(summary.stations),
                "high_risk": sum(1 for s in with_data if s.risk_level == RiskLevel.HIGH),
                "medium_risk": sum(1 for s in with_data if s.risk_level == RiskLevel.MEDIUM),
                "low_risk": sum(1 for s in with_data if s.risk_level == RiskLevel.LOW),
                "no_data": len(summary.stations) - len(with_data),
            },
            "stations": [s.to_dict() for s in summary.stations],
        }
