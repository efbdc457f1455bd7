# monitor.py
from __future__ import annotations

import argparse
import datetime as dt
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import bus
from bus import BUSCoefficients, RiskLevel
from config_utils import load_config, setup_logging
from errors import ValidationError
from hazards import HazardBands
from ingest import ingest_telemetry
from leaf_wetness import compute_leaf_wetness
from plotter import plot_disease_pressure
from risk import DISEASE_SERIES_TYPES, AggregatorSettings, RiskAggregator
from store import Store
from telemetry import parse_telemetry

logger = logging.getLogger("monitor")


def build_aggregator(cfg: Dict[str, Any], store: Store) -> RiskAggregator:
    return RiskAggregator(
        store,
        coeffs=BUSCoefficients.from_dict(cfg.get("disease", {}).get("bus")),
        bands=HazardBands.from_dict(cfg.get("hazards")),
        settings=AggregatorSettings.from_dict(cfg.get("aggregator")),
    )


def replay_file(store: Store, path: str) -> None:
    """Feed a JSON-lines file of telemetry messages through the pipeline."""
    ok = failed = 0
    with open(path, "r") as f:
        for lineno, line in enumerate(f, 1):
            if not line.strip():
                continue
            try:
                message = parse_telemetry(line)
            except ValidationError as e:
                logger.warning("line %d rejected: %s", lineno, e)
                failed += 1
                continue
            result = ingest_telemetry(store, message)
            if result.success:
                ok += 1
            else:
                failed += 1
                logger.warning("line %d: %s", lineno, result.message)
    logger.info("Replayed %s: %d ingested, %d failed", path, ok, failed)


def plot_high_disease(
    store: Store, aggregator: RiskAggregator, summary, days: int, as_of: dt.datetime, plots_dir: Path
) -> None:
    for st in summary.disease.stations:
        if st.risk_level != RiskLevel.HIGH:
            continue
        points = store.get_hourly_series(
            st.station_id, DISEASE_SERIES_TYPES, days=days, as_of=as_of
        )
        series = bus.series_from_points(
            points, DISEASE_SERIES_TYPES[0].value, DISEASE_SERIES_TYPES[1].value
        )
        wetness = compute_leaf_wetness(
            series,
            wet_rh_pct=aggregator.coeffs.wet_rh_pct,
            daily_floor_hours=aggregator.coeffs.lwd_floor_hours,
            utc_offset_hours=aggregator.coeffs.day_utc_offset_hours,
        )
        out_png = str(plots_dir / f"disease_{st.station_id}_{as_of.date().isoformat()}.png")
        plot_disease_pressure(st.station_name, wetness, out_png, aggregator.coeffs.wet_rh_pct)
        logger.info("High disease risk at %s (BUS %.2f): %s", st.station_name, st.risk_score, out_png)


def main(argv: Optional[list] = None):
    parser = argparse.ArgumentParser(description="Field station risk monitor")
    parser.add_argument("--config", default=None, help="path to config.yml")
    parser.add_argument("--days", type=int, default=None, help="disease look-back window")
    parser.add_argument("--ingest", default=None, help="JSON-lines telemetry file to replay first")
    args = parser.parse_args(argv)

    cfg = load_config(args.config)
    setup_logging(cfg)

    days = args.days or int(cfg.get("app", {}).get("lookback_days", 10))
    store = Store(db_url=cfg["app"]["db_url"])

    if args.ingest:
        replay_file(store, args.ingest)

    plots_dir = Path(cfg.get("plots", {}).get("dir", "plots"))
    plots_dir.mkdir(exist_ok=True)

    with build_aggregator(cfg, store) as aggregator:
        as_of = dt.datetime.now(dt.timezone.utc)
        summary = aggregator.get_dashboard_summary(days=days, as_of=as_of)

        for pillar in (summary.drought, summary.flood, summary.storm, summary.disease):
            logger.info(
                "%-8s overall=%-6s high=%d medium=%d low=%d",
                pillar.pillar,
                pillar.risk_level.value,
                pillar.high_risk_count,
                pillar.medium_risk_count,
                pillar.low_risk_count,
            )
            for st in pillar.stations:
                if st.error:
                    logger.warning("%s: station %s failed: %s", pillar.pillar, st.station_id, st.error)

        plot_high_disease(store, aggregator, summary, days, as_of, plots_dir)

    logger.info("Stations: %d, as of %s", summary.total_stations, summary.last_updated)
    return summary


if __name__ == "__main__":
    main()
