# api.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bus import BUSCoefficients
from config_utils import load_config, setup_logging
from errors import NotFound, TransientIOError, ValidationError
from hazards import HazardBands
from ingest import ingest_telemetry
from risk import PILLARS, AggregatorSettings, RiskAggregator
from store import Store
from telemetry import parse_telemetry
from thresholds import ThresholdEvaluator

logger = logging.getLogger(__name__)


def _fail(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def create_app(cfg: Optional[Dict[str, Any]] = None, store: Optional[Store] = None) -> FastAPI:
    """
    Build the API. Run with:  uvicorn api:create_app --factory
    """
    cfg = cfg if cfg is not None else load_config()
    setup_logging(cfg)

    store = store or Store(cfg["app"]["db_url"])
    default_days = int(cfg.get("app", {}).get("lookback_days", 10))
    aggregator = RiskAggregator(
        store,
        coeffs=BUSCoefficients.from_dict(cfg.get("disease", {}).get("bus")),
        bands=HazardBands.from_dict(cfg.get("hazards")),
        settings=AggregatorSettings.from_dict(cfg.get("aggregator")),
    )
    evaluator = ThresholdEvaluator(store.get_threshold_by_sensor_type)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            logger.info("Stopping risk aggregator")
            aggregator.close()

    app = FastAPI(title="Field Station Risk API", version="0.1.0", lifespan=lifespan)
    app.state.store = store
    app.state.aggregator = aggregator

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        return _fail(422, str(exc))

    @app.exception_handler(ValidationError)
    async def _validation(request: Request, exc: ValidationError):
        return _fail(422, str(exc))

    @app.exception_handler(NotFound)
    async def _not_found(request: Request, exc: NotFound):
        return _fail(404, str(exc))

    @app.exception_handler(TransientIOError)
    async def _transient(request: Request, exc: TransientIOError):
        logger.error("Storage error on %s: %s", request.url.path, exc)
        return _fail(503, "Storage temporarily unavailable")

    @app.get("/health")
    def health():
        return {"success": True, "status": "ok"}

    @app.post("/api/telemetry")
    def post_telemetry(payload: Any = Body(...)):
        message = parse_telemetry(payload)
        result = ingest_telemetry(store, message, evaluator)
        if not result.success:
            transient = any(e.kind == "TransientIOError" for e in result.errors)
            return JSONResponse(status_code=503 if transient else 404, content=result.to_dict())
        return result.to_dict()

    @app.get("/api/disease-risk/station/{station_id}")
    def disease_risk_station(station_id: int, days: int = Query(default_days, ge=1, le=90)):
        result = aggregator.get_disease_risk(station_id, days=days)
        return {"success": True, "data": {"station_id": station_id, **result.to_dict()}}

    @app.get("/api/disease-risk/all-stations")
    def disease_risk_all(days: int = Query(default_days, ge=1, le=90)):
        return {"success": True, "data": aggregator.get_all_stations_disease_risk(days=days)}

    @app.get("/api/risk/summary")
    def risk_summary(days: int = Query(default_days, ge=1, le=90)):
        summary = aggregator.get_dashboard_summary(days=days)
        return {"success": True, "data": summary.to_dict()}

    @app.get("/api/risk/{pillar}")
    def risk_pillar(pillar: str, days: int = Query(default_days, ge=1, le=90)):
        if pillar not in PILLARS:
            return _fail(404, f"Unknown pillar '{pillar}'")
        return {"success": True, "data": aggregator.compute_pillar(pillar, days=days).to_dict()}

    @app.get("/api/alerts")
    def get_alerts(limit: int = Query(50, ge=1, le=500)):
        rows = store.get_recent_alerts(limit)
        return {
            "success": True,
            "alerts": [
                {
                    "alert_id": a.alert_id,
                    "station_id": a.station_id,
                    "sensor_id": a.sensor_id,
                    "data_id": a.data_id,
                    "alert_type": a.alert_type,
                    "message": a.alert_message,
                    "severity": a.severity,
                    "is_acknowledged": a.is_acknowledged,
                    "created_at": a.created_at.isoformat(timespec="seconds"),
                }
                for a in rows
            ],
        }

    return app
