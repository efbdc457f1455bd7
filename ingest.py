# ingest.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from errors import IngestError, SensorNotFound, TransientIOError
from field_mapper import map_fields
from store import Store
from telemetry import TelemetryMessage
from thresholds import ThresholdEvaluator

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    success: bool
    station_id: int
    records_created: int = 0
    alerts_triggered: int = 0
    message: str = ""
    errors: List[IngestError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "station_id": self.station_id,
            "records_created": self.records_created,
            "alerts_triggered": self.alerts_triggered,
            "message": self.message,
            "errors": [str(e) for e in self.errors],
        }


def ingest_telemetry(
    store: Store,
    telemetry: TelemetryMessage,
    evaluator: Optional[ThresholdEvaluator] = None,
) -> IngestResult:
    """
    Persist every mappable reading of one message and raise threshold alerts.

    Only an unknown (or unreadable) station fails the whole call; a missing
    sensor or a failed insert is recorded in ``errors`` and the loop moves on.
    """
    if evaluator is None:
        evaluator = ThresholdEvaluator(store.get_threshold_by_sensor_type)

    logger.info("Processing telemetry from device %s", telemetry.device_id)

    try:
        station = store.find_station_by_device_id(telemetry.device_id)
    except TransientIOError as e:
        logger.error("Station lookup failed for %s: %s", telemetry.device_id, e)
        return IngestResult(
            success=False,
            station_id=-1,
            message=f"Station lookup failed for device_id: {telemetry.device_id}",
            errors=[IngestError.from_exception(e)],
        )

    if station is None:
        logger.warning("Station not found for device_id %s", telemetry.device_id)
        return IngestResult(
            success=False,
            station_id=-1,
            message=f"Station not found for device_id: {telemetry.device_id}",
            errors=[IngestError("StationNotFound", telemetry.device_id)],
        )

    result = IngestResult(success=True, station_id=station.station_id)

    try:
        sensors = store.get_sensors_by_station(station.station_id)
    except TransientIOError as e:
        sensors = []
        result.errors.append(IngestError.from_exception(e))
    sensor_by_type = {s.sensor_type: s for s in sensors}

    readings = map_fields(telemetry.data)
    logger.debug(
        "Station %s: %d sensors, %d mapped readings",
        station.station_id,
        len(sensors),
        len(readings),
    )

    alerted = False
    for sensor_type, value in readings:
        sensor = sensor_by_type.get(sensor_type.value)
        if sensor is None:
            missing = SensorNotFound(sensor_type.value)
            logger.debug("Station %s: %s", station.station_id, missing)
            result.errors.append(IngestError.from_exception(missing, sensor_type.value))
            continue

        try:
            reading = store.insert_reading(sensor.sensor_id, value, telemetry.ts)
            result.records_created += 1

            violation = evaluator.evaluate(sensor_type.value, value)
            if violation is None:
                continue

            store.insert_alert(
                station.station_id,
                sensor.sensor_id,
                reading.data_id,
                violation.alert_type,
                violation.message,
                violation.severity.value,
            )
            result.alerts_triggered += 1
            alerted = True
            logger.info("Alert [%s] %s", violation.severity.value, violation.message)
        except Exception as e:
            logger.warning("Error processing %s: %s", sensor_type.value, e)
            result.errors.append(
                IngestError.from_exception(e, sensor_type.value)
            )

    _refresh_station_status(store, station, alerted, result)

    result.message = f"Processed telemetry from {station.station_name}"
    if result.errors:
        logger.warning(
            "Station %s: %d non-fatal errors: %s",
            station.station_id,
            len(result.errors),
            "; ".join(str(e) for e in result.errors),
        )
    return result


def _refresh_station_status(store, station, alerted: bool, result: IngestResult) -> None:
    if station.status == "offline":
        return
    new_status = "warning" if alerted else "normal"
    if station.status == new_status:
        return
    try:
        store.update_station_status(station.station_id, new_status)
        logger.info(
            "Station %s status %s -> %s", station.station_id, station.status, new_status
        )
    except TransientIOError as e:
        result.errors.append(IngestError("TransientIOError", f"status update: {e}"))
