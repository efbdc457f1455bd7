# field_mapper.py
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class SensorType(str, Enum):
    AIR_TEMPERATURE = "air_temperature"
    AIR_HUMIDITY = "air_humidity"
    AIR_PRESSURE = "air_pressure"
    WIND_SPEED = "wind_speed"
    RAINFALL = "rainfall"
    RAIN_RATE = "rain_rate"
    SOIL_MOISTURE = "soil_moisture"
    SOIL_TEMPERATURE = "soil_temperature"
    RIVER_LEVEL = "river_level"
    # device health
    CABINET_HUMIDITY = "cabinet_humidity"
    CABINET_TEMPERATURE = "cabinet_temperature"
    CONTROLLER_TEMPERATURE = "controller_temperature"
    BATTERY_TEMPERATURE = "battery_temperature"
    PV_CURRENT = "pv_current"
    PV_VOLTAGE = "pv_voltage"
    LOAD_POWER = "load_power"
    CHARGE_CURRENT = "charge_current"
    LOAD_CURRENT = "load_current"
    LOAD_VOLTAGE = "load_voltage"
    BATTERY_CAPACITY = "battery_capacity"
    BATTERY_VOLTAGE = "battery_voltage"


@dataclass(frozen=True)
class FieldMapping:
    sensor_type: SensorType
    scale: float = 1.0


# Device payload field -> canonical sensor type. Pressure is normalised to hPa.
FIELD_MAPPING: Dict[str, FieldMapping] = {
    "air_temp_c": FieldMapping(SensorType.AIR_TEMPERATURE),
    "air_rh_pct": FieldMapping(SensorType.AIR_HUMIDITY),
    "air_pressure_kpa": FieldMapping(SensorType.AIR_PRESSURE, scale=10.0),
    "air_pressure_hpa": FieldMapping(SensorType.AIR_PRESSURE),
    "wind_speed_ms": FieldMapping(SensorType.WIND_SPEED),
    "rain_mm": FieldMapping(SensorType.RAINFALL),
    "rain_rate_mmph": FieldMapping(SensorType.RAIN_RATE),
    "soil_rh_pct": FieldMapping(SensorType.SOIL_MOISTURE),
    "soil_temp_c": FieldMapping(SensorType.SOIL_TEMPERATURE),
    "river_level": FieldMapping(SensorType.RIVER_LEVEL),
    "cbn_rh_pct": FieldMapping(SensorType.CABINET_HUMIDITY),
    "cbn_temp_c": FieldMapping(SensorType.CABINET_TEMPERATURE),
    "ctrl_temp_c": FieldMapping(SensorType.CONTROLLER_TEMPERATURE),
    "batt_temp_c": FieldMapping(SensorType.BATTERY_TEMPERATURE),
    "pv_a": FieldMapping(SensorType.PV_CURRENT),
    "pv_v": FieldMapping(SensorType.PV_VOLTAGE),
    "load_w": FieldMapping(SensorType.LOAD_POWER),
    "chg_a": FieldMapping(SensorType.CHARGE_CURRENT),
    "load_a": FieldMapping(SensorType.LOAD_CURRENT),
    "load_v": FieldMapping(SensorType.LOAD_VOLTAGE),
    "batt_cap": FieldMapping(SensorType.BATTERY_CAPACITY),
    "batt_v": FieldMapping(SensorType.BATTERY_VOLTAGE),
}


def validate_mapping(mapping: Mapping[str, FieldMapping]) -> None:
    for field_name, entry in mapping.items():
        if not isinstance(entry, FieldMapping) or not isinstance(
            entry.sensor_type, SensorType
        ):
            raise ValueError(f"Field '{field_name}' does not map to a SensorType")
        if not (entry.scale > 0 and math.isfinite(entry.scale)):
            raise ValueError(f"Field '{field_name}' has invalid scale {entry.scale!r}")


validate_mapping(FIELD_MAPPING)


def _as_number(value: Any) -> Optional[float]:
    """float(value), or None for bools, non-numbers, nan/inf and ints too large for a float."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def map_fields(
    data: Mapping[str, Any],
    mapping: Mapping[str, FieldMapping] = FIELD_MAPPING,
) -> List[Tuple[SensorType, float]]:
    """
    Turn a telemetry ``data`` object into (sensor_type, value) pairs.
    Nulls, non-numeric values and unknown field names are dropped.
    """
    readings: List[Tuple[SensorType, float]] = []
    for field_name, value in data.items():
        entry = mapping.get(field_name)
        if entry is None:
            continue
        number = _as_number(value)
        if number is None:
            continue
        scaled = number * entry.scale
        if not math.isfinite(scaled):
            continue
        readings.append((entry.sensor_type, scaled))
    return readings
