import math

import pytest

from field_mapper import FIELD_MAPPING, FieldMapping, SensorType, map_fields, validate_mapping


def test_maps_device_fields_to_sensor_types():
    readings = dict(map_fields({"air_temp_c": 24.5, "air_rh_pct": 91, "soil_rh_pct": 33.0}))
    assert readings == {
        SensorType.AIR_TEMPERATURE: 24.5,
        SensorType.AIR_HUMIDITY: 91.0,
        SensorType.SOIL_MOISTURE: 33.0,
    }


def test_pressure_in_kpa_is_scaled_to_hpa():
    readings = dict(map_fields({"air_pressure_kpa": 101.0}))
    assert readings[SensorType.AIR_PRESSURE] == pytest.approx(1010.0)


def test_drops_nulls_non_numeric_and_unknown_fields():
    data = {
        "air_temp_c": None,
        "air_rh_pct": "95",
        "wind_speed_ms": True,
        "rain_mm": math.nan,
        "soil_temp_c": math.inf,
        "lux_sensor_v2": 120.0,
        "batt_v": 12.6,
    }
    assert map_fields(data) == [(SensorType.BATTERY_VOLTAGE, 12.6)]


def test_empty_data_yields_nothing():
    assert map_fields({}) == []


def test_every_mapping_targets_a_sensor_type():
    validate_mapping(FIELD_MAPPING)
    assert all(isinstance(m.sensor_type, SensorType) for m in FIELD_MAPPING.values())


def test_validate_mapping_rejects_bad_entries():
    with pytest.raises(ValueError):
        validate_mapping({"x": FieldMapping(SensorType.RAINFALL, scale=0.0)})
    with pytest.raises(ValueError):
        validate_mapping({"x": "rainfall"})


def test_integers_too_large_for_a_float_are_dropped():
    data = {"air_temp_c": 25.0, "air_rh_pct": 10**400}
    assert map_fields(data) == [(SensorType.AIR_TEMPERATURE, 25.0)]


def test_values_that_overflow_when_scaled_are_dropped():
    assert map_fields({"air_pressure_kpa": 1e308, "batt_v": 12.0}) == [
        (SensorType.BATTERY_VOLTAGE, 12.0)
    ]
