import pytest

from errors import ValidationError
from field_mapper import SensorType
from thresholds import Severity, ThresholdEvaluator, ThresholdRange, evaluate_reading

RANGE = ThresholdRange(10.0, 40.0)


def test_no_threshold_means_no_violation():
    assert evaluate_reading("air_temperature", 1000.0, None) is None


@pytest.mark.parametrize("value", [10.0, 25.0, 40.0])
def test_values_within_range_pass(value):
    assert evaluate_reading("air_temperature", value, RANGE) is None


@pytest.mark.parametrize(
    "value,severity",
    [
        (9.0, Severity.MEDIUM),
        (8.0, Severity.MEDIUM),
        (7.9, Severity.HIGH),
        (41.0, Severity.MEDIUM),
        (48.0, Severity.MEDIUM),
        (48.1, Severity.HIGH),
    ],
)
def test_severity_escalates_past_twenty_percent(value, severity):
    violation = evaluate_reading("air_temperature", value, RANGE)
    assert violation is not None
    assert violation.severity == severity
    assert violation.severity != Severity.CRITICAL


def test_message_names_bound_and_amount():
    above = evaluate_reading("air_temperature", 45.0, RANGE)
    assert above.bound == "max"
    assert above.message == "air_temperature is above threshold (45.0 > 40) by 5.0"

    below = evaluate_reading("air_temperature", 7.5, RANGE)
    assert below.bound == "min"
    assert below.message == "air_temperature is below threshold (7.5 < 10) by 2.5"
    assert below.alert_type == "threshold_violation"


def test_threshold_range_requires_min_below_max():
    with pytest.raises(ValidationError):
        ThresholdRange(5.0, 5.0)
    with pytest.raises(ValidationError):
        ThresholdRange(6.0, 5.0)


def test_store_rejects_inverted_threshold(store):
    with pytest.raises(ValidationError):
        store.save_threshold(SensorType.SOIL_MOISTURE, 80.0, 20.0)
    assert store.get_threshold_by_sensor_type(SensorType.SOIL_MOISTURE) is None


def test_save_threshold_replaces_active_row(store):
    store.save_threshold(SensorType.SOIL_MOISTURE, 20.0, 80.0)
    store.save_threshold(SensorType.SOIL_MOISTURE, 25.0, 75.0)
    row = store.get_threshold_by_sensor_type(SensorType.SOIL_MOISTURE)
    assert (row.min_value, row.max_value) == (25.0, 75.0)


def test_evaluator_uses_lookup(store):
    store.save_threshold(SensorType.WIND_SPEED, 0.0, 20.0)
    evaluator = ThresholdEvaluator(store.get_threshold_by_sensor_type)
    assert evaluator.evaluate("wind_speed", 10.0) is None
    assert evaluator.evaluate("wind_speed", 30.0).severity == Severity.HIGH
    assert evaluator.evaluate("rainfall", 999.0) is None
