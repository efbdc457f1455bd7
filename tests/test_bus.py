import datetime as dt
import math

import pytest

import bus
from bus import BUSCoefficients, GroundTruth, RiskLevel, TemperatureBand, classify_risk
from errors import ValidationError
from leaf_wetness import HourlyObservation

START = dt.datetime(2025, 8, 1, 2, 0)


def _series(pairs, start=START):
    return [
        HourlyObservation(start + dt.timedelta(hours=i), t, rh) for i, (t, rh) in enumerate(pairs)
    ]


def test_empty_series_is_flagged_no_data():
    res = bus.score([])
    assert res.bus_score == 0
    assert res.risk_level == RiskLevel.LOW
    assert res.has_data is False
    assert res.message


def test_ten_humid_hours_in_optimal_band():
    res = bus.score(_series([(24.0, 95.0)] * 10))
    assert res.has_data is True
    assert res.lwd_hours == 10
    assert res.bus_score == pytest.approx(2.5)
    assert res.risk_level in (RiskLevel.MEDIUM, RiskLevel.HIGH)


def test_score_increases_with_wetness():
    short = bus.score(_series([(24.0, 95.0)] * 6))
    longer = bus.score(_series([(24.0, 95.0)] * 10))
    prolonged = bus.score(_series([(24.0, 95.0)] * 20))
    assert short.bus_score < longer.bus_score < prolonged.bus_score
    # 20 / 4 + (20 - 12) / 6
    assert prolonged.bus_score == pytest.approx(6.33)


def test_score_decays_outside_optimal_band():
    optimal = bus.score(_series([(24.0, 95.0)] * 10)).bus_score
    favourable = bus.score(_series([(21.0, 95.0)] * 10)).bus_score
    marginal = bus.score(_series([(17.0, 95.0)] * 20)).bus_score
    assert optimal == pytest.approx(2.5)
    assert favourable == pytest.approx(0.5)
    assert marginal == pytest.approx(2.33)


def test_no_score_outside_viable_temperature():
    assert bus.score(_series([(12.0, 98.0)] * 24)).bus_score == 0
    assert bus.score(_series([(39.0, 98.0)] * 24)).bus_score == 0


def test_too_little_wetness_scores_zero():
    res = bus.score(_series([(24.0, 95.0)] * 3 + [(24.0, 70.0)] * 10))
    assert res.lwd_hours == 3
    assert res.bus_score == 0
    assert res.has_data is True


def test_uses_temperature_of_wet_hours():
    res = bus.score(_series([(24.0, 95.0)] * 10 + [(35.0, 60.0)] * 10))
    assert res.bus_score == pytest.approx(2.5)
    assert res.temperature_avg == pytest.approx(29.5)


def test_sub_floor_hours_weighted_by_coefficient():
    day1 = _series([(24.0, 95.0)] * 3, start=dt.datetime(2025, 8, 1, 3))
    day2 = _series([(24.0, 95.0)] * 3, start=dt.datetime(2025, 8, 2, 3))
    series = day1 + day2

    ignored = bus.score(series)
    assert ignored.lwd_hours == 6
    assert ignored.bus_score == 0

    counted = bus.score(series, BUSCoefficients(sub_floor_weight=1.0))
    assert counted.bus_score == pytest.approx(1.5)
    assert counted.risk_level == RiskLevel.MEDIUM


@pytest.mark.parametrize(
    "score,level",
    [(0.0, RiskLevel.LOW), (1.49, RiskLevel.LOW), (1.5, RiskLevel.MEDIUM),
     (2.24, RiskLevel.MEDIUM), (2.25, RiskLevel.HIGH), (7.0, RiskLevel.HIGH)],
)
def test_classification_partition(score, level):
    assert classify_risk(score) == level


def test_coefficients_are_injectable():
    coeffs = BUSCoefficients.from_dict({"lwd_divisor": 8})
    res = bus.score(_series([(24.0, 95.0)] * 10), coeffs)
    assert res.bus_score == pytest.approx(1.25)
    assert res.risk_level == RiskLevel.LOW


def test_coefficients_from_config_dict():
    coeffs = BUSCoefficients.from_dict(
        {
            "viable_temp_c": [16, 35],
            "lwd_floor_hours": 6,
            "temperature_bands": [{"low": 22, "high": 27, "penalty": 1.5}],
        }
    )
    assert coeffs.viable_temp_c == (16.0, 35.0)
    assert coeffs.lwd_floor_hours == 6
    assert coeffs.temperature_bands == (TemperatureBand(22.0, 27.0, 1.5),)
    assert BUSCoefficients.from_dict(None) == BUSCoefficients()


def test_invalid_coefficients_rejected():
    with pytest.raises(ValidationError):
        BUSCoefficients.from_dict({"temperature_bands": [{"low": 30, "high": 20, "penalty": 1}]})
    with pytest.raises(ValidationError):
        BUSCoefficients.from_dict({"lwd_divisor": 0})


def test_day_offset_from_config():
    night = _series([(24.0, 95.0)] * 6, start=dt.datetime(2025, 8, 1, 20))
    assert bus.score(night).effective_lwd_hours == 4
    local = bus.score(night, BUSCoefficients.from_dict({"day_utc_offset_hours": 7}))
    assert local.effective_lwd_hours == 6
    assert local.bus_score == pytest.approx(1.5)
    with pytest.raises(ValidationError):
        BUSCoefficients.from_dict({"day_utc_offset_hours": 20})


def test_validate_against_field_surveys():
    datasets = [
        (_series([(24.0, 95.0)] * 10), GroundTruth("2019-09-01 to 2019-09-10", 8.5, actual_bus_score=3.0)),
        ([], GroundTruth("2019-10-15 to 2019-10-25", 1.0)),
    ]
    report = bus.validate(datasets)

    assert report.sample_size == 2
    assert report.mae == pytest.approx(0.75)
    assert report.rmse == pytest.approx(0.791)
    assert report.correlation == pytest.approx(1.0)
    assert [(p.predicted, p.actual, p.error) for p in report.predictions] == [
        (2.5, 3.0, 0.5),
        (0.0, 1.0, 1.0),
    ]
    assert report.to_dict()["predictions"][0]["period"] == "2019-09-01 to 2019-09-10"


def test_accuracy_metrics():
    assert bus.mean_absolute_error([1.0, 2.0], [2.0, 4.0]) == pytest.approx(1.5)
    assert bus.root_mean_square_error([0.0, 0.0], [3.0, 4.0]) == pytest.approx(math.sqrt(12.5))
    assert bus.pearson_correlation([1.0, 2.0, 3.0], [3.0, 2.0, 1.0]) == pytest.approx(-1.0)
    # no variance on one side
    assert bus.pearson_correlation([1.0, 1.0], [2.0, 3.0]) == 0.0


def test_accuracy_inputs_rejected():
    with pytest.raises(ValidationError):
        bus.mean_absolute_error([1.0], [1.0, 2.0])
    with pytest.raises(ValidationError):
        bus.root_mean_square_error([], [])
    with pytest.raises(ValidationError):
        bus.validate([])
