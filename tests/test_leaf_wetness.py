import datetime as dt

import pytest

from leaf_wetness import HourlyObservation, compute_leaf_wetness, dew_point

START = dt.datetime(2025, 8, 1, 8, 0)


def _series(pairs, start=START):
    return [
        HourlyObservation(start + dt.timedelta(hours=i), t, rh) for i, (t, rh) in enumerate(pairs)
    ]


def test_dew_point_linear_approximation():
    assert dew_point(24.0, 95.0) == pytest.approx(23.0)
    assert dew_point(30.0, 50.0) == pytest.approx(20.0)


def test_ten_wet_hours_in_one_day():
    out = compute_leaf_wetness(_series([(24.0, 95.0)] * 10))
    assert out.lwd_hours == 10
    assert out.effective_lwd_hours == 10
    assert out.below_floor_hours == 0
    assert out.temperature_avg == pytest.approx(24.0)
    assert out.humidity_avg == pytest.approx(95.0)
    assert all(h.wet and not h.below_floor for h in out.hourly)
    assert out.hourly[0].dewpoint == pytest.approx(23.0)


def test_exactly_ninety_percent_is_not_wet():
    out = compute_leaf_wetness(_series([(24.0, 90.0)] * 5))
    assert out.lwd_hours == 0
    assert not any(h.wet for h in out.hourly)


def test_days_below_floor_are_flagged_but_counted():
    day1 = _series([(24.0, 95.0)] * 3 + [(30.0, 60.0)] * 3, start=dt.datetime(2025, 8, 1, 6))
    day2 = _series([(24.0, 95.0)] * 5, start=dt.datetime(2025, 8, 2, 6))
    out = compute_leaf_wetness(day1 + day2)

    assert out.lwd_hours == 8
    assert out.below_floor_hours == 3
    assert out.effective_lwd_hours == 5
    assert [h.below_floor for h in out.hourly[:3]] == [True, True, True]
    assert not any(h.below_floor for h in out.hourly[6:])


def test_wet_hour_temperature_average():
    out = compute_leaf_wetness(_series([(24.0, 95.0)] * 2 + [(34.0, 50.0)] * 2))
    assert out.wet_temperature_avg == pytest.approx(24.0)
    assert out.temperature_avg == pytest.approx(29.0)


def test_empty_series():
    out = compute_leaf_wetness([])
    assert out.hourly == []
    assert out.lwd_hours == 0


def test_floor_uses_local_day_boundary():
    # 20:00-01:00 UTC is 03:00-08:00 in UTC+7
    night = _series([(24.0, 95.0)] * 6, start=dt.datetime(2025, 8, 1, 20))

    utc_days = compute_leaf_wetness(night)
    assert utc_days.below_floor_hours == 2
    assert utc_days.effective_lwd_hours == 4

    local_days = compute_leaf_wetness(night, utc_offset_hours=7)
    assert local_days.below_floor_hours == 0
    assert local_days.effective_lwd_hours == 6
