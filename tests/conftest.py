"""Shared fixtures: a file-backed SQLite store with one provisioned station."""

import datetime as dt

import pytest

from field_mapper import SensorType
from store import Store

AS_OF = dt.datetime(2025, 8, 2, 0, 0)


@pytest.fixture
def store(tmp_path):
    return Store(f"sqlite:///{tmp_path / 'test.db'}")


@pytest.fixture
def station(store):
    """Station RDG0001 with temperature, humidity, soil and rain sensors."""
    st = store.create_station("RDG0001", "Rice Field North", province="Nakhon Pathom")
    sensors = {
        t: store.create_sensor(st.station_id, t)
        for t in (
            SensorType.AIR_TEMPERATURE,
            SensorType.AIR_HUMIDITY,
            SensorType.SOIL_MOISTURE,
            SensorType.RAINFALL,
        )
    }
    store.save_threshold(SensorType.AIR_TEMPERATURE, 10.0, 40.0)
    return st, sensors


@pytest.fixture
def add_hourly(store):
    """Write one reading per hour for a sensor, starting at ``start``."""

    def _add(sensor, start, values):
        for i, v in enumerate(values):
            store.insert_reading(sensor.sensor_id, v, start + dt.timedelta(hours=i))

    return _add
