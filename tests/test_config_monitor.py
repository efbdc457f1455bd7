import datetime as dt
import json
import os

from config_utils import expand_env_vars, load_config
from field_mapper import SensorType
from leaf_wetness import HourlyObservation, compute_leaf_wetness
from monitor import main, replay_file
from plotter import plot_disease_pressure


def test_expand_env_vars(monkeypatch):
    monkeypatch.setenv("AGRI_DB_URL", "sqlite:///x.db")
    cfg = expand_env_vars({"app": {"db_url": "${AGRI_DB_URL}", "other": ["${MISSING_VAR}", 3]}})
    assert cfg == {"app": {"db_url": "sqlite:///x.db", "other": ["${MISSING_VAR}", 3]}}


def test_load_config_from_env_path(tmp_path, monkeypatch):
    path = tmp_path / "cfg.yml"
    path.write_text("app:\n  db_url: sqlite://\n  log_level: debug\n")
    monkeypatch.setenv("AGRI_RISK_CONFIG", str(path))
    assert load_config()["app"]["db_url"] == "sqlite://"


def test_replay_file(store, station, tmp_path):
    st, sensors = station
    lines = [
        {"device_id": "RDG0001", "ts": "2025-08-01T10:00:00Z", "data": {"air_temp_c": 25.0}},
        {"device_id": "UNKNOWN", "ts": "2025-08-01T10:00:00Z", "data": {"air_temp_c": 25.0}},
        {"device_id": "RDG0001", "ts": "2025-08-01T11:00:00Z", "data": {"air_temp_c": 26.0}},
    ]
    path = tmp_path / "telemetry.jsonl"
    path.write_text("\n".join(json.dumps(l) for l in lines) + "\nnot json\n\n")

    replay_file(store, str(path))

    latest = store.get_latest_reading(st.station_id, SensorType.AIR_TEMPERATURE)
    assert latest.value == 26.0


def test_main_runs_dashboard(tmp_path):
    cfg_path = tmp_path / "config.yml"
    cfg_path.write_text(
        "app:\n"
        f"  db_url: sqlite:///{tmp_path / 'cli.db'}\n"
        "  log_level: WARNING\n"
        "plots:\n"
        f"  dir: {tmp_path / 'plots'}\n"
    )
    telemetry = tmp_path / "in.jsonl"
    telemetry.write_text("")

    summary = main(["--config", str(cfg_path), "--days", "3", "--ingest", str(telemetry)])

    assert summary.total_stations == 0
    assert os.path.isdir(tmp_path / "plots")


def test_plot_disease_pressure(tmp_path):
    start = dt.datetime(2025, 8, 1, 0, 0)
    series = [
        HourlyObservation(start + dt.timedelta(hours=i), 24.0, 95.0 if i < 8 else 70.0)
        for i in range(24)
    ]
    out = plot_disease_pressure("Rice Field North", compute_leaf_wetness(series), str(tmp_path / "p.png"))
    assert os.path.getsize(out) > 0
