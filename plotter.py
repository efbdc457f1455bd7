# plotter.py
from __future__ import annotations

import matplotlib
import numpy as np

from leaf_wetness import LeafWetnessSeries

matplotlib.use("Agg")
import matplotlib.pyplot as plt


def plot_disease_pressure(
    station_label: str,
    wetness: LeafWetnessSeries,
    out_path: str,
    wet_rh_pct: float = 90.0,
) -> str:
    hours = [h.ts for h in wetness.hourly]
    temps = np.asarray([h.temp for h in wetness.hourly], dtype=float)
    dews = np.asarray([h.dewpoint for h in wetness.hourly], dtype=float)
    rhs = np.asarray([h.rh for h in wetness.hourly], dtype=float)
    wet = np.asarray([h.wet for h in wetness.hourly], dtype=bool)

    fig, ax = plt.subplots()
    ax.plot(hours, temps, linewidth=1, label="Temperature (°C)")
    ax.plot(hours, dews, linestyle="--", linewidth=1, label="Dew point (°C)")
    ax.set_xlabel("Hour")
    ax.set_ylabel("°C")

    ax2 = ax.twinx()
    ax2.plot(hours, rhs, linestyle=":", linewidth=1, color="tab:green", label="RH (%)")
    ax2.axhline(wet_rh_pct, linestyle=":", linewidth=1, color="tab:gray")
    ax2.set_ylabel("RH (%)")
    # shade wet hours
    ax2.fill_between(hours, 0, 100, where=wet, alpha=0.15, step="mid", color="tab:blue")
    ax2.set_ylim(0, 100)

    ax.set_title(f"{station_label} (LWD {wetness.lwd_hours} h)")
    ax.legend(loc="upper left", fontsize=8)
    fig.autofmt_xdate()
    fig.tight_layout()
    fig.savefig(out_path, dpi=150)
    plt.close(fig)
    return out_path
