"""
Simulated data generator for the GasPro dashboard.

Seeds an empty local cache with a plausible production and headcount
history. All values are synthetic.
"""

import numpy as np
import pandas as pd

from .config import DEFAULT_APPROVED_EMPLOYEES, DEFAULT_APPROVED_OFFICERS, FIELDS

# ---------------------------------------------------------------------------
# Typical field parameters (MCF/day, BBL/day)
# ---------------------------------------------------------------------------
_FIELD_PARAMS = {
    "Alpha West": {"gas": 460, "gas_std": 15, "condensate": 120, "water": 35},
    "Bravo Shore": {"gas": 320, "gas_std": 12, "condensate": 80, "water": 22},
    "Charlie Deep": {"gas": 150, "gas_std": 8, "condensate": 30, "water": 18},
    "Delta Heights": {"gas": 595, "gas_std": 20, "condensate": 160, "water": 41},
    "Echo Flat": {"gas": 300, "gas_std": 10, "condensate": 70, "water": 25},
    "Foxtrot Valley": {"gas": 0, "gas_std": 0, "condensate": 0, "water": 0},
}


def generate_production_history(
    end_date: str = "2024-05-03",
    n_days: int = 14,
    seed: int = 42,
) -> list[dict]:
    """Generate daily production rows for every catalogue field.

    Standby fields report zero volumes. Row ids are deterministic
    ("seed-p-<n>") so reseeding the same window does not duplicate.
    """
    rng = np.random.default_rng(seed)
    dates = pd.date_range(end=pd.Timestamp(end_date), periods=n_days, freq="D")

    rows = []
    for date in dates:
        for info in FIELDS:
            params = _FIELD_PARAMS.get(info["name"], {"gas": 0, "gas_std": 0, "condensate": 0, "water": 0})
            if info["status"] == "Standby" or params["gas"] == 0:
                gas = condensate = water = 0.0
            else:
                gas = max(0.0, rng.normal(params["gas"], params["gas_std"]))
                ratio = gas / params["gas"]
                condensate = params["condensate"] * ratio
                water = max(0.0, rng.normal(params["water"], params["water"] * 0.05))

            rows.append({
                "id": f"seed-p-{len(rows) + 1}",
                "field": info["name"],
                "amount": round(float(gas), 1),
                "condensate": round(float(condensate), 1),
                "water": round(float(water), 1),
                "date": date.date().isoformat(),
            })

    return rows


def generate_personnel_history(
    end_date: str = "2024-05-03",
    n_reports: int = 3,
    every_days: int = 7,
    seed: int = 7,
) -> list[dict]:
    """Generate weekly headcount reports against the organogram."""
    rng = np.random.default_rng(seed)
    dates = pd.date_range(end=pd.Timestamp(end_date), periods=n_reports, freq=f"{every_days}D")

    rows = []
    for i, date in enumerate(dates, start=1):
        rows.append({
            "id": f"seed-h-{i}",
            "date": date.date().isoformat(),
            "officers": int(rng.integers(DEFAULT_APPROVED_OFFICERS - 18, DEFAULT_APPROVED_OFFICERS + 4)),
            "employees": int(rng.integers(DEFAULT_APPROVED_EMPLOYEES - 30, DEFAULT_APPROVED_EMPLOYEES + 10)),
            "approved_officers": DEFAULT_APPROVED_OFFICERS,
            "approved_employees": DEFAULT_APPROVED_EMPLOYEES,
        })

    return rows
