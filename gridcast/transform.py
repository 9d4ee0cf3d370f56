"""
gridcast/transform.py

Key mapping layer from the dashboard backend's JSON field names to the
engine's record fields.

Responsibilities
----------------
- Define one key map per record type. The backend mixes camelCase (the
  daily station report) with snake_case (forecast tables), so several
  source keys may point at the same field.
- Provide `remap` for turning a raw payload dict into a field-keyed dict
  ready for validation.
"""

from __future__ import annotations

import re
from typing import Any

# Power station rows from the DBIS availability report.
STATION_KEYS = {
    "name": "name",
    "station": "name",
    "derated": "derated_capacity_mw",
    "deratedCapacityMw": "derated_capacity_mw",
    "derated_capacity_mw": "derated_capacity_mw",
    "available": "available_capacity_mw",
    "availableCapacityMw": "available_capacity_mw",
    "available_capacity_mw": "available_capacity_mw",
    "units": "unit_count",
    "unitCount": "unit_count",
    "total_units": "unit_count",
}

# Solar sites (MWp).
SOLAR_KEYS = {
    "name": "name",
    "capacity": "capacity_mwp",
    "capacityMwp": "capacity_mwp",
    "capacity_mwp": "capacity_mwp",
}

# Flat peak-demand rows (peak demand history / daily summary table).
PEAK_KEYS = {
    "date": "date",
    "report_date": "date",
    "peakDemandDate": "date",
    "eveningOnBars": "evening_on_bars_mw",
    "evening_peak_on_bars_mw": "evening_on_bars_mw",
    "eveningSuppressed": "evening_suppressed_mw",
    "evening_peak_suppressed_mw": "evening_suppressed_mw",
    "dayOnBars": "day_on_bars_mw",
    "day_peak_on_bars_mw": "day_on_bars_mw",
    "daySuppressed": "day_suppressed_mw",
    "day_peak_suppressed_mw": "day_suppressed_mw",
}

# Nested peak-demand objects on the dashboard payload.
NESTED_PEAK_KEYS = {
    "actualEveningPeak": ("evening_on_bars_mw", "evening_suppressed_mw"),
    "actualDayPeak": ("day_on_bars_mw", "day_suppressed_mw"),
}

# Server-computed linear forecast rows (gpl_forecast_demand).
FORECAST_KEYS = {
    "grid": "grid",
    "projected_month": "projected_month",
    "projected_peak_mw": "projected_peak_mw",
    "confidence_low_mw": "confidence_low_mw",
    "confidence_high_mw": "confidence_high_mw",
}

# Capacity/risk rows (gpl_forecast_capacity).
CAPACITY_KEYS = {
    "grid": "grid",
    "current_capacity_mw": "current_capacity_mw",
    "reserve_margin_pct": "reserve_margin_pct",
    "shortfall_date": "shortfall_date",
    "risk_level": "risk_level",
}

# Scenario payload grid keys -> forecasting grid names.
SCENARIO_GRID_KEYS = {
    "dbis": "DBIS",
    "essequibo": "Essequibo",
}

# Horizon keys in the scenario payload look like "month_6".
HORIZON_KEY = re.compile(r"^month_(\d+)$")


def remap(raw: dict[str, Any], keys: dict[str, str]) -> dict[str, Any]:
    """Return a field-keyed copy of `raw` using the `keys` mapping.

    Unknown source keys are dropped. When several source keys map to the
    same field, the first non-None value in `keys` order wins.

    Args:
        raw: Backend record.
        keys: Source key -> field name mapping.

    Returns:
        dict[str, Any]: New dict keyed by engine field names.
    """
    out: dict[str, Any] = {}
    for src, dst in keys.items():
        if src in raw and out.get(dst) is None:
            out[dst] = raw[src]
    return out


def remap_peak(raw: dict[str, Any]) -> dict[str, Any]:
    """Map either a flat peak row or a dashboard payload with nested peaks."""
    out = remap(raw, PEAK_KEYS)
    for src, (on_bars, suppressed) in NESTED_PEAK_KEYS.items():
        nested = raw.get(src)
        if isinstance(nested, dict):
            if out.get(on_bars) is None:
                out[on_bars] = nested.get("onBars")
            if out.get(suppressed) is None:
                out[suppressed] = nested.get("suppressed")
    return out


def horizon_of(key: str) -> int | None:
    """Return the month count encoded in a scenario key such as "month_12"."""
    match = HORIZON_KEY.match(key)
    return int(match.group(1)) if match else None
