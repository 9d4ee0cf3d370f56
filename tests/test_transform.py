"""Tests for the key mapping layer that remaps backend payloads."""

from __future__ import annotations

from gridcast import transform


def test_remap_first_non_none_source_wins():
    """Aliases for the same field should resolve to the first non-None value."""

    raw = {"name": None, "station": "DP3", "derated": "10", "deratedCapacityMw": "99"}

    out = transform.remap(raw, transform.STATION_KEYS)

    assert out == {"name": "DP3", "derated_capacity_mw": "10"}


def test_remap_drops_unknown_keys():
    """Keys missing from the mapping should not reach the validation layer."""

    out = transform.remap({"capacity": 3.2, "colour": "blue"}, transform.SOLAR_KEYS)

    assert out == {"capacity_mwp": 3.2}


def test_remap_peak_reads_nested_dashboard_peaks():
    """Nested `actualEveningPeak`/`actualDayPeak` objects should be flattened."""

    raw = {
        "peakDemandDate": "2025-06-14",
        "actualEveningPeak": {"onBars": 200, "suppressed": 212},
        "actualDayPeak": {"onBars": 185, "suppressed": 190},
    }

    out = transform.remap_peak(raw)

    assert out == {
        "date": "2025-06-14",
        "evening_on_bars_mw": 200,
        "evening_suppressed_mw": 212,
        "day_on_bars_mw": 185,
        "day_suppressed_mw": 190,
    }


def test_remap_peak_prefers_flat_columns():
    """Flat table columns should win over nested objects for the same field."""

    raw = {
        "evening_peak_on_bars_mw": 205,
        "actualEveningPeak": {"onBars": 200, "suppressed": 212},
    }

    out = transform.remap_peak(raw)

    assert out["evening_on_bars_mw"] == 205
    assert out["evening_suppressed_mw"] == 212


def test_horizon_of():
    """Only `month_<n>` keys should carry a horizon."""

    assert transform.horizon_of("month_12") == 12
    assert transform.horizon_of("current_peak") is None
    assert transform.horizon_of("month_x") is None
