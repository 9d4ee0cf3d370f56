"""Tests for validation of raw backend payloads into engine records."""

from __future__ import annotations

import logging
import math

import pytest
from pydantic import ValidationError

from gridcast import validate


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("12.5", 12.5),
        (7, 7.0),
        ("", 0.0),
        ("   ", 0.0),
        (None, 0.0),
        ("n/a", 0.0),
        (float("nan"), 0.0),
        ("inf", 0.0),
        (10**400, 0.0),
    ],
)
def test_to_float_coerces_or_defaults(raw, expected):
    """Numeric strings parse; blanks, garbage and non-finite values give the default."""

    assert validate.to_float(raw) == expected


def test_to_float_custom_default():
    """A `None` default should be returned untouched for missing values."""

    assert validate.to_float(None, None) is None
    assert validate.to_float("bad", None) is None


def test_validate_station_coerces_strings():
    """String-encoded NUMERIC columns should be coerced to numbers."""

    station = validate.validate_station(
        {"station": "DP3", "derated": "150.5", "available": "130", "units": "6"}
    )

    assert station == validate.Station(
        name="DP3", derated_capacity_mw=150.5, available_capacity_mw=130.0, unit_count=6
    )


def test_validate_station_malformed_numbers_become_zero():
    """Unparseable capacities should be treated as zero rather than raising."""

    station = validate.validate_station({"name": "GT1", "derated": "n/a", "available": None})

    assert station.derated_capacity_mw == 0.0
    assert station.available_capacity_mw == 0.0
    assert station.unit_count == 0


def test_validate_station_logs_but_keeps_over_availability(caplog):
    """Available above derated is suspicious but must not be clamped."""

    with caplog.at_level(logging.WARNING, logger="gridcast.validate"):
        station = validate.validate_station({"name": "X", "derated": 10, "available": 12})

    assert station.available_capacity_mw == 12.0
    assert "above" in caplog.text


def test_records_are_immutable():
    """Validated records should be frozen."""

    station = validate.Station(name="A")

    with pytest.raises(ValidationError):
        station.name = "B"


def test_validate_stations_absent_vs_empty():
    """`None` means no report; an empty list is a report with no stations."""

    assert validate.validate_stations(None) is None
    assert validate.validate_stations([]) == []
    assert validate.validate_stations([{"name": "A"}, "junk"]) == [validate.Station(name="A")]


def test_validate_peak_from_dashboard_payload():
    """The dashboard's nested peaks and date placeholder should be handled."""

    peak = validate.validate_peak(
        {"peakDemandDate": "null", "actualEveningPeak": {"onBars": "200", "suppressed": "212"}}
    )

    assert peak.date is None
    assert peak.evening_on_bars_mw == 200.0
    assert peak.evening_suppressed_mw == 212.0
    assert peak.day_on_bars_mw == 0.0
    assert validate.validate_peak(None) is None


def test_validate_trends_sorts_and_merges_months():
    """Rows should be ordered by month and repeated months merged."""

    rows = [
        {"month": "2025-03-01", "Peak Demand DBIS": "108"},
        {"month": "2025-01-01", "Peak Demand DBIS": 100},
        {"report_month": "2025-03-01", "Peak Demand Essequibo": 14},
        {"Peak Demand DBIS": 1},
    ]

    series = validate.validate_trends(rows)

    assert [p.month_key for p in series] == ["2025-01-01", "2025-03-01"]
    assert series[1].values == {"Peak Demand DBIS": 108.0, "Peak Demand Essequibo": 14.0}


def test_validate_latest_kpis_nested_and_flat():
    """Both the `kpis` envelope and a flat mapping should be accepted."""

    nested = {"kpis": {"Peak Demand Essequibo": {"value": "14.2"}, "Empty": {"value": None}}}
    flat = {"Installed Capacity Essequibo": 20}

    assert validate.validate_latest_kpis(nested) == {"Peak Demand Essequibo": 14.2}
    assert validate.validate_latest_kpis(flat) == {"Installed Capacity Essequibo": 20.0}
    assert validate.validate_latest_kpis(None) == {}


def test_validate_forecast_assigns_month_index_per_grid():
    """Month indices should count from 0 within each grid in month order."""

    rows = [
        {"grid": "DBIS", "projected_month": "2025-08", "projected_peak_mw": "212"},
        {"grid": "DBIS", "projected_month": "2025-07", "projected_peak_mw": "210"},
        {"grid": "Essequibo", "projected_month": "2025-07", "projected_peak_mw": 13.5},
        {"projected_month": "2025-07", "projected_peak_mw": 1},
    ]

    points = validate.validate_forecast(rows)

    dbis = [(p.month_index, p.projected_peak_mw) for p in points if p.grid == "DBIS"]
    esq = [(p.month_index, p.projected_peak_mw) for p in points if p.grid == "Essequibo"]
    assert dbis == [(0, 210.0), (1, 212.0)]
    assert esq == [(0, 13.5)]


def test_validate_capacity_normalises_risk_levels():
    """Service risk labels map onto good/warning/critical; unknown ones are left empty."""

    records = validate.validate_capacity(
        [
            {"grid": "DBIS", "current_capacity_mw": "240", "reserve_margin_pct": "12.5", "risk_level": "SAFE"},
            {"grid": "Essequibo", "current_capacity_mw": 20, "risk_level": "amber"},
            {"current_capacity_mw": 1},
        ]
    )

    assert [(r.grid, r.risk_level) for r in records] == [("DBIS", "good"), ("Essequibo", None)]
    assert records[0].current_capacity_mw == 240.0
    assert validate.validate_capacity({"grid": "DBIS"})[0].grid == "DBIS"


def test_validate_scenarios_reads_horizons_and_metadata():
    """Scenario payloads should expose per-grid horizons, dates and the fallback flag."""

    payload = {
        "conservative": {
            "label": "Conservative",
            "dbis": {
                "current_peak": 200,
                "month_6": {"peak_mw": "210", "reserve_margin_pct": 12.5, "confidence": "high"},
                "month_24": {"peak_mw": 240},
                "growth_rate_mw_per_month": "1.7",
                "safe_threshold_breach_date": "2026-08",
                "load_shedding_unavoidable_date": "N/A",
            },
            "assumptions": ["Oil sector growth continues", None],
        },
        "metadata": {"isFallback": True},
    }

    result = validate.validate_scenarios(payload)

    assert result.aggressive is None
    assert result.is_fallback is True
    dbis = result.conservative.grids["DBIS"]
    assert sorted(dbis.horizons) == [6, 24]
    assert dbis.horizons[6].peak_mw == 210.0
    assert dbis.growth_rate_mw_per_month == 1.7
    assert dbis.safe_threshold_breach_date == "2026-08"
    assert dbis.load_shedding_unavoidable_date is None
    assert result.conservative.assumptions == ["Oil sector growth continues"]
    assert "Essequibo" not in result.conservative.grids


def test_validate_scenarios_accepts_numeric_confidence():
    """A numeric confidence from the scenario service should be kept as text."""

    result = validate.validate_scenarios(
        {"conservative": {"dbis": {"month_6": {"peak_mw": 210, "confidence": 0.8}}}}
    )

    point = result.conservative.grids["DBIS"].horizons[6]
    assert point.peak_mw == 210.0
    assert point.confidence == "0.8"


def test_validate_capacity_accepts_non_string_grid():
    """A numeric grid label should be stored as text rather than failing the row."""

    records = validate.validate_capacity([{"grid": 1, "current_capacity_mw": 20}])

    assert [r.grid for r in records] == ["1"]


def test_validate_scenarios_without_any_scenario_is_unavailable():
    """A payload carrying neither scenario should be treated as absent."""

    assert validate.validate_scenarios({"metadata": {}}) is None
    assert validate.validate_scenarios(None) is None


def test_validate_analysis_tags_each_source():
    """Each analysis section should become its own tagged source kind."""

    sources = validate.validate_analysis(
        {
            "critical_alerts": [{"title": "Low reserve", "description": "d"}],
            "station_concerns": [{"station": "DP3", "issue": "Trip", "priority": "high"}],
            "recommendations": [{"recommendation": "Repair", "urgency": "Immediate"}],
            "summary": "ignored",
        }
    )

    assert [s.kind for s in sources] == ["critical_alert", "station_concern", "recommendation"]
    assert sources[1].priority == "HIGH"
    assert validate.validate_analysis(None) == []


def test_station_replaces_non_finite_capacity():
    """Non-finite capacities should never reach a validated record."""

    station = validate.Station(name="A", derated_capacity_mw="nan")

    assert not math.isnan(station.derated_capacity_mw)
