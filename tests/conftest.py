"""Pytest configuration shared across the test suite."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the project root is on sys.path so ``import gridcast`` works when running
# the test suite without installing the package.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from gridcast.validate import KpiTrendPoint, Station  # noqa: E402


@pytest.fixture
def make_station():
    """Factory for `Station` records with sensible defaults."""

    def _make(name="DP", derated=10.0, available=10.0, units=1):
        return Station(
            name=name,
            derated_capacity_mw=derated,
            available_capacity_mw=available,
            unit_count=units,
        )

    return _make


@pytest.fixture
def make_trends():
    """Build a monthly KPI series for one metric from a list of values."""

    def _make(metric, values, start_year=2025):
        return [
            KpiTrendPoint(month_key=f"{start_year}-{i + 1:02d}-01", values={metric: v})
            for i, v in enumerate(values)
        ]

    return _make


@pytest.fixture
def dashboard_payload():
    """A power-utility payload shaped like the dashboard backend's `gpl` block."""

    return {
        "powerStations": [
            {"station": "SEI", "derated": "100", "available": "100", "units": 4},
            {"station": "DP3", "derated": "150", "available": "130", "units": 6},
        ],
        "solarStations": None,
        "totalRenewableCapacity": "0",
        "actualEveningPeak": {"onBars": "200", "suppressed": "212"},
        "actualDayPeak": {"onBars": 185, "suppressed": 185},
        "peakDemandDate": "2025-06-14",
        "aiAnalysis": {
            "critical_alerts": [
                {"title": "Reserve below 15%", "description": "Evening peak close to capacity"}
            ],
            "station_concerns": [
                {"station": "DP3", "issue": "Unit 4 tripped", "impact": "20 MW lost", "priority": "HIGH"}
            ],
            "recommendations": [
                {"recommendation": "Expedite DP3 unit 4 repair", "urgency": "Immediate", "category": "maintenance"}
            ],
        },
    }
