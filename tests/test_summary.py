"""End-to-end tests for `build_dashboard`."""

from __future__ import annotations

from gridcast import summary
from gridcast.capacity import CapacityLedger
from gridcast.config import DBIS, ESSEQUIBO, INSTALLED_CAPACITY_ESSEQUIBO, PEAK_DEMAND_DBIS, EngineConfig
from gridcast.validate import (
    AuthoritativeForecastPoint,
    CapacityRecord,
    CriticalAlertSource,
    PeakDemandSnapshot,
)


def _inputs(make_station, make_trends, **overrides):
    fields = dict(
        stations=[make_station("SEI", 100, 100, units=4), make_station("DP3", 150, 130, units=6)],
        peak_demand=PeakDemandSnapshot(evening_on_bars_mw=200, date="2025-06-14"),
        kpi_trends=make_trends(PEAK_DEMAND_DBIS, [100, 102, 108]),
    )
    fields.update(overrides)
    return summary.EngineInputs(**fields)


def test_no_station_data_returns_none():
    """Absent station data means there is nothing to summarise."""

    assert summary.build_dashboard(summary.EngineInputs()) is None


def test_build_dashboard_reference_case(make_station, make_trends):
    """230 MW of capacity against a 200 MW peak flows through every component."""

    result = summary.build_dashboard(_inputs(make_station, make_trends))

    assert result.fleet.total_available_mw == 230.0
    assert result.fleet.total_units == 10
    assert result.ledger.total_system_capacity_mw == 230.0
    assert result.reserve.reserve_margin_pct == 13.0
    assert result.reserve.health_state == "warning"
    assert result.planning.expected_capacity_mw == 212.8

    dbis = result.projections[DBIS]
    assert dbis.current_mw == 200
    assert dbis.using_fallback is True
    assert dbis.at(6) == 216.0

    esq = result.projections[ESSEQUIBO]
    assert esq.current_mw == 13.0
    assert esq.growth_rate_mw_per_month == 0.16
    assert esq.at(6) == 14.0


def test_scenarios_fall_back_to_projections(make_station, make_trends):
    """Without the multivariate service the table uses the local projection."""

    result = summary.build_dashboard(_inputs(make_station, make_trends))

    assert result.scenarios.service_available is False
    cell = result.scenarios.cell("conservative", DBIS, 6)
    # 216 MW against the 230 MW system capacity.
    assert cell.peak_mw == 216.0
    assert cell.reserve_margin_pct == 6.1
    assert cell.status == "critical"


def test_multivariate_can_be_disabled(make_station, make_trends):
    """Turning the scenario table off leaves it empty."""

    config = EngineConfig(with_multivariate_forecast=False)

    result = summary.build_dashboard(_inputs(make_station, make_trends), config)

    assert result.scenarios is None
    assert DBIS in result.projections


def test_authoritative_forecast_and_alerts_flow_through(make_station, make_trends):
    """Server points and analysis alerts should reach the summary."""

    inputs = _inputs(
        make_station,
        make_trends,
        authoritative_forecast=[AuthoritativeForecastPoint(grid=DBIS, month_index=5, projected_peak_mw=209)],
        alert_sources=[CriticalAlertSource(title="Low reserve")],
        capacity_records=[CapacityRecord(grid=DBIS, current_capacity_mw=240, reserve_margin_pct=12)],
    )

    result = summary.build_dashboard(inputs)

    assert result.projections[DBIS].using_fallback is False
    assert result.projections[DBIS].at(6) == 209
    assert result.projections[ESSEQUIBO].using_fallback is True
    assert result.alerts.urgent_count == 1
    assert result.capacity_records[0].risk_level == "warning"
    # The capacity record, not the ledger, is the scenario denominator.
    assert result.scenarios.cell("conservative", DBIS, 6).reserve_margin_pct == 12.9


def test_build_dashboard_is_deterministic(make_station, make_trends):
    """Identical inputs give byte-identical serialised output."""

    inputs = _inputs(make_station, make_trends)

    first = summary.build_dashboard(inputs).model_dump_json()
    second = summary.build_dashboard(inputs).model_dump_json()

    assert first == second


def test_grid_capacities_resolution(make_trends):
    """Capacity records win; otherwise the ledger and the installed-capacity KPI."""

    ledger = CapacityLedger(total_available_fossil_mw=0, total_solar_mw=0, total_system_capacity_mw=0)
    trends = make_trends(INSTALLED_CAPACITY_ESSEQUIBO, [18, 20])

    caps = summary.grid_capacities(ledger, [], {}, trends)
    assert caps == {DBIS: None, ESSEQUIBO: 20.0}

    records = [CapacityRecord(grid=ESSEQUIBO, current_capacity_mw=22)]
    full = CapacityLedger(total_available_fossil_mw=230, total_solar_mw=0, total_system_capacity_mw=230)
    assert summary.grid_capacities(full, records, {}, []) == {DBIS: 230, ESSEQUIBO: 22}
