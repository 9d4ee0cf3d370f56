"""
gridcast/summary.py

Top-level entry point for the grid capacity and demand-forecasting engine.

Responsibilities
----------------
- Define `EngineInputs`, everything one dashboard refresh hands to the
  engine, already deserialised by the ingestion layer.
- `build_dashboard`: run the station, capacity, reserve, alert, growth,
  projection and scenario components in dependency order and return one
  `DashboardSummary`.

Conventions
-----------
- The engine is pure: no I/O, no clock, no shared state. Identical inputs
  give identical output.
- Absent optional inputs select documented fallbacks. An absent station
  list means "no data" and `build_dashboard` returns None.
"""

from __future__ import annotations

import logging
from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from .alerts import AlertSummary, consolidate_alerts
from .capacity import (
    CapacityLedger,
    PlanningReserve,
    ReserveState,
    capacity_ledger,
    planning_reserve,
    reserve_state,
    resolve_capacity_records,
)
from .config import (
    DBIS,
    ESSEQUIBO,
    INSTALLED_CAPACITY_ESSEQUIBO,
    PEAK_DEMAND_DBIS,
    PEAK_DEMAND_ESSEQUIBO,
    EngineConfig,
)
from .forecast import ProjectionSeries, current_value, growth_rate, project_demand
from .scenarios import ScenarioComparison, compare_scenarios
from .stations import FleetSummary, aggregate_stations
from .validate import (
    AlertSource,
    AuthoritativeForecastPoint,
    CapacityRecord,
    KpiTrendPoint,
    PeakDemandSnapshot,
    ScenarioPayload,
    SolarSite,
    Station,
)

logger = logging.getLogger(__name__)

GRIDS = [DBIS, ESSEQUIBO]

# Grid -> KPI metric holding its peak demand history.
PEAK_METRICS = {DBIS: PEAK_DEMAND_DBIS, ESSEQUIBO: PEAK_DEMAND_ESSEQUIBO}


class EngineInputs(BaseModel):
    """Inputs for one engine invocation.

    Attributes:
        stations: Station list; None means no availability report.
        solar_sites: Per-site solar capacity.
        renewable_capacity_mw: Pre-summed renewable capacity, used when the
            per-site list is absent.
        peak_demand: Latest peak-demand snapshot.
        kpi_trends: Chronological monthly KPI series.
        latest_kpis: Latest KPI snapshot (metric -> value).
        authoritative_forecast: Server-computed forecast points for all grids.
        capacity_records: Per-grid capacity/risk rows from the forecasting
            service.
        scenarios: Multivariate scenario forecast; None if unavailable.
        alert_sources: Tagged sources from the AI analysis.
        forced_outage_rate_pct: Overrides the configured FOR.
        expected_peak_mw: Overrides the configured planning peak.
        as_of: Anchor date for estimated breach dates.
    """

    model_config = ConfigDict(frozen=True)

    stations: list[Station] | None = None
    solar_sites: list[SolarSite] | None = None
    renewable_capacity_mw: float | None = None
    peak_demand: PeakDemandSnapshot | None = None
    kpi_trends: list[KpiTrendPoint] = Field(default_factory=list)
    latest_kpis: dict[str, float] = Field(default_factory=dict)
    authoritative_forecast: list[AuthoritativeForecastPoint] = Field(default_factory=list)
    capacity_records: list[CapacityRecord] = Field(default_factory=list)
    scenarios: ScenarioPayload | None = None
    alert_sources: list[AlertSource] = Field(default_factory=list)
    forced_outage_rate_pct: float | None = None
    expected_peak_mw: float | None = None
    as_of: date | None = None


class DashboardSummary(BaseModel):
    """Everything the presentation layer renders for the power-utility view."""

    model_config = ConfigDict(frozen=True)

    fleet: FleetSummary
    ledger: CapacityLedger
    reserve: ReserveState
    planning: PlanningReserve
    alerts: AlertSummary
    capacity_records: list[CapacityRecord]
    projections: dict[str, ProjectionSeries]
    scenarios: ScenarioComparison | None = None


def grid_capacities(
    ledger: CapacityLedger,
    records: list[CapacityRecord],
    latest_kpis: dict[str, float],
    trends: list[KpiTrendPoint],
) -> dict[str, float | None]:
    """Capacity per grid for scenario reserve margins.

    The forecasting service's capacity record wins. Without one, DBIS uses
    the ledger's system capacity and Essequibo its latest installed-capacity
    KPI; otherwise the capacity is unknown (None).
    """
    by_grid = {r.grid: r.current_capacity_mw for r in records if r.current_capacity_mw > 0}
    esq = current_value(trends, INSTALLED_CAPACITY_ESSEQUIBO, latest_kpis) or None
    return {
        DBIS: by_grid.get(DBIS, ledger.total_system_capacity_mw or None),
        ESSEQUIBO: by_grid.get(ESSEQUIBO, esq),
    }


def build_dashboard(
    inputs: EngineInputs, config: EngineConfig | None = None
) -> DashboardSummary | None:
    """Compute the fleet, reserve, alert, projection and scenario summary.

    Args:
        inputs: Already-validated engine inputs.
        config: Thresholds, defaults and feature flags.

    Returns:
        DashboardSummary | None: None when no station list was supplied.
    """
    config = config or EngineConfig()
    if inputs.stations is None:
        logger.info("No station data; nothing to summarise")
        return None

    fleet = aggregate_stations(inputs.stations, config)
    ledger = capacity_ledger(fleet, inputs.solar_sites, inputs.renewable_capacity_mw)
    reserve = reserve_state(ledger.total_system_capacity_mw, inputs.peak_demand, config)
    planning = planning_reserve(
        fleet, inputs.forced_outage_rate_pct, inputs.expected_peak_mw, config
    )
    alerts = consolidate_alerts(inputs.alert_sources)
    records = resolve_capacity_records(inputs.capacity_records, config)

    currents = {
        DBIS: reserve.peak_demand_mw,
        ESSEQUIBO: current_value(
            inputs.kpi_trends,
            PEAK_DEMAND_ESSEQUIBO,
            inputs.latest_kpis,
            config.default_essequibo_peak_mw,
        ),
    }
    rates = {grid: growth_rate(inputs.kpi_trends, PEAK_METRICS[grid], config) for grid in GRIDS}

    projections = {
        grid: project_demand(
            grid, inputs.authoritative_forecast, currents[grid], rates[grid], config.projection_horizons
        )
        for grid in GRIDS
    }

    scenarios = None
    if config.with_multivariate_forecast:
        baselines = {
            grid: project_demand(
                grid, inputs.authoritative_forecast, currents[grid], rates[grid], config.scenario_horizons
            )
            for grid in GRIDS
        }
        scenarios = compare_scenarios(
            inputs.scenarios,
            GRIDS,
            grid_capacities(ledger, records, inputs.latest_kpis, inputs.kpi_trends),
            baselines,
            config,
            inputs.as_of,
        )

    return DashboardSummary(
        fleet=fleet,
        ledger=ledger,
        reserve=reserve,
        planning=planning,
        alerts=alerts,
        capacity_records=records,
        projections=projections,
        scenarios=scenarios,
    )
