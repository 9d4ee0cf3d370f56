"""
gridcast/capacity.py

System capacity, reserve margin and health state.

Responsibilities
----------------
- `capacity_ledger`: add renewable (solar) capacity to the available fossil
  capacity to get the total system capacity.
- `reserve_state`: derive system load, reserve margin and the health state
  from total capacity and the evening on-bars peak.
- `planning_reserve`: the reference-only reserve (capacity discounted by the
  forced outage rate against an expected peak).
- `resolve_capacity_records`: fill in risk levels the forecasting service
  left out.

Conventions
-----------
- The evening on-bars peak is the load used for the reserve; the day peak
  and the suppressed figures are informational.
- The planning reserve never feeds the health state or alerting.
- Ratios with a zero or negative capacity denominator are reported as None.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from .config import EngineConfig
from .numeric import pct, round_half_up
from .stations import FleetSummary
from .validate import CapacityRecord, PeakDemandSnapshot, RiskLevel, SolarSite

logger = logging.getLogger(__name__)


class CapacityLedger(BaseModel):
    """Fossil plus renewable capacity (MW), rounded after summation."""

    model_config = ConfigDict(frozen=True)

    total_available_fossil_mw: float
    total_solar_mw: float
    total_system_capacity_mw: float


class ReserveState(BaseModel):
    """The authoritative operating reserve and health state.

    `system_load_pct`, `reserve_margin_pct` and `reserve_margin_mw` are None
    when there is no system capacity to compare against.
    """

    model_config = ConfigDict(frozen=True)

    capacity_mw: float
    peak_demand_mw: float
    peak_demand_date: str | None = None
    day_peak_mw: float = 0.0
    evening_unserved_mw: float = 0.0
    day_unserved_mw: float = 0.0
    system_load_pct: float | None
    reserve_margin_mw: float | None
    reserve_margin_pct: float | None
    health_state: RiskLevel


class PlanningReserve(BaseModel):
    """Reference planning figures; not used for alerting."""

    model_config = ConfigDict(frozen=True)

    forced_outage_rate_pct: float
    expected_capacity_mw: float
    expected_peak_mw: float
    planning_reserve_mw: float


def capacity_ledger(
    fleet: FleetSummary,
    solar_sites: list[SolarSite] | None = None,
    renewable_capacity_mw: float | None = None,
) -> CapacityLedger:
    """Merge fleet availability with solar capacity.

    Args:
        fleet: Output of `stations.aggregate_stations`.
        solar_sites: Per-site solar capacity. Takes precedence when present
            and non-empty.
        renewable_capacity_mw: Pre-summed renewable capacity, used when the
            per-site list is absent.

    Returns:
        CapacityLedger: Totals rounded to one decimal.
    """
    if solar_sites:
        total_solar = sum(s.capacity_mwp for s in solar_sites)
    else:
        total_solar = renewable_capacity_mw or 0.0

    # Re-sum the unrounded station values so rounding happens once.
    fossil = sum(h.station.available_capacity_mw for h in fleet.stations)
    return CapacityLedger(
        total_available_fossil_mw=round_half_up(fossil),
        total_solar_mw=round_half_up(total_solar),
        total_system_capacity_mw=round_half_up(fossil + total_solar),
    )


def classify_health(reserve_margin_pct: float | None, config: EngineConfig | None = None) -> RiskLevel:
    """Classify the system reserve margin: <10 critical, <15 warning, else good.

    An undefined margin (no capacity) is critical.
    """
    config = config or EngineConfig()
    if reserve_margin_pct is None or reserve_margin_pct < config.health_critical_pct:
        return "critical"
    if reserve_margin_pct < config.health_warning_pct:
        return "warning"
    return "good"


def reserve_state(
    capacity_mw: float,
    peak: PeakDemandSnapshot | None,
    config: EngineConfig | None = None,
) -> ReserveState:
    """Compute load, reserve margin and health from capacity and peak demand.

    The reserve margin percentage is computed from the rounded system
    capacity, so `reserve_margin_pct == round((capacity - peak) / capacity * 100, 1)`
    holds for the reported capacity. The health state is classified from the
    unrounded margin; a margin of 9.996% reads 10.0 but is still critical.
    """
    peak = peak or PeakDemandSnapshot()
    load = peak.evening_on_bars_mw

    load_pct = pct(load, capacity_mw)
    margin_pct = pct(capacity_mw - load, capacity_mw)
    if margin_pct is None:
        logger.warning("No system capacity; reserve margin is undefined")

    return ReserveState(
        capacity_mw=capacity_mw,
        peak_demand_mw=load,
        peak_demand_date=peak.date,
        day_peak_mw=peak.day_on_bars_mw,
        evening_unserved_mw=round_half_up(max(peak.evening_suppressed_mw - load, 0.0)),
        day_unserved_mw=round_half_up(max(peak.day_suppressed_mw - peak.day_on_bars_mw, 0.0)),
        system_load_pct=None if load_pct is None else round_half_up(load_pct),
        reserve_margin_mw=None if margin_pct is None else round_half_up(capacity_mw - load),
        reserve_margin_pct=None if margin_pct is None else round_half_up(margin_pct),
        health_state=classify_health(margin_pct, config),
    )


def planning_reserve(
    fleet: FleetSummary,
    forced_outage_rate_pct: float | None = None,
    expected_peak_mw: float | None = None,
    config: EngineConfig | None = None,
) -> PlanningReserve:
    """Discount available fossil capacity by the FOR and compare with the expected peak."""
    config = config or EngineConfig()
    rate = config.forced_outage_rate_pct if forced_outage_rate_pct is None else forced_outage_rate_pct
    expected_peak = config.expected_peak_mw if expected_peak_mw is None else expected_peak_mw

    available = sum(h.station.available_capacity_mw for h in fleet.stations)
    expected_capacity = available * (1 - rate / 100)
    return PlanningReserve(
        forced_outage_rate_pct=rate,
        expected_capacity_mw=round_half_up(expected_capacity),
        expected_peak_mw=expected_peak,
        planning_reserve_mw=round_half_up(expected_capacity - expected_peak),
    )


def classify_capacity_risk(reserve_margin_pct: float | None, config: EngineConfig | None = None) -> RiskLevel:
    """Risk level for a capacity record: <5 critical, <15 warning, else good."""
    config = config or EngineConfig()
    if reserve_margin_pct is None or reserve_margin_pct < config.capacity_critical_pct:
        return "critical"
    if reserve_margin_pct < config.capacity_warning_pct:
        return "warning"
    return "good"


def resolve_capacity_records(
    records: list[CapacityRecord], config: EngineConfig | None = None
) -> list[CapacityRecord]:
    """Return the records with every `risk_level` filled in.

    Levels supplied by the service are kept; missing ones are derived from
    the record's reserve margin.
    """
    out = []
    for record in records:
        if record.risk_level is None:
            level = classify_capacity_risk(record.reserve_margin_pct, config)
            logger.debug("Derived risk level %s for grid %s", level, record.grid)
            record = record.model_copy(update={"risk_level": level})
        out.append(record)
    return out
