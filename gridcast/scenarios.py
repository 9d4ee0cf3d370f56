"""
gridcast/scenarios.py

Side-by-side conservative/aggressive demand scenarios with per-cell reserve
classification.

Responsibilities
----------------
- Read both scenarios from the multivariate forecasting service when it is
  available. A horizon missing from an otherwise present scenario stays
  empty; gaps are never filled.
- When the service is entirely unavailable, build the conservative
  scenario from the local projections and the aggressive scenario as a
  proxy whose growth above the current value is scaled by the aggressive
  multiplier.
- Classify every cell's reserve margin: >= 20 good, >= 15 warning, else
  critical.
- Pass through the service's safe-threshold breach and load-shedding dates.
  With `estimate_breach_dates` enabled and an `as_of` date given, dates the
  service did not supply are solved for under the linear model.

Notes
-----
- The engine never reads the clock; `as_of` anchors estimated dates.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Literal

import pandas as pd
from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, Field

from .config import EngineConfig
from .forecast import ProjectionSeries
from .numeric import pct, round_half_up
from .validate import (
    GridScenario,
    RiskLevel,
    ScenarioForecast,
    ScenarioName,
    ScenarioPayload,
)

logger = logging.getLogger(__name__)

SCENARIOS: tuple[ScenarioName, ...] = ("conservative", "aggressive")

CellSource = Literal["service", "projection", "proxy"]
DateSource = Literal["service", "estimated"]


class ScenarioCell(BaseModel):
    """One (scenario, grid, horizon) entry of the comparison table.

    `peak_mw`, `reserve_margin_pct` and `status` are None when the scenario
    has no value for the horizon or the reserve cannot be computed.
    """

    model_config = ConfigDict(frozen=True)

    scenario: ScenarioName
    grid: str
    horizon: int
    peak_mw: float | None = None
    reserve_margin_pct: float | None = None
    status: RiskLevel | None = None
    confidence: str | None = None
    source: CellSource | None = None


class BreachDates(BaseModel):
    """Threshold-breach timing for one scenario and grid ("YYYY-MM" or None)."""

    model_config = ConfigDict(frozen=True)

    scenario: ScenarioName
    grid: str
    safe_threshold_breach_date: str | None = None
    safe_threshold_source: DateSource | None = None
    load_shedding_unavoidable_date: str | None = None
    load_shedding_source: DateSource | None = None


class ScenarioNarrative(BaseModel):
    """Assumptions and risk factors carried with a scenario."""

    model_config = ConfigDict(frozen=True)

    scenario: ScenarioName
    label: str = ""
    assumptions: list[str] = Field(default_factory=list)
    risk_factors_upside: list[str] = Field(default_factory=list)
    moderating_factors: list[str] = Field(default_factory=list)


class ScenarioComparison(BaseModel):
    """The full comparison table plus breach dates and narratives."""

    model_config = ConfigDict(frozen=True)

    cells: list[ScenarioCell]
    breaches: list[BreachDates]
    narratives: list[ScenarioNarrative]
    service_available: bool
    service_is_fallback: bool = False

    def cell(self, scenario: str, grid: str, horizon: int) -> ScenarioCell | None:
        for c in self.cells:
            if c.scenario == scenario and c.grid == grid and c.horizon == horizon:
                return c
        return None

    def to_frame(self) -> pd.DataFrame:
        """Render the table with one row per (grid, horizon) and one column
        per scenario field, e.g. `conservative_peak_mw`."""
        frame = pd.DataFrame([c.model_dump() for c in self.cells])
        if frame.empty:
            return frame
        wide = frame.pivot(
            index=["grid", "horizon"],
            columns="scenario",
            values=["peak_mw", "reserve_margin_pct", "status"],
        )
        wide.columns = [f"{scenario}_{field}" for field, scenario in wide.columns]
        return wide.reset_index()


def classify_scenario_reserve(
    reserve_margin_pct: float | None, config: EngineConfig | None = None
) -> RiskLevel | None:
    """>= 20 good, >= 15 warning, otherwise critical; None stays None."""
    config = config or EngineConfig()
    if reserve_margin_pct is None:
        return None
    if reserve_margin_pct >= config.scenario_good_pct:
        return "good"
    if reserve_margin_pct >= config.scenario_warning_pct:
        return "warning"
    return "critical"


def estimate_breach_date(
    current: float,
    rate: float,
    capacity: float | None,
    threshold_pct: float,
    as_of: date,
    horizon_months: int = 24,
) -> str | None:
    """Month in which a linear demand path crosses a reserve threshold.

    Solves `(capacity - (current + rate * t)) / capacity * 100 = threshold_pct`
    for `t` and returns `as_of` plus `ceil(t)` months as "YYYY-MM". Returns
    None when the crossing is not strictly in the future within
    `horizon_months`, or when capacity or rate is not positive.
    """
    if capacity is None or capacity <= 0 or rate <= 0:
        return None
    target_peak = capacity * (1 - threshold_pct / 100)
    months = (target_peak - current) / rate
    if not 0 < months <= horizon_months:
        return None
    return (as_of + relativedelta(months=math.ceil(months))).strftime("%Y-%m")


def _cell(
    scenario: ScenarioName,
    grid: str,
    horizon: int,
    peak: float | None,
    capacity: float | None,
    config: EngineConfig,
    source: CellSource | None,
    service_reserve: float | None = None,
    confidence: str | None = None,
) -> ScenarioCell:
    if peak is None:
        return ScenarioCell(scenario=scenario, grid=grid, horizon=horizon)
    reserve = pct(capacity - peak, capacity) if capacity is not None else None
    if reserve is None:
        # No usable capacity: fall back to the service's own figure, if any.
        reserve = service_reserve
    reserve = None if reserve is None else round_half_up(reserve)
    return ScenarioCell(
        scenario=scenario,
        grid=grid,
        horizon=horizon,
        peak_mw=peak,
        reserve_margin_pct=reserve,
        status=classify_scenario_reserve(reserve, config),
        confidence=confidence,
        source=source,
    )


def _breach(
    scenario: ScenarioName,
    grid: str,
    supplied: GridScenario | None,
    current: float | None,
    rate: float | None,
    capacity: float | None,
    config: EngineConfig,
    as_of: date | None,
) -> BreachDates:
    safe = supplied.safe_threshold_breach_date if supplied else None
    shedding = supplied.load_shedding_unavoidable_date if supplied else None
    safe_source: DateSource | None = "service" if safe else None
    shedding_source: DateSource | None = "service" if shedding else None

    can_estimate = (
        config.estimate_breach_dates and as_of is not None and current is not None and rate is not None
    )
    if can_estimate and safe is None:
        safe = estimate_breach_date(
            current, rate, capacity, config.safe_threshold_pct, as_of, config.breach_horizon_months
        )
        safe_source = "estimated" if safe else None
    if can_estimate and shedding is None:
        shedding = estimate_breach_date(
            current, rate, capacity, config.load_shedding_threshold_pct, as_of, config.breach_horizon_months
        )
        shedding_source = "estimated" if shedding else None

    return BreachDates(
        scenario=scenario,
        grid=grid,
        safe_threshold_breach_date=safe,
        safe_threshold_source=safe_source,
        load_shedding_unavoidable_date=shedding,
        load_shedding_source=shedding_source,
    )


def _from_service(
    forecast: ScenarioForecast | None,
    scenario: ScenarioName,
    grids: list[str],
    capacities: dict[str, float | None],
    baselines: dict[str, ProjectionSeries],
    config: EngineConfig,
    as_of: date | None,
) -> tuple[list[ScenarioCell], list[BreachDates]]:
    cells, breaches = [], []
    for grid in grids:
        supplied = forecast.grids.get(grid) if forecast else None
        capacity = capacities.get(grid)
        for h in config.scenario_horizons:
            point = supplied.horizons.get(h) if supplied else None
            if point is None or point.peak_mw is None:
                cells.append(ScenarioCell(scenario=scenario, grid=grid, horizon=h))
                continue
            cells.append(
                _cell(
                    scenario, grid, h, point.peak_mw, capacity, config, "service",
                    service_reserve=point.reserve_margin_pct,
                    confidence=point.confidence,
                )
            )
        baseline = baselines.get(grid)
        current = supplied.current_peak_mw if supplied and supplied.current_peak_mw else None
        rate = supplied.growth_rate_mw_per_month if supplied else None
        if current is None and baseline is not None:
            current = baseline.current_mw
        if rate is None and baseline is not None:
            multiplier = config.aggressive_multiplier if scenario == "aggressive" else 1.0
            rate = baseline.growth_rate_mw_per_month * multiplier
        breaches.append(_breach(scenario, grid, supplied, current, rate, capacity, config, as_of))
    return cells, breaches


def _from_projection(
    grids: list[str],
    capacities: dict[str, float | None],
    baselines: dict[str, ProjectionSeries],
    config: EngineConfig,
    as_of: date | None,
) -> tuple[list[ScenarioCell], list[BreachDates]]:
    cells, breaches = [], []
    m = config.aggressive_multiplier
    for grid in grids:
        baseline = baselines.get(grid)
        capacity = capacities.get(grid)
        for h in config.scenario_horizons:
            conservative = baseline.at(h) if baseline else None
            aggressive = None
            if conservative is not None:
                aggressive = round_half_up(baseline.current_mw + (conservative - baseline.current_mw) * m)
            cells.append(_cell("conservative", grid, h, conservative, capacity, config, "projection"))
            cells.append(_cell("aggressive", grid, h, aggressive, capacity, config, "proxy"))
        current = baseline.current_mw if baseline else None
        rate = baseline.growth_rate_mw_per_month if baseline else None
        breaches.append(_breach("conservative", grid, None, current, rate, capacity, config, as_of))
        breaches.append(
            _breach("aggressive", grid, None, current, None if rate is None else rate * m, capacity, config, as_of)
        )
    return cells, breaches


def compare_scenarios(
    payload: ScenarioPayload | None,
    grids: list[str],
    capacities: dict[str, float | None],
    baselines: dict[str, ProjectionSeries],
    config: EngineConfig | None = None,
    as_of: date | None = None,
) -> ScenarioComparison:
    """Build the conservative/aggressive comparison table.

    Args:
        payload: Multivariate forecast, or None when the service is
            unavailable.
        grids: Grids to tabulate, in display order.
        capacities: Grid -> capacity (MW) used as the reserve denominator;
            None or <= 0 leaves the reserve to the service's own figure.
        baselines: Grid -> local projection at the scenario horizons; used
            for the unavailable-service fallback and for breach estimation.
        config: Thresholds, horizons, multiplier and flags.
        as_of: Anchor month for estimated breach dates.

    Returns:
        ScenarioComparison: Cells ordered by scenario, grid and horizon.
    """
    config = config or EngineConfig()
    if payload is None:
        logger.info("Scenario service unavailable; using projection and %.1fx proxy", config.aggressive_multiplier)
        cells, breaches = _from_projection(grids, capacities, baselines, config, as_of)
        cells.sort(key=lambda c: SCENARIOS.index(c.scenario))
        narratives = [ScenarioNarrative(scenario=s) for s in SCENARIOS]
        return ScenarioComparison(
            cells=cells, breaches=breaches, narratives=narratives, service_available=False
        )

    cells, breaches, narratives = [], [], []
    for scenario in SCENARIOS:
        forecast = getattr(payload, scenario)
        if forecast is None:
            logger.warning("Scenario service returned no %s scenario", scenario)
        c, b = _from_service(forecast, scenario, grids, capacities, baselines, config, as_of)
        cells.extend(c)
        breaches.extend(b)
        narratives.append(
            ScenarioNarrative(
                scenario=scenario,
                label=forecast.label if forecast else "",
                assumptions=forecast.assumptions if forecast else [],
                risk_factors_upside=forecast.risk_factors_upside if forecast else [],
                moderating_factors=forecast.moderating_factors if forecast else [],
            )
        )
    return ScenarioComparison(
        cells=cells,
        breaches=breaches,
        narratives=narratives,
        service_available=True,
        service_is_fallback=payload.is_fallback,
    )
