"""
gridcast/config.py

Engine configuration: thresholds, default growth rates, horizons and
feature flags.

Responsibilities
----------------
- Define `EngineConfig`, a frozen pydantic model that is passed explicitly
  into every engine entry point.
- Keep the engine free of environment lookups; anything environment-driven
  (API base URL, timeouts) belongs to the ingestion client and the CLI.

Notes
-----
- The degraded/critical boundary for stations is 0.7 by default. Some
  dashboard views historically used 0.8; pass `degraded_threshold=0.8` to
  reproduce them.
- Breach-date estimation is off by default: dates are shown only when the
  scenario service supplies them.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Grid names as used by the forecasting service.
DBIS = "DBIS"
ESSEQUIBO = "Essequibo"

# KPI metric names as published by the monthly KPI upload.
PEAK_DEMAND_DBIS = "Peak Demand DBIS"
PEAK_DEMAND_ESSEQUIBO = "Peak Demand Essequibo"
INSTALLED_CAPACITY_ESSEQUIBO = "Installed Capacity Essequibo"


class EngineConfig(BaseModel):
    """Immutable settings for one engine invocation.

    Attributes:
        critical_threshold: available/derated ratio below which a station is
            critical.
        degraded_threshold: available/derated ratio below which a station is
            degraded.
        health_critical_pct: System reserve margin (%) below which the health
            state is critical.
        health_warning_pct: System reserve margin (%) below which the health
            state is warning.
        scenario_good_pct: Scenario reserve margin (%) at or above which a
            cell is good.
        scenario_warning_pct: Scenario reserve margin (%) at or above which a
            cell is warning (below it, critical).
        capacity_critical_pct: Reserve margin (%) below which a capacity
            record without a risk level is critical.
        capacity_warning_pct: Reserve margin (%) below which a capacity
            record without a risk level is warning.
        default_growth_rates: MW/month used when a metric's trend is too
            short or not increasing.
        fallback_growth_rate: MW/month for metrics missing from
            `default_growth_rates`.
        projection_horizons: Months ahead for the point projections.
        scenario_horizons: Months ahead for the scenario table.
        aggressive_multiplier: Growth multiplier for the aggressive proxy.
        forced_outage_rate_pct: Planning discount on available capacity.
        expected_peak_mw: Planning peak used for the reference reserve.
        default_essequibo_peak_mw: Current Essequibo demand when no KPI
            value exists.
        safe_threshold_pct: Reserve margin (%) marking the safe threshold.
        load_shedding_threshold_pct: Reserve margin (%) at which load
            shedding becomes unavoidable.
        breach_horizon_months: Furthest month the breach solver reports.
        with_multivariate_forecast: Build the scenario comparison table.
        estimate_breach_dates: Solve for breach dates the scenario service
            did not supply.
    """

    model_config = ConfigDict(frozen=True)

    critical_threshold: float = 0.5
    degraded_threshold: float = 0.7

    health_critical_pct: float = 10.0
    health_warning_pct: float = 15.0

    scenario_good_pct: float = 20.0
    scenario_warning_pct: float = 15.0

    capacity_critical_pct: float = 5.0
    capacity_warning_pct: float = 15.0

    default_growth_rates: dict[str, float] = Field(
        default_factory=lambda: {PEAK_DEMAND_DBIS: 2.0, PEAK_DEMAND_ESSEQUIBO: 0.16}
    )
    fallback_growth_rate: float = Field(default=1.0, gt=0)

    projection_horizons: tuple[int, ...] = (6, 12, 24)
    scenario_horizons: tuple[int, ...] = (6, 12, 18, 24)
    aggressive_multiplier: float = 1.5

    forced_outage_rate_pct: float = 7.5
    expected_peak_mw: float = 200.0
    default_essequibo_peak_mw: float = 13.0

    safe_threshold_pct: float = 15.0
    load_shedding_threshold_pct: float = 5.0
    breach_horizon_months: int = 24

    with_multivariate_forecast: bool = True
    estimate_breach_dates: bool = False

    @field_validator("default_growth_rates")
    @classmethod
    def rates_positive(cls, v: dict[str, float]) -> dict[str, float]:
        """Default growth rates back the floor policy, so they must be > 0."""
        for metric, rate in v.items():
            if rate <= 0:
                raise ValueError(f"default growth rate for {metric!r} must be > 0")
        return v

    @field_validator("projection_horizons", "scenario_horizons")
    @classmethod
    def horizons_positive(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if any(h < 1 for h in v):
            raise ValueError("horizons are counted in whole months >= 1")
        return v

    @model_validator(mode="after")
    def thresholds_ordered(self) -> EngineConfig:
        if not self.critical_threshold <= self.degraded_threshold:
            raise ValueError("critical_threshold must not exceed degraded_threshold")
        if not self.health_critical_pct <= self.health_warning_pct:
            raise ValueError("health_critical_pct must not exceed health_warning_pct")
        if not self.scenario_warning_pct <= self.scenario_good_pct:
            raise ValueError("scenario_warning_pct must not exceed scenario_good_pct")
        return self

    def default_rate(self, metric: str) -> float:
        """Return the configured default monthly growth rate for `metric`."""
        return self.default_growth_rates.get(metric, self.fallback_growth_rate)
