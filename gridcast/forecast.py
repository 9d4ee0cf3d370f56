"""
gridcast/forecast.py

Monthly growth rates from KPI history and point projections at fixed
horizons.

Responsibilities
----------------
- `growth_rate`: estimate MW/month growth for a metric from the KPI trend
  series, with a configured default whenever the history is too short or
  does not show growth.
- `current_value`: resolve the latest known value of a metric.
- `project_demand`: projections at each horizon, taking the authoritative
  (server-computed) forecast where it has a value and extrapolating linearly
  otherwise.

Notes
-----
- The estimated rate is always > 0. Demand decline is not modelled: a flat
  or falling history returns the default rate. This is a known limitation
  and must not be changed without product sign-off.
- `using_fallback` is True only when the authoritative series for the grid
  was empty; a series with gaps still reports False even though some
  horizons were extrapolated.
- Linear points are rounded to one decimal (half up) like every other
  reported MW figure. Authoritative points are passed through as the
  service computed them.
"""

from __future__ import annotations

import logging
from typing import Literal

import pandas as pd
from pydantic import BaseModel, ConfigDict

from .config import EngineConfig
from .numeric import round_half_up
from .validate import AuthoritativeForecastPoint, KpiTrendPoint

logger = logging.getLogger(__name__)

Provenance = Literal["current", "authoritative", "linear"]


class ProjectionPoint(BaseModel):
    """Projected peak at `horizon` months ahead (0 = current)."""

    model_config = ConfigDict(frozen=True)

    horizon: int
    peak_mw: float
    source: Provenance
    confidence_low_mw: float | None = None
    confidence_high_mw: float | None = None


class ProjectionSeries(BaseModel):
    """Current value followed by one point per horizon for one grid."""

    model_config = ConfigDict(frozen=True)

    grid: str
    current_mw: float
    growth_rate_mw_per_month: float
    points: list[ProjectionPoint]
    using_fallback: bool

    def at(self, horizon: int) -> float | None:
        """Projected peak at `horizon`, or None if not projected."""
        for p in self.points:
            if p.horizon == horizon:
                return p.peak_mw
        return None


def trend_frame(series: list[KpiTrendPoint]) -> pd.DataFrame:
    """Return the KPI series as a month-indexed DataFrame (one column per metric)."""
    if not series:
        return pd.DataFrame()
    frame = pd.DataFrame(
        [p.values for p in series],
        index=pd.Index([p.month_key for p in series], name="month"),
    )
    return frame.sort_index(kind="stable")


def valid_values(series: list[KpiTrendPoint], metric: str) -> pd.Series:
    """Present, strictly positive values of `metric`, in month order."""
    frame = trend_frame(series)
    if metric not in frame.columns:
        return pd.Series(dtype=float)
    values = pd.to_numeric(frame[metric], errors="coerce")
    return values[values > 0]


def growth_rate(
    series: list[KpiTrendPoint],
    metric: str,
    config: EngineConfig | None = None,
    default: float | None = None,
) -> float:
    """Estimate the monthly growth rate of `metric`.

    `rate = (last_valid - first_valid) / number_of_valid_points`. Fewer than
    two valid points, or a rate <= 0, returns the default.

    Args:
        series: Chronological KPI trend points.
        metric: Metric name, e.g. "Peak Demand DBIS".
        config: Supplies the per-metric default rates.
        default: Overrides the configured default for this call.

    Returns:
        float: Growth in MW/month, always > 0 when the default is.
    """
    config = config or EngineConfig()
    fallback = config.default_rate(metric) if default is None else default

    values = valid_values(series, metric)
    if len(values) < 2:
        logger.debug("%s: %d valid points; using default %.3f", metric, len(values), fallback)
        return fallback

    rate = float((values.iloc[-1] - values.iloc[0]) / len(values))
    if rate <= 0:
        logger.info("%s: non-positive trend %.3f floored to default %.3f", metric, rate, fallback)
        return fallback
    return rate


def current_value(
    series: list[KpiTrendPoint],
    metric: str,
    latest: dict[str, float] | None = None,
    default: float = 0.0,
) -> float:
    """Latest known value of `metric`.

    The latest KPI snapshot wins, then the final month of the trend series,
    then `default`. Zero counts as "no value".
    """
    value = (latest or {}).get(metric)
    if value:
        return value
    if series:
        value = series[-1].values.get(metric)
        if value:
            return value
    return default


def project_demand(
    grid: str,
    authoritative: list[AuthoritativeForecastPoint],
    current: float,
    rate: float,
    horizons: tuple[int, ...] | None = None,
) -> ProjectionSeries:
    """Project peak demand for `grid` at each horizon.

    For a horizon of `h` months the authoritative point with
    `month_index == h - 1` is used verbatim when it has a positive peak;
    otherwise the value is `current + rate * h`, rounded to one decimal.

    Args:
        grid: Grid name; authoritative points for other grids are ignored.
        authoritative: Server forecast points (may be empty).
        current: Current peak demand (MW).
        rate: Monthly growth rate (MW/month).
        horizons: Months ahead; defaults to the configured projection horizons.

    Returns:
        ProjectionSeries: Current point plus one point per horizon.
    """
    horizons = EngineConfig().projection_horizons if horizons is None else horizons
    by_index = {p.month_index: p for p in authoritative if p.grid == grid}
    using_fallback = not by_index
    if using_fallback:
        logger.info("%s: no authoritative forecast; projecting linearly", grid)

    points = [ProjectionPoint(horizon=0, peak_mw=current, source="current")]
    for h in horizons:
        server = by_index.get(h - 1)
        if server is not None and (server.projected_peak_mw or 0) > 0:
            points.append(
                ProjectionPoint(
                    horizon=h,
                    peak_mw=server.projected_peak_mw,
                    source="authoritative",
                    confidence_low_mw=server.confidence_low_mw,
                    confidence_high_mw=server.confidence_high_mw,
                )
            )
        else:
            points.append(
                ProjectionPoint(horizon=h, peak_mw=round_half_up(current + rate * h), source="linear")
            )

    return ProjectionSeries(
        grid=grid,
        current_mw=current,
        growth_rate_mw_per_month=rate,
        points=points,
        using_fallback=using_fallback,
    )
