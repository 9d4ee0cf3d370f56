"""
gridcast/validate.py

Validation and typing layer for the engine's inputs and outputs.

Responsibilities
----------------
- Define the immutable value records the engine works on: stations, solar
  sites, peak-demand snapshots, KPI trend points, authoritative forecast
  points, capacity records, scenario forecasts and alerts.
- Provide `validate_*` functions that turn raw backend payloads (already
  deserialised JSON) into those records.

Conventions
-----------
- Numbers may arrive string-encoded (Postgres NUMERIC columns are
  serialised as strings). They are coerced with `to_float`; blanks become
  the field default and unparseable values are logged and replaced by the
  default, never raised.
- Raw values are never clamped. A station reporting more available than
  derated capacity is logged and passed through unchanged.
- Every `validate_*` function accepts `None` for an absent payload.
"""

from __future__ import annotations

import logging
import math
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .transform import (
    CAPACITY_KEYS,
    FORECAST_KEYS,
    SCENARIO_GRID_KEYS,
    SOLAR_KEYS,
    STATION_KEYS,
    horizon_of,
    remap,
    remap_peak,
)

logger = logging.getLogger(__name__)

Severity = Literal["critical", "high", "medium", "low"]
RiskLevel = Literal["good", "warning", "critical"]
StationState = Literal["offline", "critical", "degraded", "operational"]
ScenarioName = Literal["conservative", "aggressive"]

# Risk labels used by the forecasting service that differ from ours.
RISK_ALIASES = {"safe": "good", "ok": "good", "danger": "critical"}

# Placeholder strings that scenario text fields use for "no date".
NO_DATE = {"", "null", "none", "n/a", "na", "-"}


def to_float(v: Any, default: float | None = 0.0) -> float | None:
    """Coerce a possibly string-encoded number to `float`.

    Args:
        v: Incoming value (number, numeric string, blank or garbage).
        default: Value returned for blanks and unparseable input.

    Returns:
        float | None: The parsed number, or `default`.
    """
    if v is None or (isinstance(v, str) and not v.strip()):
        return default
    try:
        out = float(v)
    except (TypeError, ValueError, OverflowError):
        logger.warning("Unparseable numeric value %r; using %r", v, default)
        return default
    if math.isnan(out) or math.isinf(out):
        logger.warning("Non-finite numeric value %r; using %r", v, default)
        return default
    return out


def _text(v: Any) -> str:
    return "" if v is None else str(v)


def _optional_text(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return None if s.lower() in NO_DATE else s


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------


class Station(_Record):
    """A generating station from the daily availability report.

    Attributes:
        name: Station name (e.g. "DP3").
        derated_capacity_mw: Nameplate capacity adjusted for operating limits.
        available_capacity_mw: Portion of derated capacity currently usable.
        unit_count: Number of generating units at the station.
    """

    name: str = ""
    derated_capacity_mw: float = 0.0
    available_capacity_mw: float = 0.0
    unit_count: int = 0

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v):
        return _text(v)

    @field_validator("derated_capacity_mw", "available_capacity_mw", mode="before")
    @classmethod
    def coerce_mw(cls, v):
        return to_float(v)

    @field_validator("unit_count", mode="before")
    @classmethod
    def coerce_units(cls, v):
        return int(to_float(v))


class SolarSite(_Record):
    """A solar farm contributing renewable capacity (MWp)."""

    name: str = ""
    capacity_mwp: float = 0.0

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v):
        return _text(v)

    @field_validator("capacity_mwp", mode="before")
    @classmethod
    def coerce_capacity(cls, v):
        return to_float(v)


class PeakDemandSnapshot(_Record):
    """Evening and day peak demand, delivered (on bars) and suppressed."""

    date: str | None = None
    evening_on_bars_mw: float = 0.0
    evening_suppressed_mw: float = 0.0
    day_on_bars_mw: float = 0.0
    day_suppressed_mw: float = 0.0

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v):
        return _optional_text(v)

    @field_validator(
        "evening_on_bars_mw",
        "evening_suppressed_mw",
        "day_on_bars_mw",
        "day_suppressed_mw",
        mode="before",
    )
    @classmethod
    def coerce_mw(cls, v):
        return to_float(v)


class KpiTrendPoint(_Record):
    """One month of KPI values keyed by metric name.

    Attributes:
        month_key: Sortable month identifier (e.g. "2025-06-01").
        values: Metric name -> value, or None when the metric was not reported.
    """

    month_key: str
    values: dict[str, float | None] = Field(default_factory=dict)

    @field_validator("values", mode="before")
    @classmethod
    def coerce_values(cls, v):
        if not isinstance(v, dict):
            return {}
        return {str(k): to_float(x, None) for k, x in v.items()}


class AuthoritativeForecastPoint(_Record):
    """A server-computed monthly demand projection for one grid.

    `month_index` is 0 for the first projected month and contiguous from
    there on.
    """

    grid: str
    month_index: int = Field(ge=0)
    projected_month: str | None = None
    projected_peak_mw: float | None = None
    confidence_low_mw: float | None = None
    confidence_high_mw: float | None = None

    @field_validator("projected_month", mode="before")
    @classmethod
    def coerce_month(cls, v):
        return _optional_text(v)

    @field_validator(
        "projected_peak_mw", "confidence_low_mw", "confidence_high_mw", mode="before"
    )
    @classmethod
    def coerce_mw(cls, v):
        return to_float(v, None)


class CapacityRecord(_Record):
    """Per-grid capacity and risk as reported by the forecasting service.

    `risk_level` is None when the service did not supply a recognisable
    value; `capacity.resolve_capacity_records` fills it in.
    """

    grid: str
    current_capacity_mw: float = 0.0
    reserve_margin_pct: float | None = None
    shortfall_date: str | None = None
    risk_level: RiskLevel | None = None

    @field_validator("current_capacity_mw", mode="before")
    @classmethod
    def coerce_capacity(cls, v):
        return to_float(v)

    @field_validator("reserve_margin_pct", mode="before")
    @classmethod
    def coerce_reserve(cls, v):
        return to_float(v, None)

    @field_validator("shortfall_date", mode="before")
    @classmethod
    def coerce_date(cls, v):
        return _optional_text(v)

    @field_validator("risk_level", mode="before")
    @classmethod
    def normalise_risk(cls, v):
        if v is None:
            return None
        level = str(v).strip().lower()
        level = RISK_ALIASES.get(level, level)
        return level if level in ("good", "warning", "critical") else None


class ScenarioPoint(_Record):
    """Projected peak and reserve at one horizon of one scenario."""

    peak_mw: float | None = None
    reserve_margin_pct: float | None = None
    confidence: str | None = None

    @field_validator("peak_mw", "reserve_margin_pct", mode="before")
    @classmethod
    def coerce_numbers(cls, v):
        return to_float(v, None)

    @field_validator("confidence", mode="before")
    @classmethod
    def coerce_confidence(cls, v):
        return _optional_text(v)


class GridScenario(_Record):
    """A scenario's projections for a single grid."""

    current_peak_mw: float | None = None
    horizons: dict[int, ScenarioPoint] = Field(default_factory=dict)
    growth_rate_mw_per_month: float | None = None
    safe_threshold_breach_date: str | None = None
    load_shedding_unavoidable_date: str | None = None

    @field_validator("current_peak_mw", "growth_rate_mw_per_month", mode="before")
    @classmethod
    def coerce_numbers(cls, v):
        return to_float(v, None)

    @field_validator(
        "safe_threshold_breach_date", "load_shedding_unavoidable_date", mode="before"
    )
    @classmethod
    def coerce_dates(cls, v):
        return _optional_text(v)


class ScenarioForecast(_Record):
    """One named scenario from the multivariate forecasting service."""

    scenario_name: ScenarioName
    label: str = ""
    grids: dict[str, GridScenario] = Field(default_factory=dict)
    assumptions: list[str] = Field(default_factory=list)
    risk_factors_upside: list[str] = Field(default_factory=list)
    moderating_factors: list[str] = Field(default_factory=list)

    @field_validator("assumptions", "risk_factors_upside", "moderating_factors", mode="before")
    @classmethod
    def coerce_lists(cls, v):
        if not isinstance(v, list):
            return []
        return [str(x) for x in v if x is not None]


class ScenarioPayload(_Record):
    """Both scenarios as returned by the multivariate forecasting service."""

    conservative: ScenarioForecast | None = None
    aggressive: ScenarioForecast | None = None
    is_fallback: bool = False


# ---------------------------------------------------------------------------
# Alert sources (tagged union) and the consolidated alert record
# ---------------------------------------------------------------------------


class CriticalAlertSource(_Record):
    kind: Literal["critical_alert"] = "critical_alert"
    title: str = ""
    description: str = ""
    recommendation: str | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _text(v)


class StationConcernSource(_Record):
    kind: Literal["station_concern"] = "station_concern"
    station: str | None = None
    issue: str = ""
    impact: str = ""
    priority: str = "LOW"

    @field_validator("issue", "impact", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _text(v)

    @field_validator("priority", mode="before")
    @classmethod
    def coerce_priority(cls, v):
        return _text(v).strip().upper() or "LOW"


class RecommendationSource(_Record):
    kind: Literal["recommendation"] = "recommendation"
    recommendation: str = ""
    urgency: str | None = None
    category: str | None = None

    @field_validator("recommendation", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _text(v)


AlertSource = Annotated[
    Union[CriticalAlertSource, StationConcernSource, RecommendationSource],
    Field(discriminator="kind"),
]


class Alert(_Record):
    """A consolidated, ranked alert shown on the dashboard."""

    id: str
    severity: Severity
    title: str
    station: str | None = None
    detail: str = ""
    recommendation: str | None = None
    category: str | None = None


# ---------------------------------------------------------------------------
# Raw payload validation
# ---------------------------------------------------------------------------


def _dicts(rows: Any, what: str) -> list[dict[str, Any]]:
    """Return the dict entries of `rows`, logging anything else."""
    if not isinstance(rows, list):
        logger.warning("Expected a list of %s, got %s", what, type(rows).__name__)
        return []
    out = []
    for row in rows:
        if isinstance(row, dict):
            out.append(row)
        else:
            logger.warning("Skipping non-object %s entry %r", what, row)
    return out


def validate_station(rec: dict[str, Any]) -> Station:
    """Validate a raw power-station row into a `Station`."""
    station = Station.model_validate(remap(rec, STATION_KEYS))
    if station.available_capacity_mw < 0 or station.derated_capacity_mw < 0:
        logger.warning("Station %r reports negative capacity", station.name)
    elif station.available_capacity_mw > station.derated_capacity_mw:
        logger.warning(
            "Station %r reports %.2f MW available above %.2f MW derated",
            station.name,
            station.available_capacity_mw,
            station.derated_capacity_mw,
        )
    return station


def validate_stations(rows: Any) -> list[Station] | None:
    """Validate the station list; None means the payload was absent."""
    if rows is None:
        return None
    return [validate_station(r) for r in _dicts(rows, "stations")]


def validate_solar_sites(rows: Any) -> list[SolarSite] | None:
    """Validate the solar site list; None means the payload was absent."""
    if rows is None:
        return None
    return [SolarSite.model_validate(remap(r, SOLAR_KEYS)) for r in _dicts(rows, "solar sites")]


def validate_peak(rec: Any) -> PeakDemandSnapshot | None:
    """Validate a peak-demand row or a dashboard payload with nested peaks."""
    if not isinstance(rec, dict):
        return None
    return PeakDemandSnapshot.model_validate(remap_peak(rec))


def validate_trends(rows: Any) -> list[KpiTrendPoint]:
    """Validate KPI trend rows into a month-ordered series.

    Each row carries its month under "month" (or "report_month") and one
    key per metric. Rows without a month are dropped; a repeated month is
    merged into the earlier entry.
    """
    if rows is None:
        return []
    by_month: dict[str, dict[str, Any]] = {}
    for row in _dicts(rows, "KPI trends"):
        month = _optional_text(row.get("month", row.get("report_month")))
        if month is None:
            logger.warning("Skipping KPI trend row without a month: %r", row)
            continue
        metrics = {k: v for k, v in row.items() if k not in ("month", "report_month")}
        by_month.setdefault(month, {}).update(metrics)
    return [
        KpiTrendPoint(month_key=month, values=values)
        for month, values in sorted(by_month.items())
    ]


def validate_latest_kpis(payload: Any) -> dict[str, float]:
    """Extract metric values from a latest-KPI payload.

    Accepts either `{"kpis": {name: {"value": x}}}` or a flat
    `{name: x}` mapping. Metrics without a usable value are omitted.
    """
    if not isinstance(payload, dict):
        return {}
    kpis = payload.get("kpis", payload)
    if not isinstance(kpis, dict):
        return {}
    out = {}
    for name, entry in kpis.items():
        raw = entry.get("value") if isinstance(entry, dict) else entry
        value = to_float(raw, None)
        if value is not None:
            out[str(name)] = value
    return out


def validate_forecast(rows: Any) -> list[AuthoritativeForecastPoint]:
    """Validate server forecast rows and assign per-grid month indices.

    Rows are grouped by grid. Within a grid they are ordered by
    `projected_month` when every row has one, otherwise kept in arrival
    order, and numbered from 0.
    """
    if rows is None:
        return []
    by_grid: dict[str, list[dict[str, Any]]] = {}
    for row in _dicts(rows, "forecast rows"):
        fields = remap(row, FORECAST_KEYS)
        grid = _optional_text(fields.get("grid"))
        if grid is None:
            logger.warning("Skipping forecast row without a grid: %r", row)
            continue
        fields["grid"] = grid
        by_grid.setdefault(grid, []).append(fields)

    points = []
    for grid, grid_rows in by_grid.items():
        if all(_optional_text(r.get("projected_month")) for r in grid_rows):
            grid_rows = sorted(grid_rows, key=lambda r: str(r["projected_month"]))
        for i, fields in enumerate(grid_rows):
            points.append(AuthoritativeForecastPoint.model_validate({**fields, "month_index": i}))
    return points


def validate_capacity(rows: Any) -> list[CapacityRecord]:
    """Validate capacity/risk rows; a single object is accepted as one row."""
    if rows is None:
        return []
    if isinstance(rows, dict):
        rows = [rows]
    out = []
    for row in _dicts(rows, "capacity rows"):
        fields = remap(row, CAPACITY_KEYS)
        grid = _optional_text(fields.get("grid"))
        if grid is None:
            logger.warning("Skipping capacity row without a grid: %r", row)
            continue
        fields["grid"] = grid
        out.append(CapacityRecord.model_validate(fields))
    return out


def _validate_grid_scenario(raw: dict[str, Any]) -> GridScenario:
    horizons = {}
    for key, value in raw.items():
        months = horizon_of(key)
        if months is not None and isinstance(value, dict):
            horizons[months] = ScenarioPoint.model_validate(value)
    return GridScenario.model_validate(
        {
            "current_peak_mw": raw.get("current_peak"),
            "horizons": horizons,
            "growth_rate_mw_per_month": raw.get("growth_rate_mw_per_month"),
            "safe_threshold_breach_date": raw.get("safe_threshold_breach_date"),
            "load_shedding_unavoidable_date": raw.get("load_shedding_unavoidable_date"),
        }
    )


def _validate_scenario(name: str, raw: Any) -> ScenarioForecast | None:
    if not isinstance(raw, dict):
        return None
    grids = {
        grid: _validate_grid_scenario(raw[key])
        for key, grid in SCENARIO_GRID_KEYS.items()
        if isinstance(raw.get(key), dict)
    }
    return ScenarioForecast.model_validate(
        {
            "scenario_name": name,
            "label": _text(raw.get("label")),
            "grids": grids,
            "assumptions": raw.get("assumptions"),
            "risk_factors_upside": raw.get("risk_factors_upside"),
            "moderating_factors": raw.get("moderating_factors"),
        }
    )


def validate_scenarios(payload: Any) -> ScenarioPayload | None:
    """Validate a multivariate forecast payload.

    Returns None when the payload is absent or carries neither scenario,
    which the scenario comparator treats as "service unavailable".
    """
    if not isinstance(payload, dict):
        return None
    conservative = _validate_scenario("conservative", payload.get("conservative"))
    aggressive = _validate_scenario("aggressive", payload.get("aggressive"))
    if conservative is None and aggressive is None:
        return None
    metadata = payload.get("metadata")
    is_fallback = bool(metadata.get("isFallback")) if isinstance(metadata, dict) else False
    return ScenarioPayload(
        conservative=conservative, aggressive=aggressive, is_fallback=is_fallback
    )


def validate_analysis(analysis: Any) -> list[AlertSource]:
    """Turn an AI analysis object into tagged alert sources.

    Only `critical_alerts`, `station_concerns` and `recommendations` are
    read; everything else in the analysis is opaque to the engine.
    """
    if not isinstance(analysis, dict):
        return []
    sources: list[AlertSource] = []
    for a in _dicts(analysis.get("critical_alerts") or [], "critical alerts"):
        sources.append(
            CriticalAlertSource(
                title=a.get("title"),
                description=a.get("description"),
                recommendation=_optional_text(a.get("recommendation")),
            )
        )
    for c in _dicts(analysis.get("station_concerns") or [], "station concerns"):
        sources.append(
            StationConcernSource(
                station=_optional_text(c.get("station")),
                issue=c.get("issue"),
                impact=c.get("impact"),
                priority=c.get("priority"),
            )
        )
    for r in _dicts(analysis.get("recommendations") or [], "recommendations"):
        sources.append(
            RecommendationSource(
                recommendation=r.get("recommendation"),
                urgency=_optional_text(r.get("urgency")),
                category=_optional_text(r.get("category")),
            )
        )
    return sources
