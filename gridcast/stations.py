"""
gridcast/stations.py

Fleet health summary for fossil generating stations.

Responsibilities
----------------
- Classify each station as offline, critical, degraded or operational from
  its available/derated ratio.
- Total derated capacity, available capacity and units across the fleet and
  partition the stations by status.

Notes
-----
- Station values are never rounded or clamped; only fleet totals are rounded
  (after summation) to one decimal place.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from .config import EngineConfig
from .numeric import pct, round_half_up
from .validate import Station, StationState

logger = logging.getLogger(__name__)


class StationHealth(BaseModel):
    """A station together with its derived availability and status."""

    model_config = ConfigDict(frozen=True)

    station: Station
    availability_pct: float
    status: StationState


class FleetSummary(BaseModel):
    """Fleet totals and status groups for one availability report."""

    model_config = ConfigDict(frozen=True)

    stations: list[StationHealth]
    total_derated_mw: float
    total_available_mw: float
    total_offline_mw: float
    availability_pct: float
    total_units: int
    degraded_shortfall_mw: float
    operational: list[StationHealth]
    degraded: list[StationHealth]
    critical: list[StationHealth]
    offline: list[StationHealth]

    @property
    def stations_below_capacity(self) -> int:
        return len(self.offline) + len(self.critical) + len(self.degraded)


def classify_station(station: Station, config: EngineConfig | None = None) -> StationState:
    """Return the status of a station.

    Rules are evaluated in order: nothing available is offline; otherwise the
    available/derated ratio is compared with the critical and degraded
    thresholds. A station with no derated capacity but some availability
    cannot be rated and is treated as critical.
    """
    config = config or EngineConfig()
    available = station.available_capacity_mw
    derated = station.derated_capacity_mw
    if available == 0:
        return "offline"
    if derated <= 0:
        return "critical"
    ratio = available / derated
    if ratio < config.critical_threshold:
        return "critical"
    if ratio < config.degraded_threshold:
        return "degraded"
    return "operational"


def station_health(station: Station, config: EngineConfig | None = None) -> StationHealth:
    """Enrich a station with its availability percentage and status."""
    return StationHealth(
        station=station,
        availability_pct=pct(station.available_capacity_mw, station.derated_capacity_mw) or 0.0,
        status=classify_station(station, config),
    )


def aggregate_stations(
    stations: list[Station], config: EngineConfig | None = None
) -> FleetSummary:
    """Classify every station and total the fleet.

    Args:
        stations: Station records from the availability report.
        config: Engine thresholds; defaults to `EngineConfig()`.

    Returns:
        FleetSummary: Enriched stations, rounded totals and status groups.
    """
    enriched = [station_health(s, config) for s in stations]

    total_derated = sum(s.derated_capacity_mw for s in stations)
    total_available = sum(s.available_capacity_mw for s in stations)
    degraded = [h for h in enriched if h.status == "degraded"]
    degraded_shortfall = sum(
        h.station.derated_capacity_mw - h.station.available_capacity_mw for h in degraded
    )

    fleet_pct = pct(total_available, total_derated)
    if fleet_pct is None:
        logger.info("Fleet has no derated capacity; availability reported as 0")

    return FleetSummary(
        stations=enriched,
        total_derated_mw=round_half_up(total_derated),
        total_available_mw=round_half_up(total_available),
        total_offline_mw=round_half_up(total_derated - total_available),
        availability_pct=round_half_up(fleet_pct or 0.0),
        total_units=sum(s.unit_count for s in stations),
        degraded_shortfall_mw=round_half_up(degraded_shortfall),
        operational=[h for h in enriched if h.status == "operational"],
        degraded=degraded,
        critical=[h for h in enriched if h.status == "critical"],
        offline=[h for h in enriched if h.status == "offline"],
    )
