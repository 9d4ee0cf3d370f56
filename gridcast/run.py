"""
gridcast/run.py

End-to-end runner: fetch, validate, compute and print the power-utility
dashboard summary.

Responsibilities
----------------
- Fetch the raw payloads from the dashboard backend (or read them from a
  JSON file for offline runs).
- Validate them into `EngineInputs`.
- Run `build_dashboard` and print the result as JSON.
- Expose a CLI for ad-hoc runs.

Environment Variables
---------------------
GRIDCAST_API_BASE
    Backend API base URL. Defaults to "http://localhost:3001/api/v1".
    A `.env` file in the working directory is honoured.

Conventions
-----------
- The station payload is mandatory: failing to fetch it fails the run.
- Every other payload is optional: a failed fetch is logged and treated as
  "no data", which selects the engine's fallbacks.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from collections.abc import Callable
from datetime import date
from typing import Any

import requests
from dateutil import parser as dtp
from dotenv import load_dotenv

from . import client
from .config import EngineConfig
from .summary import DashboardSummary, EngineInputs, build_dashboard
from .validate import (
    to_float,
    validate_analysis,
    validate_capacity,
    validate_forecast,
    validate_latest_kpis,
    validate_peak,
    validate_scenarios,
    validate_solar_sites,
    validate_stations,
    validate_trends,
)

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "http://localhost:3001/api/v1"


def parse_date(s: str) -> date:
    """Parse an ISO-8601 date or datetime string into a `date`."""
    return dtp.isoparse(s).date()


def to_inputs(
    dashboard: dict[str, Any] | None,
    kpi_latest: dict[str, Any] | None = None,
    kpi_trends: list[dict[str, Any]] | None = None,
    forecast: dict[str, Any] | None = None,
    multivariate: dict[str, Any] | None = None,
    as_of: date | None = None,
) -> EngineInputs:
    """Validate raw backend payloads into `EngineInputs`.

    Args:
        dashboard: Power-utility payload (`powerStations`, `solarStations`,
            `totalRenewableCapacity`, `actualEveningPeak`, `actualDayPeak`,
            `peakDemandDate`, `aiAnalysis`, `forcedOutageRate`,
            `expectedPeakDemand`).
        kpi_latest: Latest KPI snapshot payload.
        kpi_trends: Monthly KPI trend rows.
        forecast: Server forecast bundle with `demand` and `capacity` rows.
        multivariate: Multivariate scenario forecast.
        as_of: Anchor date for estimated breach dates.

    Returns:
        EngineInputs: Inputs ready for `build_dashboard`.
    """
    dashboard = dashboard or {}
    forecast = forecast or {}
    return EngineInputs(
        stations=validate_stations(dashboard.get("powerStations")),
        solar_sites=validate_solar_sites(dashboard.get("solarStations")),
        renewable_capacity_mw=to_float(dashboard.get("totalRenewableCapacity"), None),
        peak_demand=validate_peak(dashboard),
        kpi_trends=validate_trends(kpi_trends),
        latest_kpis=validate_latest_kpis(kpi_latest),
        authoritative_forecast=validate_forecast(forecast.get("demand")),
        capacity_records=validate_capacity(forecast.get("capacity")),
        scenarios=validate_scenarios(multivariate),
        alert_sources=validate_analysis(dashboard.get("aiAnalysis")),
        forced_outage_rate_pct=to_float(dashboard.get("forcedOutageRate"), None),
        expected_peak_mw=to_float(dashboard.get("expectedPeakDemand"), None),
        as_of=as_of,
    )


def _optional(fetch: Callable[[], Any], what: str) -> Any:
    """Run an optional fetch; transport failures become None."""
    try:
        return fetch()
    except requests.RequestException as exc:
        logger.warning("Could not fetch %s: %s", what, exc)
        return None


def fetch_payloads(base_api: str, months: int = 12) -> dict[str, Any]:
    """Fetch every payload the engine consumes from the backend."""
    return {
        "dashboard": client.fetch_dashboard(base_api),
        "kpi_latest": _optional(lambda: client.fetch_kpi_latest(base_api), "latest KPIs"),
        "kpi_trends": _optional(lambda: client.fetch_kpi_trends(base_api, months), "KPI trends"),
        "forecast": _optional(lambda: client.fetch_forecast(base_api), "forecast"),
        "multivariate": _optional(lambda: client.fetch_multivariate(base_api), "scenario forecast"),
    }


def run(
    base_api: str | None = None,
    months: int = 12,
    as_of: date | None = None,
    config: EngineConfig | None = None,
    payloads: dict[str, Any] | None = None,
) -> DashboardSummary | None:
    """Execute a single fetch-and-compute pass.

    Args:
        base_api: Backend API base URL; required unless `payloads` is given.
        months: KPI history window to request.
        as_of: Anchor date for estimated breach dates.
        config: Engine configuration.
        payloads: Pre-fetched raw payloads keyed like `fetch_payloads`.

    Returns:
        DashboardSummary | None: None when there is no station data.
    """
    if payloads is None:
        if not base_api:
            raise ValueError("base_api is required when payloads are not supplied")
        payloads = fetch_payloads(base_api, months)
    inputs = to_inputs(
        payloads.get("dashboard"),
        payloads.get("kpi_latest"),
        payloads.get("kpi_trends"),
        payloads.get("forecast"),
        payloads.get("multivariate"),
        as_of=as_of,
    )
    return build_dashboard(inputs, config)


def main(argv=None):
    """CLI entry point.

    Args:
        argv: Optional list of CLI arguments (useful for testing).

    Returns:
        int: Exit code (0 on success, 1 when the station payload could not
        be fetched).
    """
    load_dotenv()

    parser = argparse.ArgumentParser(description="Grid capacity and demand-forecast summary")
    parser.add_argument("--api-base", default=os.getenv("GRIDCAST_API_BASE", DEFAULT_API_BASE))
    parser.add_argument("--input", help="Read raw payloads from a JSON file instead of the API")
    parser.add_argument("--months", type=int, default=12, help="KPI history window")
    parser.add_argument("--as-of", type=parse_date, help="Anchor date for estimated breach dates")
    parser.add_argument(
        "--degraded-threshold", type=float, help="Override the configured degraded station ratio"
    )
    parser.add_argument("--no-multivariate", action="store_true")
    parser.add_argument("--estimate-breach-dates", action="store_true")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    overrides = {}
    if args.degraded_threshold is not None:
        overrides["degraded_threshold"] = args.degraded_threshold
    config = EngineConfig(
        with_multivariate_forecast=not args.no_multivariate,
        estimate_breach_dates=args.estimate_breach_dates,
        **overrides,
    )

    payloads = None
    if args.input:
        with open(args.input, encoding="utf-8") as f:
            payloads = json.load(f)

    try:
        summary = run(args.api_base, args.months, args.as_of, config, payloads)
    except requests.RequestException as exc:
        logger.error("Could not fetch station data: %s", exc)
        return 1

    if summary is None:
        print("No station data available.")
        return 0
    print(summary.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    # Convert the `main()` return value into a process exit status.
    raise SystemExit(main())
