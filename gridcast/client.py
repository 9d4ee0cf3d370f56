"""
gridcast/client.py

A minimal client for the ministry dashboard backend, used by the CLI to
fetch the payloads the engine consumes.

Responsibilities
---------------
- Perform HTTP GET requests against the backend's JSON endpoints with a
  bounded timeout, a custom User-Agent, and exponential backoff retries for
  transient failures.
- Unwrap the backend's `{"success": ..., ...}` envelopes into the bare
  payloads expected by `gridcast.validate`.

Configuration
-------------
The API base URL is always passed in by the caller (e.g.
"http://localhost:3001/api/v1"). Nothing in this module reads the
environment; the CLI resolves `GRIDCAST_API_BASE` and injects it.

Notes
-----
- Transport errors propagate after the retry budget is spent. Deciding what
  a failed fetch means for the dashboard is the caller's job.
- An envelope with `success: false` or `hasData: false` unwraps to None.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

logger = logging.getLogger(__name__)

# HTTP client settings.
HTTP_TIMEOUT = 30  # seconds
USER_AGENT = "gridcast/0.1"
MAX_RETRIES = 4  # total attempts including the first try

# Endpoint paths relative to the API base.
DASHBOARD_PATH = "/dashboard"
KPI_LATEST_PATH = "/gpl/kpi/latest"
KPI_TRENDS_PATH = "/gpl/kpi/trends"
FORECAST_PATH = "/gpl/forecast/all"
MULTIVARIATE_PATH = "/gpl/forecast/multivariate"


def fetch_json(base_api: str, path: str, params: dict | None = None) -> Any:
    """GET `base_api + path` and return the decoded JSON body, with retry.

    Args:
        base_api: API base URL without a trailing slash.
        path: Endpoint path starting with "/".
        params: Optional query parameters.

    Returns:
        The parsed JSON response.

    Raises:
        requests.RequestException: If all retry attempts fail due to HTTP
            or connection errors (the last exception is re-raised).
        requests.JSONDecodeError: If the body is not JSON (via `Response.json()`).
    """
    url = f"{base_api.rstrip('/')}{path}"
    headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}

    for attempt in range(MAX_RETRIES):
        try:
            r = requests.get(url, params=params, headers=headers, timeout=HTTP_TIMEOUT)
            r.raise_for_status()
            return r.json()
        except requests.RequestException as exc:
            if attempt == MAX_RETRIES - 1:
                raise
            logger.warning(
                "GET %s failed (attempt %d/%d): %s", url, attempt + 1, MAX_RETRIES, exc
            )
            # Exponential backoff: 1, 2, 4... seconds between retries.
            time.sleep(2**attempt)

    raise RuntimeError("Unreachable")


def unwrap(body: Any, key: str | None = None) -> Any:
    """Return `body[key]` (or the body itself) unless the envelope says no data."""
    if not isinstance(body, dict):
        return None
    if body.get("success") is False or body.get("hasData") is False:
        return None
    return body.get(key) if key else body


def fetch_dashboard(base_api: str) -> dict | None:
    """Latest power-utility payload: stations, solar sites and peaks."""
    data = unwrap(fetch_json(base_api, DASHBOARD_PATH), "data")
    return data.get("gpl") if isinstance(data, dict) else None


def fetch_kpi_latest(base_api: str) -> dict | None:
    return unwrap(fetch_json(base_api, KPI_LATEST_PATH))


def fetch_kpi_trends(base_api: str, months: int = 12) -> list | None:
    """Monthly KPI trend rows for the last `months` months."""
    return unwrap(fetch_json(base_api, KPI_TRENDS_PATH, {"months": months}), "trends")


def fetch_forecast(base_api: str) -> dict | None:
    """Server forecast bundle: `{"demand": [...], "capacity": [...], ...}`."""
    return unwrap(fetch_json(base_api, FORECAST_PATH), "data")


def fetch_multivariate(base_api: str) -> dict | None:
    return unwrap(fetch_json(base_api, MULTIVARIATE_PATH), "forecast")
