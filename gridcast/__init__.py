"""Grid capacity and demand-forecasting engine for the power-utility dashboard."""

from . import alerts, capacity, client, config, forecast, numeric, run, scenarios, stations, summary, transform, validate

__all__ = [
    "alerts",
    "capacity",
    "client",
    "config",
    "forecast",
    "numeric",
    "run",
    "scenarios",
    "stations",
    "summary",
    "transform",
    "validate",
]
