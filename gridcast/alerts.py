"""
gridcast/alerts.py

Merge alert-producing sources into one ranked list.

Responsibilities
----------------
- Turn each tagged `AlertSource` (critical alert, station concern,
  recommendation) into an `Alert`.
- Rank the result by severity with a stable sort so that ties keep their
  input order.

Notes
-----
- Only recommendations with "Immediate" urgency become alerts.
- No deduplication is performed: the same title from two sources yields two
  alerts.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict

from .validate import (
    Alert,
    AlertSource,
    CriticalAlertSource,
    RecommendationSource,
    Severity,
    StationConcernSource,
)

logger = logging.getLogger(__name__)

SEVERITY_RANK = {"critical": 0, "high": 1, "medium": 2, "low": 3}

PRIORITY_SEVERITY = {"HIGH": "high", "MEDIUM": "medium"}

IMMEDIATE = "immediate"

# Recommendation text longer than this is shortened for the alert title.
TITLE_LIMIT = 60


class AlertSummary(BaseModel):
    """The ranked alert list and the number needing urgent attention."""

    model_config = ConfigDict(frozen=True)

    alerts: list[Alert]
    urgent_count: int


def _short(text: str) -> str:
    return text[:TITLE_LIMIT] + ("..." if len(text) > TITLE_LIMIT else "")


def to_alert(source: AlertSource, index: int) -> Alert | None:
    """Convert one source to an alert; returns None for non-urgent recommendations.

    Args:
        source: A tagged alert source.
        index: Position of the source among sources of the same kind, used
            for the alert id.
    """
    if isinstance(source, CriticalAlertSource):
        return Alert(
            id=f"critical-{index}",
            severity="critical",
            title=source.title,
            detail=source.description,
            recommendation=source.recommendation,
        )
    if isinstance(source, StationConcernSource):
        severity: Severity = PRIORITY_SEVERITY.get(source.priority, "low")
        return Alert(
            id=f"station-{index}",
            severity=severity,
            title=source.issue,
            station=source.station,
            detail=source.impact,
        )
    if isinstance(source, RecommendationSource):
        if (source.urgency or "").strip().lower() != IMMEDIATE:
            return None
        return Alert(
            id=f"rec-{index}",
            severity="medium",
            title=_short(source.recommendation),
            detail=source.recommendation,
            category=source.category,
        )
    logger.warning("Ignoring unknown alert source %r", source)
    return None


def consolidate_alerts(sources: Iterable[AlertSource] | None) -> AlertSummary:
    """Merge all sources into a severity-ranked alert list.

    Critical alerts come first, then high, medium and low. `sorted` is
    stable, so alerts of equal severity stay in input order.
    """
    counters: dict[str, int] = {}
    alerts = []
    for source in sources or ():
        index = counters.get(source.kind, 0)
        counters[source.kind] = index + 1
        alert = to_alert(source, index)
        if alert is not None:
            alerts.append(alert)

    ranked = sorted(alerts, key=lambda a: SEVERITY_RANK.get(a.severity, len(SEVERITY_RANK)))
    return AlertSummary(
        alerts=ranked,
        urgent_count=sum(1 for a in ranked if a.severity in ("critical", "high")),
    )
