"""Tests for alert consolidation and ranking."""

from __future__ import annotations

from gridcast import alerts
from gridcast.validate import CriticalAlertSource, RecommendationSource, StationConcernSource


def test_consolidate_ranks_by_severity():
    """Critical alerts lead, then high, medium and low."""

    sources = [
        RecommendationSource(recommendation="Expedite repair", urgency="Immediate"),
        StationConcernSource(station="DP3", issue="Trip", impact="20 MW", priority="HIGH"),
        CriticalAlertSource(title="Low reserve", description="Evening peak"),
        StationConcernSource(station="DP1", issue="Minor leak", priority="LOW"),
        RecommendationSource(recommendation="Plan overhaul", urgency="Short-term"),
    ]

    summary = alerts.consolidate_alerts(sources)

    assert [(a.id, a.severity) for a in summary.alerts] == [
        ("critical-0", "critical"),
        ("station-0", "high"),
        ("rec-0", "medium"),
        ("station-1", "low"),
    ]
    assert summary.urgent_count == 2
    assert summary.alerts[1].station == "DP3"
    assert summary.alerts[1].detail == "20 MW"


def test_ties_keep_input_order():
    """The sort should be stable for equal severities."""

    sources = [
        CriticalAlertSource(title="First"),
        StationConcernSource(issue="Medium one", priority="MEDIUM"),
        CriticalAlertSource(title="Second"),
    ]

    summary = alerts.consolidate_alerts(sources)

    assert [a.title for a in summary.alerts] == ["First", "Second", "Medium one"]


def test_recommendation_ids_count_every_recommendation():
    """Ids index the source among its kind, including non-urgent ones."""

    sources = [
        RecommendationSource(recommendation="Later", urgency="Long-term"),
        RecommendationSource(recommendation="Now", urgency="immediate", category="ops"),
    ]

    summary = alerts.consolidate_alerts(sources)

    assert [a.id for a in summary.alerts] == ["rec-1"]
    assert summary.alerts[0].category == "ops"
    assert summary.urgent_count == 0


def test_long_recommendation_title_is_truncated():
    """Titles are cut at 60 characters with an ellipsis; the detail keeps the full text."""

    text = "x" * 61

    alert = alerts.to_alert(RecommendationSource(recommendation=text, urgency="Immediate"), 0)

    assert alert.title == "x" * 60 + "..."
    assert alert.detail == text
    exact = alerts.to_alert(RecommendationSource(recommendation="y" * 60, urgency="Immediate"), 0)
    assert exact.title == "y" * 60


def test_unknown_priority_is_low():
    """Priorities other than HIGH/MEDIUM map to low severity."""

    alert = alerts.to_alert(StationConcernSource(issue="Odd", priority="urgent"), 3)

    assert alert.id == "station-3"
    assert alert.severity == "low"


def test_no_sources():
    """No analysis should produce no alerts."""

    summary = alerts.consolidate_alerts(None)

    assert summary.alerts == []
    assert summary.urgent_count == 0
