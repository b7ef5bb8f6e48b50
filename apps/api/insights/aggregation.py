"""Dashboard statistics and hotspot ranking.

Everything here is a pure function of (reports, window, now): the same
inputs always give the same, identically ordered, output.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime, timedelta

import config
from errors import ValidationError
from schemas.dashboard import Dashboard, DashboardStats, Hotspot
from schemas.reports import Report, Severity


def window_delta(window: str) -> timedelta:
    try:
        return config.TIME_WINDOWS[window]
    except KeyError:
        raise ValidationError(
            f"Unknown time window '{window}'. Choose one of: {', '.join(config.TIME_WINDOWS)}."
        ) from None


def window_start(window: str, now: datetime) -> datetime:
    return now - window_delta(window)


def in_window(report: Report, window: str, now: datetime) -> bool:
    # Inclusive: a report exactly at the boundary counts.
    return report.created_at >= window_start(window, now)


def filter_window(reports: Iterable[Report], window: str, now: datetime) -> list[Report]:
    since = window_start(window, now)
    return [r for r in reports if r.created_at >= since]


def compute_stats(reports: list[Report]) -> DashboardStats:
    locations = {r.location_description for r in reports if r.location_description and r.location_description.strip()}
    return DashboardStats(
        total_reports=len(reports),
        critical_alerts=sum(1 for r in reports if r.severity == Severity.CRITICAL),
        locations_monitored=len(locations),
    )


def _severity_bucket(group: list[Report]) -> str:
    severities = {r.severity for r in group}
    if Severity.CRITICAL in severities:
        return "high"
    if Severity.HIGH in severities:
        return "medium"
    return "low"


def _trend(count: int) -> str:
    # Count threshold only, not a comparison against an earlier period.
    if count > 2:
        return "increasing"
    if count == 2:
        return "stable"
    return "decreasing"


def compute_hotspots(reports: list[Report], limit: int = config.HOTSPOT_LIMIT) -> list[Hotspot]:
    groups: dict[str, list[Report]] = defaultdict(list)
    for r in reports:
        groups[r.location_description or config.UNKNOWN_LOCATION].append(r)

    ranked = sorted(groups.items(), key=lambda item: (-len(item[1]), item[0]))
    return [
        Hotspot(
            location=location,
            alerts=len(group),
            trend=_trend(len(group)),
            severity=_severity_bucket(group),
        )
        for location, group in ranked[:limit]
    ]


def build_dashboard(reports: Iterable[Report], window: str, now: datetime) -> Dashboard:
    windowed = filter_window(reports, window, now)
    return Dashboard(
        window=window,
        since=window_start(window, now),
        stats=compute_stats(windowed),
        hotspots=compute_hotspots(windowed),
    )


def export_snapshot(dashboard: Dashboard, now: datetime) -> dict:
    """Downloadable dashboard document. Built on demand, never stored."""
    stats = dashboard.stats
    return {
        "timestamp": now.isoformat(),
        "filter": dashboard.window,
        "stats": [
            {"title": "Active Reports", "value": stats.total_reports},
            {"title": "Critical Alerts", "value": stats.critical_alerts},
            {"title": "Locations Monitored", "value": stats.locations_monitored},
        ],
        "hotspots": [h.model_dump() for h in dashboard.hotspots],
        "exported_by": "Ocean Guard",
    }
