"""Dashboard and insights statistics computed from the full report list."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Sequence

from ..models import ReportStatus
from ..stores.base import ReportRecord
from .views import SortOrder, sort_reports


@dataclass
class StatusCounts:
    total: int = 0
    submitted: int = 0
    in_progress: int = 0
    resolved: int = 0


@dataclass
class CategoryDatum:
    name: str
    value: int


@dataclass
class TimelineDay:
    date: str  # YYYY-MM-DD
    label: str  # "Mon DD"
    reports: int = 0
    resolved: int = 0


@dataclass
class Insights:
    stats: StatusCounts
    categories: list[CategoryDatum]
    timeline: list[TimelineDay]


@dataclass
class DashboardSummary:
    total_reports: int
    pending_reports: int
    resolved_reports: int
    total_users: int
    recent_reports: list[ReportRecord] = field(default_factory=list)


def count_by_status(reports: Sequence[ReportRecord]) -> dict[str, int]:
    """Counts for every status, zero-filled."""
    counts = {status.value: 0 for status in ReportStatus}
    for report in reports:
        counts[ReportStatus(report.status).value] += 1
    return counts


def count_by_category(reports: Sequence[ReportRecord]) -> dict[str, int]:
    """Counts for the categories that actually occur, in first-seen order."""
    counts: Counter[str] = Counter()
    for report in reports:
        counts[str(getattr(report.category, "value", report.category))] += 1
    return dict(counts)


def status_counts(reports: Sequence[ReportRecord]) -> StatusCounts:
    by_status = count_by_status(reports)
    return StatusCounts(
        total=len(reports),
        submitted=by_status[ReportStatus.SUBMITTED.value],
        in_progress=by_status[ReportStatus.IN_PROGRESS.value],
        resolved=by_status[ReportStatus.RESOLVED.value],
    )


def category_chart(reports: Sequence[ReportRecord]) -> list[CategoryDatum]:
    return [
        CategoryDatum(name=category.capitalize(), value=value)
        for category, value in count_by_category(reports).items()
    ]


def timeline(reports: Sequence[ReportRecord], today: date, days: int = 7) -> list[TimelineDay]:
    """Reports filed (and of those, resolved) per day over the last ``days`` days."""
    window = [today - timedelta(days=days - 1 - i) for i in range(days)]
    buckets = {
        day: TimelineDay(date=day.isoformat(), label=day.strftime("%b %d"))
        for day in window
    }
    for report in reports:
        bucket = buckets.get(report.created_at.date())
        if bucket is None:
            continue
        bucket.reports += 1
        if report.status == ReportStatus.RESOLVED:
            bucket.resolved += 1
    return [buckets[day] for day in window]


def insights(reports: Sequence[ReportRecord], today: date, days: int = 7) -> Insights:
    return Insights(
        stats=status_counts(reports),
        categories=category_chart(reports),
        timeline=timeline(reports, today, days),
    )


def dashboard_summary(reports: Sequence[ReportRecord], recent: int = 5) -> DashboardSummary:
    """Admin dashboard cards: totals, distinct reporters, newest reports."""
    resolved = sum(1 for r in reports if r.status == ReportStatus.RESOLVED)
    return DashboardSummary(
        total_reports=len(reports),
        pending_reports=len(reports) - resolved,
        resolved_reports=resolved,
        total_users=len({r.reported_by for r in reports if r.reported_by}),
        recent_reports=sort_reports(reports, SortOrder.NEWEST)[:recent],
    )
