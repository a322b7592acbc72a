"""List views: search, status filter and sort over a fetched report list.

Pure functions. Every call rescans the whole list, which is fine for the
report volumes one campus produces.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from ..models import ReportStatus
from ..stores.base import ReportRecord

STATUS_ALL = "all"

_STATUS_ORDER = {
    ReportStatus.SUBMITTED: 0,
    ReportStatus.IN_PROGRESS: 1,
    ReportStatus.RESOLVED: 2,
}


class SortOrder(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    STATUS = "status"


@dataclass(frozen=True)
class ViewParams:
    search: str = ""
    status: str = STATUS_ALL
    sort: SortOrder = SortOrder.NEWEST


def matches_search(report: ReportRecord, term: str | None) -> bool:
    """Case-insensitive substring match on title, description or location."""
    if not term:
        return True
    needle = term.lower()
    return (
        needle in report.title.lower()
        or needle in report.description.lower()
        or needle in report.location.lower()
    )


def matches_status(report: ReportRecord, status: str | None) -> bool:
    if not status or status == STATUS_ALL:
        return True
    return ReportStatus(report.status).value == status


def sort_reports(reports: Iterable[ReportRecord], order: SortOrder = SortOrder.NEWEST) -> list[ReportRecord]:
    # Ties break on id so the same input always sorts the same way
    if order == SortOrder.OLDEST:
        return sorted(reports, key=lambda r: (r.created_at, r.id or ""))
    newest = sorted(reports, key=lambda r: (r.created_at, r.id or ""), reverse=True)
    if order == SortOrder.STATUS:
        return sorted(newest, key=lambda r: _STATUS_ORDER[ReportStatus(r.status)])
    return newest


def apply_view(reports: Iterable[ReportRecord], params: ViewParams) -> list[ReportRecord]:
    """Filter by search term AND status, then sort."""
    filtered = [
        r for r in reports
        if matches_search(r, params.search) and matches_status(r, params.status)
    ]
    return sort_reports(filtered, params.sort)
