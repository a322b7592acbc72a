"""Pydantic schemas for reports, comments, notifications and statistics."""

from datetime import datetime

from pydantic import Field

from ..models import NotificationType, ReportCategory, ReportStatus
from .base import CampusCareBaseModel


# =============================================================================
# REPORTS
# =============================================================================


class ReportResponse(CampusCareBaseModel):
    """A report as returned to the SPA."""

    id: str
    title: str
    description: str
    category: ReportCategory
    location: str
    status: ReportStatus
    image_url: str | None = None
    created_at: datetime
    updated_at: datetime
    reported_by: str
    reporter_name: str
    reporter_email: str


class SubmissionResponse(CampusCareBaseModel):
    """A freshly filed report plus any non-fatal warnings (e.g. image dropped)."""

    report: ReportResponse
    warnings: list[str] = []


class StatusUpdateRequest(CampusCareBaseModel):
    status: str = Field(..., description="submitted, in-progress or resolved")


class StatusUpdateResponse(CampusCareBaseModel):
    report: ReportResponse
    changed: bool


# =============================================================================
# COMMENTS
# =============================================================================


class CommentCreate(CampusCareBaseModel):
    content: str = Field(..., max_length=5000)


class CommentResponse(CampusCareBaseModel):
    id: str
    report_id: str
    content: str
    user_id: str
    user_name: str
    is_admin: bool
    created_at: datetime


# =============================================================================
# NOTIFICATIONS
# =============================================================================


class NotificationResponse(CampusCareBaseModel):
    id: str
    recipient: str
    type: NotificationType
    read: bool
    title: str
    content: str
    report_id: str | None = None
    user_id: str | None = None
    created_at: datetime


class MarkReadResponse(CampusCareBaseModel):
    updated: int


# =============================================================================
# STATISTICS
# =============================================================================


class StatusCountsResponse(CampusCareBaseModel):
    total: int
    submitted: int
    in_progress: int
    resolved: int


class CategoryDatumResponse(CampusCareBaseModel):
    name: str
    value: int


class TimelineDayResponse(CampusCareBaseModel):
    date: str  # YYYY-MM-DD
    label: str
    reports: int
    resolved: int


class InsightsResponse(CampusCareBaseModel):
    """Admin insights: totals, category chart and the recent timeline."""

    stats: StatusCountsResponse
    categories: list[CategoryDatumResponse]
    timeline: list[TimelineDayResponse]


class DashboardResponse(CampusCareBaseModel):
    """Admin dashboard cards."""

    total_reports: int
    pending_reports: int
    resolved_reports: int
    total_users: int
    recent_reports: list[ReportResponse]


class ReporterDashboardResponse(CampusCareBaseModel):
    """A reporter's own counts and their latest reports."""

    stats: StatusCountsResponse
    recent_reports: list[ReportResponse]
