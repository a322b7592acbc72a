"""CampusCare API Schemas.

Schemas are organized by domain:
- base: base model configuration, error responses
- reports: reports, comments, notifications and statistics
"""

from .base import (
    # Base classes
    CampusCareBaseModel,
    # Errors
    ErrorDetail,
    ErrorResponse,
)
from .reports import (
    # Reports
    ReportResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
    SubmissionResponse,
    # Comments
    CommentCreate,
    CommentResponse,
    # Notifications
    MarkReadResponse,
    NotificationResponse,
    # Statistics
    CategoryDatumResponse,
    DashboardResponse,
    InsightsResponse,
    ReporterDashboardResponse,
    StatusCountsResponse,
    TimelineDayResponse,
)

__all__ = [
    "CampusCareBaseModel",
    "ErrorDetail",
    "ErrorResponse",
    "ReportResponse",
    "StatusUpdateRequest",
    "StatusUpdateResponse",
    "SubmissionResponse",
    "CommentCreate",
    "CommentResponse",
    "NotificationResponse",
    "MarkReadResponse",
    "StatusCountsResponse",
    "CategoryDatumResponse",
    "TimelineDayResponse",
    "InsightsResponse",
    "DashboardResponse",
    "ReporterDashboardResponse",
]
