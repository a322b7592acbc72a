"""Persistence adapters for reports, comments and notifications."""

from .base import (
    CommentRecord,
    NotificationRecord,
    ReportRecord,
    ReportStore,
    utcnow,
)
from .fallback import FallbackReportStore
from .sql import SqlReportStore, classify_sql_error
from .storage import SupabaseStorage, build_object_path

__all__ = [
    # Records
    "ReportRecord",
    "CommentRecord",
    "NotificationRecord",
    "utcnow",
    # Stores
    "ReportStore",
    "SqlReportStore",
    "FallbackReportStore",
    "classify_sql_error",
    # Storage
    "SupabaseStorage",
    "build_object_path",
]
