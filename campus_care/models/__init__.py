"""SQLAlchemy ORM Models for CampusCare."""

from .base import Base, CreatedAtMixin, IdMixin, new_id
from .models import (
    # Enums
    ADMIN_RECIPIENT,
    NotificationType,
    ReportCategory,
    ReportStatus,
    # Tables
    Notification,
    Report,
    ReportComment,
)

__all__ = [
    # Base
    "Base",
    "IdMixin",
    "CreatedAtMixin",
    "new_id",
    # Enums
    "ReportStatus",
    "ReportCategory",
    "NotificationType",
    "ADMIN_RECIPIENT",
    # Tables
    "Report",
    "ReportComment",
    "Notification",
]
