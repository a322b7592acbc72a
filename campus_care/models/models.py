"""SQLAlchemy ORM Models for CampusCare.

These models map directly to the Supabase tables ``reports``,
``report_comments`` and ``notifications``.
"""

from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, Enum, Index, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin, IdMixin


# =============================================================================
# ENUMS
# =============================================================================


class ReportStatus(str, PyEnum):
    SUBMITTED = "submitted"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"


class ReportCategory(str, PyEnum):
    PARKING = "parking"
    INFRASTRUCTURE = "infrastructure"
    ELECTRICAL = "electrical"
    SANITATION = "sanitation"
    OTHER = "other"


class NotificationType(str, PyEnum):
    NEW_REPORT = "new_report"
    STATUS_UPDATE = "status_update"
    RESOLVED = "resolved"
    COMMENT = "comment"


# Recipient token for notifications addressed to every administrator
ADMIN_RECIPIENT = "admin"


def _enum_values(enum_cls):
    return [e.value for e in enum_cls]


# =============================================================================
# REPORTS
# =============================================================================


class Report(Base, IdMixin, CreatedAtMixin):
    """A campus issue filed by a reporter."""

    __tablename__ = "reports"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[ReportCategory] = mapped_column(
        Enum(
            ReportCategory,
            name="report_category",
            native_enum=False,
            length=32,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    location: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ReportStatus] = mapped_column(
        Enum(
            ReportStatus,
            name="report_status",
            native_enum=False,
            length=32,
            values_callable=_enum_values,
        ),
        default=ReportStatus.SUBMITTED,
        nullable=False,
    )
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)

    # Reporter identity is denormalized at creation time and never rewritten
    reported_by: Mapped[str] = mapped_column(String(128), nullable=False)
    reporter_name: Mapped[str] = mapped_column(String(255), nullable=False)
    reporter_email: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        Index("idx_reports_reported_by", "reported_by"),
        Index("idx_reports_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Report {self.id} [{self.status}] {self.title!r}>"


class ReportComment(Base, IdMixin, CreatedAtMixin):
    """Immutable remark on a report."""

    __tablename__ = "report_comments"

    report_id: Mapped[str] = mapped_column(String(36), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("idx_report_comments_report", "report_id", "created_at"),
    )


# =============================================================================
# NOTIFICATIONS
# =============================================================================


class Notification(Base, IdMixin, CreatedAtMixin):
    """Best-effort side-channel message for an admin or a reporter."""

    __tablename__ = "notifications"

    recipient: Mapped[str] = mapped_column(String(128), nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        Enum(
            NotificationType,
            name="notification_type",
            native_enum=False,
            length=32,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    read: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    report_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    user_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    __table_args__ = (
        Index("idx_notifications_recipient", "recipient", "read"),
        Index("idx_notifications_report", "report_id"),
    )
