"""Backend-neutral records and the persistence interface.

Both backends speak in these records. The relational store maps them to
snake_case columns; the document store maps them to camelCase fields.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from ..models import NotificationType, ReportCategory, ReportStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime | None) -> datetime | None:
    """Treat naive timestamps coming back from a backend as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# RECORDS
# =============================================================================


@dataclass
class ReportRecord:
    """A report as every backend sees it."""
    title: str
    description: str
    category: ReportCategory
    location: str
    status: ReportStatus
    created_at: datetime
    updated_at: datetime
    reported_by: str
    reporter_name: str
    reporter_email: str
    image_url: str | None = None
    id: str | None = None

    def to_row(self) -> dict[str, Any]:
        row = asdict(self)
        if row["id"] is None:
            del row["id"]
        return row

    def to_document(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "category": ReportCategory(self.category).value,
            "location": self.location,
            "status": ReportStatus(self.status).value,
            "imageUrl": self.image_url,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "reportedBy": self.reported_by,
            "reporterName": self.reporter_name,
            "reporterEmail": self.reporter_email,
        }

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "ReportRecord":
        created_at = ensure_aware(data.get("createdAt"))
        return cls(
            id=doc_id,
            title=data.get("title", ""),
            description=data.get("description", ""),
            category=ReportCategory(data.get("category", ReportCategory.OTHER.value)),
            location=data.get("location", ""),
            status=ReportStatus(data.get("status", ReportStatus.SUBMITTED.value)),
            image_url=data.get("imageUrl"),
            created_at=created_at,
            updated_at=ensure_aware(data.get("updatedAt")) or created_at,
            reported_by=data.get("reportedBy", ""),
            reporter_name=data.get("reporterName", ""),
            reporter_email=data.get("reporterEmail", ""),
        )

    def with_status(self, status: ReportStatus, updated_at: datetime) -> "ReportRecord":
        return replace(self, status=status, updated_at=updated_at)


@dataclass
class CommentRecord:
    """An immutable comment on a report."""
    report_id: str
    content: str
    user_id: str
    user_name: str
    is_admin: bool
    created_at: datetime
    id: str | None = None

    def to_row(self) -> dict[str, Any]:
        row = asdict(self)
        if row["id"] is None:
            del row["id"]
        return row

    def to_document(self) -> dict[str, Any]:
        return {
            "reportId": self.report_id,
            "content": self.content,
            "userId": self.user_id,
            "userName": self.user_name,
            "isAdmin": self.is_admin,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "CommentRecord":
        return cls(
            id=doc_id,
            report_id=data.get("reportId", ""),
            content=data.get("content", ""),
            user_id=data.get("userId", ""),
            user_name=data.get("userName", ""),
            is_admin=bool(data.get("isAdmin", False)),
            created_at=ensure_aware(data.get("createdAt")),
        )


@dataclass
class NotificationRecord:
    """A best-effort notification addressed to ``admin`` or a reporter id."""
    recipient: str
    type: NotificationType
    title: str
    content: str
    created_at: datetime = field(default_factory=utcnow)
    report_id: str | None = None
    user_id: str | None = None
    read: bool = False
    id: str | None = None

    def to_row(self) -> dict[str, Any]:
        row = asdict(self)
        if row["id"] is None:
            del row["id"]
        return row

    def to_document(self) -> dict[str, Any]:
        return {
            "recipient": self.recipient,
            "type": NotificationType(self.type).value,
            "title": self.title,
            "content": self.content,
            "reportId": self.report_id,
            "userId": self.user_id,
            "read": self.read,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "NotificationRecord":
        return cls(
            id=doc_id,
            recipient=data.get("recipient", ""),
            type=NotificationType(data.get("type", NotificationType.STATUS_UPDATE.value)),
            title=data.get("title", ""),
            content=data.get("content", ""),
            report_id=data.get("reportId"),
            user_id=data.get("userId"),
            read=bool(data.get("read", False)),
            created_at=ensure_aware(data.get("createdAt")),
        )


# =============================================================================
# STORE INTERFACE
# =============================================================================


class ReportStore(ABC):
    """Persistence operations every backend provides.

    Implementations raise only ``CampusCareError`` subclasses; vendor
    exceptions never escape a store.
    """

    name: str = "store"

    # Reports

    @abstractmethod
    async def create_report(self, report: ReportRecord) -> ReportRecord:
        """Insert a report and return it with its assigned id."""

    @abstractmethod
    async def get_report(self, report_id: str) -> ReportRecord | None:
        """Fetch one report, or None when it does not exist."""

    @abstractmethod
    async def list_reports(self, reported_by: str | None = None) -> list[ReportRecord]:
        """List reports newest first, optionally only one reporter's."""

    @abstractmethod
    async def update_report_status(
        self,
        report_id: str,
        status: ReportStatus,
        updated_at: datetime,
    ) -> None:
        pass

    @abstractmethod
    async def delete_report(self, report_id: str) -> None:
        pass

    # Comments

    @abstractmethod
    async def create_comment(self, comment: CommentRecord) -> CommentRecord:
        pass

    @abstractmethod
    async def list_comments(self, report_id: str) -> list[CommentRecord]:
        """List a report's comments oldest first."""

    @abstractmethod
    async def delete_comments(self, report_id: str) -> int:
        pass

    # Notifications

    @abstractmethod
    async def create_notification(self, notification: NotificationRecord) -> NotificationRecord:
        pass

    @abstractmethod
    async def list_notifications(
        self,
        recipients: list[str],
        unread_only: bool = False,
    ) -> list[NotificationRecord]:
        """List notifications for any of ``recipients``, newest first."""

    @abstractmethod
    async def mark_notifications_read(self, recipients: list[str]) -> int:
        pass

    @abstractmethod
    async def delete_notifications(self, report_id: str) -> int:
        pass
