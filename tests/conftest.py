"""Shared fixtures: an in-memory SQLite primary store, principals and store doubles."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from campus_care.core.database import init_db
from campus_care.core.errors import BackendUnavailableError
from campus_care.core.security import Principal, Role
from campus_care.models import ReportCategory, ReportStatus, new_id
from campus_care.stores import (
    CommentRecord,
    NotificationRecord,
    ReportRecord,
    ReportStore,
    SqlReportStore,
)

BASE_TIME = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


# =============================================================================
# STORE DOUBLE
# =============================================================================


class InMemoryReportStore(ReportStore):
    """Dict-backed store. ``failures`` maps an operation name to the error it raises."""

    def __init__(self, name: str = "memory"):
        self.name = name
        self.reports: dict[str, ReportRecord] = {}
        self.comments: list[CommentRecord] = []
        self.notifications: list[NotificationRecord] = []
        self.failures: dict[str, Exception] = {}
        self.calls: list[str] = []

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.failures:
            raise self.failures[operation]

    async def create_report(self, report):
        self._enter("create_report")
        saved = replace(report, id=report.id or new_id())
        self.reports[saved.id] = saved
        return saved

    async def get_report(self, report_id):
        self._enter("get_report")
        return self.reports.get(report_id)

    async def list_reports(self, reported_by=None):
        self._enter("list_reports")
        reports = [r for r in self.reports.values() if reported_by is None or r.reported_by == reported_by]
        return sorted(reports, key=lambda r: r.created_at, reverse=True)

    async def update_report_status(self, report_id, status, updated_at):
        self._enter("update_report_status")
        if report_id not in self.reports:
            raise BackendUnavailableError(f"Report {report_id} was not updated in {self.name}")
        self.reports[report_id] = self.reports[report_id].with_status(status, updated_at)

    async def delete_report(self, report_id):
        self._enter("delete_report")
        if self.reports.pop(report_id, None) is None:
            raise BackendUnavailableError(f"Report {report_id} was not deleted from {self.name}")

    async def create_comment(self, comment):
        self._enter("create_comment")
        saved = replace(comment, id=comment.id or new_id())
        self.comments.append(saved)
        return saved

    async def list_comments(self, report_id):
        self._enter("list_comments")
        return sorted((c for c in self.comments if c.report_id == report_id), key=lambda c: c.created_at)

    async def delete_comments(self, report_id):
        self._enter("delete_comments")
        before = len(self.comments)
        self.comments = [c for c in self.comments if c.report_id != report_id]
        return before - len(self.comments)

    async def create_notification(self, notification):
        self._enter("create_notification")
        saved = replace(notification, id=notification.id or new_id())
        self.notifications.append(saved)
        return saved

    async def list_notifications(self, recipients, unread_only=False):
        self._enter("list_notifications")
        found = [
            n for n in self.notifications
            if n.recipient in recipients and not (unread_only and n.read)
        ]
        return sorted(found, key=lambda n: n.created_at, reverse=True)

    async def mark_notifications_read(self, recipients):
        self._enter("mark_notifications_read")
        updated = 0
        for i, n in enumerate(self.notifications):
            if n.recipient in recipients and not n.read:
                self.notifications[i] = replace(n, read=True)
                updated += 1
        return updated

    async def delete_notifications(self, report_id):
        self._enter("delete_notifications")
        before = len(self.notifications)
        self.notifications = [n for n in self.notifications if n.report_id != report_id]
        return before - len(self.notifications)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
async def engine():
    """A fresh in-memory SQLite database with the schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def sql_store(session_factory) -> SqlReportStore:
    return SqlReportStore(session_factory)


@pytest.fixture
def memory_store() -> InMemoryReportStore:
    return InMemoryReportStore()


@pytest.fixture
def reporter() -> Principal:
    return Principal(
        uid="student-1",
        display_name="Asha Patil",
        email="asha@pccoepune.org",
        role=Role.REPORTER,
    )


@pytest.fixture
def other_reporter() -> Principal:
    return Principal(
        uid="student-2",
        display_name="Rohan Deshmukh",
        email="rohan@pccoepune.org",
        role=Role.REPORTER,
    )


@pytest.fixture
def admin() -> Principal:
    return Principal(
        uid="admin-1",
        display_name="Campus Admin",
        email="admin@pccoepune.org",
        role=Role.ADMIN,
    )


@pytest.fixture
def make_report():
    """Build a ReportRecord; keyword arguments override the defaults."""

    def _make(**overrides) -> ReportRecord:
        fields = dict(
            title="Broken light",
            description="The light outside block C flickers all night",
            category=ReportCategory.ELECTRICAL,
            location="Block C",
            status=ReportStatus.SUBMITTED,
            created_at=BASE_TIME,
            updated_at=BASE_TIME,
            reported_by="student-1",
            reporter_name="Asha Patil",
            reporter_email="asha@pccoepune.org",
        )
        fields.update(overrides)
        if "created_at" in overrides and "updated_at" not in overrides:
            fields["updated_at"] = fields["created_at"]
        return ReportRecord(**fields)

    return _make


@pytest.fixture
def report_set(make_report) -> list[ReportRecord]:
    """Three reports from two reporters on consecutive days."""
    return [
        make_report(id="r1", title="Broken light", created_at=BASE_TIME),
        make_report(
            id="r2",
            title="Pothole",
            description="Deep pothole near the gate",
            category=ReportCategory.INFRASTRUCTURE,
            location="Main gate",
            status=ReportStatus.IN_PROGRESS,
            created_at=BASE_TIME + timedelta(days=1),
        ),
        make_report(
            id="r3",
            title="Overflowing bin",
            description="Bin has not been emptied this week",
            category=ReportCategory.SANITATION,
            location="Canteen",
            status=ReportStatus.RESOLVED,
            created_at=BASE_TIME + timedelta(days=2),
            reported_by="student-2",
            reporter_name="Rohan Deshmukh",
            reporter_email="rohan@pccoepune.org",
        ),
    ]


@pytest.fixture
def make_store():
    """Factory for additional named in-memory stores (fallback chains)."""
    return InMemoryReportStore
