"""Relational store: reports, comments and notifications in Supabase Postgres."""

import logging
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.errors import (
    BackendUnavailableError,
    CampusCareError,
    PolicyViolationError,
    SchemaMissingError,
)
from ..models import Notification, Report, ReportComment, ReportStatus
from .base import (
    CommentRecord,
    NotificationRecord,
    ReportRecord,
    ReportStore,
    ensure_aware,
)

logger = logging.getLogger(__name__)

# Postgres SQLSTATE codes
UNDEFINED_TABLE = "42P01"
INSUFFICIENT_PRIVILEGE = "42501"


def _sqlstate(exc: SQLAlchemyError) -> str | None:
    """Pull the SQLSTATE out of a wrapped DBAPI error, if there is one."""
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def classify_sql_error(exc: SQLAlchemyError, table: str) -> CampusCareError:
    """Reduce a SQLAlchemy failure to the error taxonomy."""
    code = _sqlstate(exc) if isinstance(exc, DBAPIError) else None
    if code == UNDEFINED_TABLE:
        return SchemaMissingError(f"The {table} table does not exist in the database.")
    if code == INSUFFICIENT_PRIVILEGE:
        return PolicyViolationError(
            f"Permission denied: row-level security policy violation on {table}."
        )
    return BackendUnavailableError(f"Database error on {table}: {exc.__class__.__name__}")


def _report_record(row: Report) -> ReportRecord:
    return ReportRecord(
        id=row.id,
        title=row.title,
        description=row.description,
        category=row.category,
        location=row.location,
        status=row.status,
        image_url=row.image_url,
        created_at=ensure_aware(row.created_at),
        updated_at=ensure_aware(row.updated_at),
        reported_by=row.reported_by,
        reporter_name=row.reporter_name,
        reporter_email=row.reporter_email,
    )


def _comment_record(row: ReportComment) -> CommentRecord:
    return CommentRecord(
        id=row.id,
        report_id=row.report_id,
        content=row.content,
        user_id=row.user_id,
        user_name=row.user_name,
        is_admin=row.is_admin,
        created_at=ensure_aware(row.created_at),
    )


def _notification_record(row: Notification) -> NotificationRecord:
    return NotificationRecord(
        id=row.id,
        recipient=row.recipient,
        type=row.type,
        title=row.title,
        content=row.content,
        report_id=row.report_id,
        user_id=row.user_id,
        read=row.read,
        created_at=ensure_aware(row.created_at),
    )


class SqlReportStore(ReportStore):
    """Primary store backed by async SQLAlchemy.

    Every call runs in its own short transaction: commit on success,
    rollback on any failure.
    """

    name = "postgres"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _run(self, table: str, operation):
        async with self._session_factory() as session:
            try:
                result = await operation(session)
                await session.commit()
                return result
            except SQLAlchemyError as e:
                await session.rollback()
                error = classify_sql_error(e, table)
                logger.error(f"[{self.name}] {table} operation failed: {e}")
                raise error from e

    # =========================================================================
    # REPORTS
    # =========================================================================

    async def create_report(self, report: ReportRecord) -> ReportRecord:
        async def op(session: AsyncSession) -> ReportRecord:
            row = Report(**report.to_row())
            session.add(row)
            await session.flush()
            return _report_record(row)

        return await self._run("reports", op)

    async def get_report(self, report_id: str) -> ReportRecord | None:
        async def op(session: AsyncSession) -> ReportRecord | None:
            result = await session.execute(select(Report).where(Report.id == report_id))
            row = result.scalar_one_or_none()
            return _report_record(row) if row else None

        return await self._run("reports", op)

    async def list_reports(self, reported_by: str | None = None) -> list[ReportRecord]:
        async def op(session: AsyncSession) -> list[ReportRecord]:
            query = select(Report)
            if reported_by is not None:
                query = query.where(Report.reported_by == reported_by)
            query = query.order_by(Report.created_at.desc())
            result = await session.execute(query)
            return [_report_record(row) for row in result.scalars().all()]

        return await self._run("reports", op)

    async def update_report_status(
        self,
        report_id: str,
        status: ReportStatus,
        updated_at: datetime,
    ) -> None:
        async def op(session: AsyncSession) -> int:
            result = await session.execute(
                update(Report)
                .where(Report.id == report_id)
                .values(status=status, updated_at=updated_at)
            )
            return result.rowcount

        updated = await self._run("reports", op)
        if not updated:
            raise BackendUnavailableError(f"Report {report_id} was not updated in {self.name}")

    async def delete_report(self, report_id: str) -> None:
        async def op(session: AsyncSession) -> int:
            result = await session.execute(delete(Report).where(Report.id == report_id))
            return result.rowcount

        deleted = await self._run("reports", op)
        if not deleted:
            raise BackendUnavailableError(f"Report {report_id} was not deleted from {self.name}")

    # =========================================================================
    # COMMENTS
    # =========================================================================

    async def create_comment(self, comment: CommentRecord) -> CommentRecord:
        async def op(session: AsyncSession) -> CommentRecord:
            row = ReportComment(**comment.to_row())
            session.add(row)
            await session.flush()
            return _comment_record(row)

        return await self._run("report_comments", op)

    async def list_comments(self, report_id: str) -> list[CommentRecord]:
        async def op(session: AsyncSession) -> list[CommentRecord]:
            result = await session.execute(
                select(ReportComment)
                .where(ReportComment.report_id == report_id)
                .order_by(ReportComment.created_at.asc())
            )
            return [_comment_record(row) for row in result.scalars().all()]

        return await self._run("report_comments", op)

    async def delete_comments(self, report_id: str) -> int:
        async def op(session: AsyncSession) -> int:
            result = await session.execute(
                delete(ReportComment).where(ReportComment.report_id == report_id)
            )
            return result.rowcount

        return await self._run("report_comments", op)

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    async def create_notification(self, notification: NotificationRecord) -> NotificationRecord:
        async def op(session: AsyncSession) -> NotificationRecord:
            row = Notification(**notification.to_row())
            session.add(row)
            await session.flush()
            return _notification_record(row)

        return await self._run("notifications", op)

    async def list_notifications(
        self,
        recipients: list[str],
        unread_only: bool = False,
    ) -> list[NotificationRecord]:
        async def op(session: AsyncSession) -> list[NotificationRecord]:
            query = select(Notification).where(Notification.recipient.in_(recipients))
            if unread_only:
                query = query.where(Notification.read.is_(False))
            query = query.order_by(Notification.created_at.desc())
            result = await session.execute(query)
            return [_notification_record(row) for row in result.scalars().all()]

        return await self._run("notifications", op)

    async def mark_notifications_read(self, recipients: list[str]) -> int:
        async def op(session: AsyncSession) -> int:
            result = await session.execute(
                update(Notification)
                .where(
                    Notification.recipient.in_(recipients),
                    Notification.read.is_(False),
                )
                .values(read=True)
            )
            return result.rowcount

        return await self._run("notifications", op)

    async def delete_notifications(self, report_id: str) -> int:
        async def op(session: AsyncSession) -> int:
            result = await session.execute(
                delete(Notification).where(Notification.report_id == report_id)
            )
            return result.rowcount

        return await self._run("notifications", op)
