"""Ordered provider chain: try the primary store, then each fallback in turn."""

import logging
from datetime import datetime

from ..core.errors import (
    CampusCareError,
    ConfigurationError,
    ReportNotFoundError,
)
from ..models import ReportStatus
from .base import (
    CommentRecord,
    NotificationRecord,
    ReportRecord,
    ReportStore,
)

logger = logging.getLogger(__name__)


class FallbackReportStore(ReportStore):
    """A ``ReportStore`` over an explicit, ordered list of providers.

    Single-report reads, status updates and report deletes walk the list
    until one provider succeeds. Everything else (creates, lists,
    comments, notifications) goes to the primary only.
    """

    name = "fallback"

    def __init__(self, stores: list[ReportStore]):
        if not stores:
            raise ConfigurationError(
                "No data backend is configured. Set DATABASE_URL, SUPABASE_URL "
                "and SUPABASE_ANON_KEY."
            )
        self._stores = list(stores)

    @property
    def providers(self) -> list[ReportStore]:
        return list(self._stores)

    @property
    def primary(self) -> ReportStore:
        return self._stores[0]

    async def _first_success(self, operation: str, call):
        """Run ``call(store)`` on each provider until one returns."""
        first_error: CampusCareError | None = None
        for store in self._stores:
            try:
                return await call(store)
            except CampusCareError as e:
                if first_error is None:
                    first_error = e
                logger.warning(
                    f"{operation} failed on {store.name} ({e.kind.value}): {e.message}; "
                    f"trying next provider"
                )
        raise first_error

    # =========================================================================
    # REPORTS
    # =========================================================================

    async def create_report(self, report: ReportRecord) -> ReportRecord:
        return await self.primary.create_report(report)

    async def get_report(self, report_id: str) -> ReportRecord | None:
        """Return the first provider's copy; raise if nobody has it."""
        for store in self._stores:
            try:
                report = await store.get_report(report_id)
            except CampusCareError as e:
                logger.warning(
                    f"get_report({report_id}) failed on {store.name} ({e.kind.value}); "
                    f"trying next provider"
                )
                continue
            if report is not None:
                return report
            logger.info(f"Report {report_id} not in {store.name}")
        raise ReportNotFoundError("Report not found")

    async def list_reports(self, reported_by: str | None = None) -> list[ReportRecord]:
        return await self.primary.list_reports(reported_by)

    async def update_report_status(
        self,
        report_id: str,
        status: ReportStatus,
        updated_at: datetime,
    ) -> None:
        async def call(store: ReportStore) -> None:
            await store.update_report_status(report_id, status, updated_at)

        await self._first_success(f"update_report_status({report_id})", call)

    async def delete_report(self, report_id: str) -> None:
        async def call(store: ReportStore) -> None:
            await store.delete_report(report_id)

        await self._first_success(f"delete_report({report_id})", call)

    # =========================================================================
    # COMMENTS & NOTIFICATIONS (primary only)
    # =========================================================================

    async def create_comment(self, comment: CommentRecord) -> CommentRecord:
        return await self.primary.create_comment(comment)

    async def list_comments(self, report_id: str) -> list[CommentRecord]:
        return await self.primary.list_comments(report_id)

    async def delete_comments(self, report_id: str) -> int:
        return await self.primary.delete_comments(report_id)

    async def create_notification(self, notification: NotificationRecord) -> NotificationRecord:
        return await self.primary.create_notification(notification)

    async def list_notifications(
        self,
        recipients: list[str],
        unread_only: bool = False,
    ) -> list[NotificationRecord]:
        return await self.primary.list_notifications(recipients, unread_only)

    async def mark_notifications_read(self, recipients: list[str]) -> int:
        return await self.primary.mark_notifications_read(recipients)

    async def delete_notifications(self, report_id: str) -> int:
        return await self.primary.delete_notifications(report_id)
