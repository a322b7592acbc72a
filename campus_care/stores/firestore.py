"""Document store: the Firestore collections the app used before Supabase.

Only consulted as a fallback behind the relational store. The Firestore SDK
is blocking, so every call is pushed onto a worker thread.
"""

import asyncio
import logging
from datetime import datetime
from functools import partial

from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from ..core.errors import (
    BackendUnavailableError,
    CampusCareError,
    ConfigurationError,
    PolicyViolationError,
)
from ..models import ReportStatus
from .base import (
    CommentRecord,
    NotificationRecord,
    ReportRecord,
    ReportStore,
)

logger = logging.getLogger(__name__)

REPORTS = "reports"
COMMENTS = "report_comments"
NOTIFICATIONS = "notifications"

# Firestore caps batched writes at 500 operations
BATCH_LIMIT = 500


def classify_firestore_error(exc: Exception, collection: str) -> CampusCareError:
    """Reduce a Firestore failure to the error taxonomy."""
    if isinstance(exc, google_exceptions.PermissionDenied):
        return PolicyViolationError(f"Permission denied by Firestore rules on {collection}.")
    if isinstance(exc, google_exceptions.Unauthenticated):
        return ConfigurationError("Firestore rejected the service account credentials.")
    if isinstance(exc, google_exceptions.NotFound):
        return BackendUnavailableError(f"Document not found in {collection}.")
    return BackendUnavailableError(f"Firestore error on {collection}: {exc.__class__.__name__}")


class FirestoreReportStore(ReportStore):
    """Secondary store backed by ``firebase_admin.firestore``."""

    name = "firestore"

    def __init__(self, client):
        self._client = client

    async def _run(self, collection: str, func, *args, **kwargs):
        try:
            return await asyncio.to_thread(partial(func, *args, **kwargs))
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"[{self.name}] {collection} operation failed: {e}")
            raise classify_firestore_error(e, collection) from e

    def _delete_where(self, collection: str, field_name: str, value: str) -> int:
        docs = list(
            self._client.collection(collection)
            .where(filter=FieldFilter(field_name, "==", value))
            .stream()
        )
        for start in range(0, len(docs), BATCH_LIMIT):
            batch = self._client.batch()
            for doc in docs[start:start + BATCH_LIMIT]:
                batch.delete(doc.reference)
            batch.commit()
        return len(docs)

    # =========================================================================
    # REPORTS
    # =========================================================================

    async def create_report(self, report: ReportRecord) -> ReportRecord:
        def op() -> ReportRecord:
            ref = self._client.collection(REPORTS).document()
            ref.set(report.to_document())
            return ReportRecord.from_document(ref.id, report.to_document())

        return await self._run(REPORTS, op)

    async def get_report(self, report_id: str) -> ReportRecord | None:
        def op() -> ReportRecord | None:
            snapshot = self._client.collection(REPORTS).document(report_id).get()
            if not snapshot.exists:
                return None
            return ReportRecord.from_document(snapshot.id, snapshot.to_dict())

        return await self._run(REPORTS, op)

    async def list_reports(self, reported_by: str | None = None) -> list[ReportRecord]:
        def op() -> list[ReportRecord]:
            query = self._client.collection(REPORTS)
            if reported_by is not None:
                query = query.where(filter=FieldFilter("reportedBy", "==", reported_by))
            records = [
                ReportRecord.from_document(doc.id, doc.to_dict())
                for doc in query.stream()
            ]
            # Sorted here rather than with order_by: an equality filter plus
            # order_by would need a composite index.
            records.sort(key=lambda r: r.created_at, reverse=True)
            return records

        return await self._run(REPORTS, op)

    async def update_report_status(
        self,
        report_id: str,
        status: ReportStatus,
        updated_at: datetime,
    ) -> None:
        def op() -> None:
            self._client.collection(REPORTS).document(report_id).update({
                "status": ReportStatus(status).value,
                "updatedAt": updated_at,
            })

        await self._run(REPORTS, op)

    async def delete_report(self, report_id: str) -> None:
        def op() -> None:
            ref = self._client.collection(REPORTS).document(report_id)
            if not ref.get().exists:
                raise google_exceptions.NotFound(f"reports/{report_id}")
            ref.delete()

        await self._run(REPORTS, op)

    # =========================================================================
    # COMMENTS
    # =========================================================================

    async def create_comment(self, comment: CommentRecord) -> CommentRecord:
        def op() -> CommentRecord:
            ref = self._client.collection(COMMENTS).document()
            ref.set(comment.to_document())
            return CommentRecord.from_document(ref.id, comment.to_document())

        return await self._run(COMMENTS, op)

    async def list_comments(self, report_id: str) -> list[CommentRecord]:
        def op() -> list[CommentRecord]:
            query = self._client.collection(COMMENTS).where(
                filter=FieldFilter("reportId", "==", report_id)
            )
            records = [CommentRecord.from_document(doc.id, doc.to_dict()) for doc in query.stream()]
            records.sort(key=lambda c: c.created_at)
            return records

        return await self._run(COMMENTS, op)

    async def delete_comments(self, report_id: str) -> int:
        return await self._run(COMMENTS, self._delete_where, COMMENTS, "reportId", report_id)

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    async def create_notification(self, notification: NotificationRecord) -> NotificationRecord:
        def op() -> NotificationRecord:
            ref = self._client.collection(NOTIFICATIONS).document()
            ref.set(notification.to_document())
            return NotificationRecord.from_document(ref.id, notification.to_document())

        return await self._run(NOTIFICATIONS, op)

    async def list_notifications(
        self,
        recipients: list[str],
        unread_only: bool = False,
    ) -> list[NotificationRecord]:
        def op() -> list[NotificationRecord]:
            query = self._client.collection(NOTIFICATIONS).where(
                filter=FieldFilter("recipient", "in", recipients)
            )
            records = [
                NotificationRecord.from_document(doc.id, doc.to_dict())
                for doc in query.stream()
            ]
            if unread_only:
                records = [r for r in records if not r.read]
            records.sort(key=lambda n: n.created_at, reverse=True)
            return records

        return await self._run(NOTIFICATIONS, op)

    async def mark_notifications_read(self, recipients: list[str]) -> int:
        def op() -> int:
            docs = [
                doc
                for doc in self._client.collection(NOTIFICATIONS)
                .where(filter=FieldFilter("recipient", "in", recipients))
                .stream()
                if not doc.to_dict().get("read", False)
            ]
            for start in range(0, len(docs), BATCH_LIMIT):
                batch = self._client.batch()
                for doc in docs[start:start + BATCH_LIMIT]:
                    batch.update(doc.reference, {"read": True})
                batch.commit()
            return len(docs)

        return await self._run(NOTIFICATIONS, op)

    async def delete_notifications(self, report_id: str) -> int:
        return await self._run(
            NOTIFICATIONS, self._delete_where, NOTIFICATIONS, "reportId", report_id
        )
