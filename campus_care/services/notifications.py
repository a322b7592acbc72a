"""
Notification fan-out: best-effort messages about report lifecycle events.

Notifications are queued and written by a background worker, decoupled
from the operation that triggered them:
1. A full queue drops the message and records the drop
2. An insert failure is logged and recorded, never raised
3. No retries, no ordering guarantee relative to the triggering write
4. Messages about a cancelled report are never written, even if they
   were queued before the cancel
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime

from ..core.security import Principal
from ..models import ADMIN_RECIPIENT, NotificationType, ReportStatus
from ..stores.base import NotificationRecord, ReportRecord, ReportStore, utcnow

logger = logging.getLogger(__name__)


# =============================================================================
# MESSAGE BUILDING
# =============================================================================


def notification_type_for_status(status: ReportStatus) -> NotificationType | None:
    """Which notification a status change sends to the reporter, if any."""
    if status == ReportStatus.IN_PROGRESS:
        return NotificationType.STATUS_UPDATE
    if status == ReportStatus.RESOLVED:
        return NotificationType.RESOLVED
    return None


def build_notification(
    event_type: NotificationType,
    report: ReportRecord,
    now: datetime | None = None,
) -> NotificationRecord:
    """Build the notification record for an event on ``report``."""
    now = now or utcnow()

    if event_type == NotificationType.NEW_REPORT:
        return NotificationRecord(
            recipient=ADMIN_RECIPIENT,
            type=event_type,
            title=f"New report: {report.title}",
            content=f"A new report has been submitted by {report.reporter_name or 'a user'}",
            report_id=report.id,
            user_id=report.reported_by,
            created_at=now,
        )

    if event_type == NotificationType.STATUS_UPDATE:
        title = "Report status updated"
        content = f'Your report "{report.title}" is now in progress'
    elif event_type == NotificationType.RESOLVED:
        title = "Report resolved"
        content = f'Your report "{report.title}" has been resolved'
    else:
        title = "New comment on your report"
        content = f'An administrator commented on "{report.title}"'

    return NotificationRecord(
        recipient=report.reported_by,
        type=event_type,
        title=title,
        content=content,
        report_id=report.id,
        user_id=report.reported_by,
        created_at=now,
    )


def recipients_for(principal: Principal) -> list[str]:
    """Inbox addresses: admins also read the shared admin inbox."""
    if principal.is_admin:
        return [ADMIN_RECIPIENT, principal.uid]
    return [principal.uid]


# =============================================================================
# FAN-OUT
# =============================================================================


@dataclass
class DeliveryFailure:
    """A notification that was dropped or failed to insert."""
    notification: NotificationRecord
    reason: str
    failed_at: datetime


class NotificationFanout:
    """
    Fire-and-forget notification writer.

    ``notify`` never raises and never waits on the backend. A single worker
    task (started with the app) drains the queue; ``drain`` delivers
    everything pending inline.
    """

    def __init__(
        self,
        store: ReportStore,
        max_pending: int = 100,
        failure_log_size: int = 200,
    ):
        self._store = store
        self._queue: asyncio.Queue[NotificationRecord] = asyncio.Queue(maxsize=max_pending)
        self._worker: asyncio.Task | None = None
        self.failures: deque[DeliveryFailure] = deque(maxlen=failure_log_size)
        self.delivered = 0
        # Report ids cancelled while their notifications may still be queued.
        # Oldest entries fall off once the log is full.
        self._cancelled: dict[str, None] = {}
        self._cancelled_limit = max(max_pending * 10, 1000)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    # =========================================================================
    # PUBLISHING
    # =========================================================================

    def notify(self, event_type: NotificationType, report: ReportRecord) -> bool:
        """Queue a notification about ``report``. Returns False if dropped."""
        notification = build_notification(event_type, report)
        try:
            self._queue.put_nowait(notification)
        except asyncio.QueueFull:
            self._record_failure(notification, "notification queue full")
            return False
        return True

    def notify_status_change(self, report: ReportRecord) -> bool:
        event_type = notification_type_for_status(report.status)
        if event_type is None:
            return False
        return self.notify(event_type, report)

    # =========================================================================
    # DELIVERY
    # =========================================================================

    async def deliver(self, notification: NotificationRecord) -> bool:
        """Insert one notification, swallowing any failure."""
        if self._is_cancelled(notification):
            logger.debug(f"Skipping {notification.type} for cancelled report {notification.report_id}")
            return False
        try:
            await self._store.create_notification(notification)
        except Exception as e:
            self._record_failure(notification, f"{e.__class__.__name__}: {e}")
            return False
        if self._is_cancelled(notification):
            # The report was cancelled while the insert was in flight
            await self._purge(notification.report_id)
            return False
        self.delivered += 1
        logger.debug(f"Notification sent to {notification.recipient}: {notification.title}")
        return True

    def discard(self, report_id: str) -> None:
        """Stop delivering notifications about ``report_id``, queued or future."""
        self._cancelled[report_id] = None
        while len(self._cancelled) > self._cancelled_limit:
            del self._cancelled[next(iter(self._cancelled))]

    def _is_cancelled(self, notification: NotificationRecord) -> bool:
        return notification.report_id is not None and notification.report_id in self._cancelled

    async def _purge(self, report_id: str) -> None:
        try:
            await self._store.delete_notifications(report_id)
        except Exception as e:
            logger.warning(f"Could not remove late notifications for report {report_id}: {e}")

    async def drain(self) -> int:
        """Deliver everything currently queued; returns how many were attempted."""
        attempted = 0
        while True:
            try:
                notification = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return attempted
            try:
                await self.deliver(notification)
            finally:
                self._queue.task_done()
            attempted += 1

    async def _run(self) -> None:
        while True:
            notification = await self._queue.get()
            try:
                await self.deliver(notification)
            finally:
                self._queue.task_done()

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="notification-fanout")
            logger.info("Notification worker started")

    async def stop(self) -> None:
        """Stop the worker after flushing what is already queued."""
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        flushed = await self.drain()
        if flushed:
            logger.info(f"Flushed {flushed} pending notifications on shutdown")

    def _record_failure(self, notification: NotificationRecord, reason: str) -> None:
        logger.error(
            f"Failed to send {notification.type} notification to "
            f"{notification.recipient}: {reason}"
        )
        self.failures.append(
            DeliveryFailure(notification=notification, reason=reason, failed_at=utcnow())
        )

    # =========================================================================
    # INBOX
    # =========================================================================

    async def list_for(self, principal: Principal, unread_only: bool = False) -> list[NotificationRecord]:
        return await self._store.list_notifications(recipients_for(principal), unread_only)

    async def mark_all_read(self, principal: Principal) -> int:
        return await self._store.mark_notifications_read(recipients_for(principal))
