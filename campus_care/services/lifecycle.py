"""
Report Lifecycle: filing, reading, triaging, cancelling and commenting.

Status moves between submitted, in-progress and resolved. Only
administrators change it, and any status may move to any other. A new
report always starts as submitted.

Side effects per operation:
- create: optional image upload, insert, admin notification
- update status: write (with fallback), reporter notification
- cancel: comments -> notifications -> report, each step best-effort
  except the report delete itself
- comment: insert, reporter notification when an admin comments
"""

import logging
from dataclasses import dataclass, field

from ..core.errors import (
    BackendUnavailableError,
    CampusCareError,
    ForbiddenError,
    ReportNotFoundError,
    StorageUnavailableError,
    ValidationError,
)
from ..core.security import AuthorizationPolicy, Principal
from ..models import NotificationType, ReportCategory, ReportStatus
from ..stores.base import CommentRecord, ReportRecord, ReportStore, utcnow
from ..stores.storage import SupabaseStorage, build_object_path
from .notifications import NotificationFanout
from .realtime import ChangeType, ReportChange, ReportChangeFeed
from .setup import SetupState
from .views import ViewParams, apply_view

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "description", "category", "location")


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class ReportSubmission:
    """What a reporter fills in on the new-report form."""
    title: str
    description: str
    category: str
    location: str


@dataclass
class ImageUpload:
    """An image attached to a submission."""
    filename: str
    content: bytes
    content_type: str | None = None


@dataclass
class SubmissionResult:
    report: ReportRecord
    warnings: list[str] = field(default_factory=list)


@dataclass
class StatusChangeResult:
    report: ReportRecord
    changed: bool


# =============================================================================
# VALIDATION
# =============================================================================


def validate_submission(submission: ReportSubmission) -> ReportCategory:
    """Reject blank required fields and unknown categories before any I/O."""
    field_errors: dict[str, str] = {}
    for name in REQUIRED_FIELDS:
        value = getattr(submission, name)
        if value is None or not str(value).strip():
            field_errors[name] = "This field is required"

    category = None
    if "category" not in field_errors:
        try:
            category = ReportCategory(submission.category.strip().lower())
        except ValueError:
            allowed = ", ".join(c.value for c in ReportCategory)
            field_errors["category"] = f"Must be one of: {allowed}"

    if field_errors:
        raise ValidationError("Please fill all required fields", field_errors=field_errors)
    return category


def parse_status(value: str) -> ReportStatus:
    try:
        return ReportStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ReportStatus)
        raise ValidationError(
            f"Invalid status '{value}'",
            field_errors={"status": f"Must be one of: {allowed}"},
        )


# =============================================================================
# LIFECYCLE
# =============================================================================


class ReportLifecycle:
    """Owns every state change a report goes through."""

    def __init__(
        self,
        store: ReportStore,
        notifier: NotificationFanout,
        storage: SupabaseStorage | None = None,
        setup: SetupState | None = None,
        policy: AuthorizationPolicy | None = None,
        feed: ReportChangeFeed | None = None,
    ):
        self._store = store
        self._notifier = notifier
        self._storage = storage
        self._setup = setup or SetupState()
        self._policy = policy or AuthorizationPolicy()
        self._feed = feed

    @property
    def setup(self) -> SetupState:
        return self._setup

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create_report(
        self,
        principal: Principal,
        submission: ReportSubmission,
        image: ImageUpload | None = None,
    ) -> SubmissionResult:
        """
        File a new report.

        Flow:
        1. Refuse immediately if a setup failure is already known
        2. Validate the form
        3. Upload the image (bucket missing aborts, other failures drop the image)
        4. Insert with status forced to submitted
        5. Queue the admin notification
        """
        blocked = self._setup.blocked_error()
        if blocked is not None:
            raise blocked

        category = validate_submission(submission)

        warnings: list[str] = []
        image_url = None
        if image is not None:
            image_url = await self._upload_image(principal, image, warnings)

        now = utcnow()
        record = ReportRecord(
            title=submission.title.strip(),
            description=submission.description.strip(),
            category=category,
            location=submission.location.strip(),
            status=ReportStatus.SUBMITTED,
            image_url=image_url,
            created_at=now,
            updated_at=now,
            reported_by=principal.uid or "anonymous",
            reporter_name=principal.display_name or "Anonymous User",
            reporter_email=principal.email or "no-email@example.com",
        )

        try:
            saved = await self._store.create_report(record)
        except CampusCareError as e:
            logger.error(f"Error inserting report: {e.message}")
            error = self._setup.record_insert_failure(e)
            if error is e:
                raise
            raise error from e

        logger.info(f"Report {saved.id} submitted by {saved.reported_by}")
        self._notifier.notify(NotificationType.NEW_REPORT, saved)
        self._publish("reports", ChangeType.INSERT, saved)
        return SubmissionResult(report=saved, warnings=warnings)

    async def _upload_image(
        self,
        principal: Principal,
        image: ImageUpload,
        warnings: list[str],
    ) -> str | None:
        if self._storage is None or self._setup.storage_missing:
            raise self._setup.record_storage_missing()

        path = build_object_path(principal.uid, image.filename, utcnow())
        try:
            return await self._storage.upload(path, image.content, image.content_type)
        except StorageUnavailableError:
            raise self._setup.record_storage_missing()
        except BackendUnavailableError as e:
            logger.warning(f"Image upload failed, submitting without image: {e.message}")
            warnings.append("The image could not be uploaded; the report was submitted without it.")
            return None

    # =========================================================================
    # READ
    # =========================================================================

    async def get_report(self, principal: Principal, report_id: str) -> ReportRecord:
        """Fetch one report the principal may see."""
        report = await self._store.get_report(report_id)
        if report is None:
            raise ReportNotFoundError("Report not found")
        if not self._policy.can_view(principal, report.reported_by):
            raise ForbiddenError("You can only view your own reports")
        return report

    async def list_reports(
        self,
        principal: Principal,
        params: ViewParams | None = None,
        mine: bool = True,
    ) -> list[ReportRecord]:
        """Reporters always get their own reports; admins may ask for all."""
        reported_by = principal.uid if (mine or not principal.is_admin) else None
        reports = await self._store.list_reports(reported_by=reported_by)
        return apply_view(reports, params or ViewParams())

    async def all_reports(self, principal: Principal) -> list[ReportRecord]:
        if not principal.is_admin:
            raise ForbiddenError("Admin privileges required")
        return await self._store.list_reports()

    # =========================================================================
    # UPDATE STATUS
    # =========================================================================

    async def update_status(
        self,
        principal: Principal,
        report_id: str,
        status: str,
    ) -> StatusChangeResult:
        """Admin-only status change; a no-op when the status is unchanged."""
        if not self._policy.can_update_status(principal):
            logger.warning(f"Status change on {report_id} refused for non-admin {principal.uid}")
            raise ForbiddenError("Only administrators can update report status")

        new_status = parse_status(status)
        report = await self.get_report(principal, report_id)
        if report.status == new_status:
            return StatusChangeResult(report=report, changed=False)

        now = utcnow()
        await self._store.update_report_status(report_id, new_status, now)
        updated = report.with_status(new_status, now)

        logger.info(f"Report {report_id} status {report.status} -> {new_status} by {principal.uid}")
        self._notifier.notify_status_change(updated)
        self._publish("reports", ChangeType.UPDATE, updated)
        return StatusChangeResult(report=updated, changed=True)

    # =========================================================================
    # CANCEL
    # =========================================================================

    async def cancel_report(self, principal: Principal, report_id: str) -> ReportRecord:
        """Hard-delete the principal's own unresolved report and what hangs off it."""
        report = await self.get_report(principal, report_id)
        if not self._policy.can_cancel(
            principal,
            report.reported_by,
            report.status == ReportStatus.RESOLVED,
        ):
            raise ForbiddenError("Only the reporter can cancel a report that is not resolved")

        # Queued notifications about this report must not land after the cascade
        self._notifier.discard(report_id)
        for label, step in (
            ("comments", self._store.delete_comments),
            ("notifications", self._store.delete_notifications),
        ):
            try:
                removed = await step(report_id)
                logger.debug(f"Deleted {removed} {label} for report {report_id}")
            except CampusCareError as e:
                logger.warning(f"Could not delete {label} for report {report_id}: {e.message}")

        try:
            await self._store.delete_report(report_id)
        except CampusCareError as e:
            logger.error(f"Error cancelling report {report_id}: {e.message}")
            raise BackendUnavailableError("Failed to cancel report") from e

        if report.image_url and self._storage is not None:
            prefix = self._storage.public_url("")
            if report.image_url.startswith(prefix):
                await self._storage.remove([report.image_url[len(prefix):]])

        logger.info(f"Report {report_id} cancelled by {principal.uid}")
        self._publish("reports", ChangeType.DELETE, report)
        return report

    # =========================================================================
    # COMMENTS
    # =========================================================================

    async def add_comment(self, principal: Principal, report_id: str, content: str) -> CommentRecord:
        text = (content or "").strip()
        if not text:
            raise ValidationError(
                "Comment cannot be empty",
                field_errors={"content": "This field is required"},
            )

        report = await self.get_report(principal, report_id)
        comment = await self._store.create_comment(CommentRecord(
            report_id=report_id,
            content=text,
            user_id=principal.uid,
            user_name=principal.display_name or principal.email or "Anonymous User",
            is_admin=principal.is_admin,
            created_at=utcnow(),
        ))

        if principal.is_admin:
            self._notifier.notify(NotificationType.COMMENT, report)
        if self._feed is not None:
            self._feed.publish(ReportChange(
                table="report_comments",
                change_type=ChangeType.INSERT,
                record_id=comment.id,
                report_id=report_id,
                reported_by=report.reported_by,
            ))
        return comment

    async def list_comments(self, principal: Principal, report_id: str) -> list[CommentRecord]:
        await self.get_report(principal, report_id)
        return await self._store.list_comments(report_id)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _publish(self, table: str, change_type: ChangeType, report: ReportRecord) -> None:
        if self._feed is None:
            return
        self._feed.publish(ReportChange(
            table=table,
            change_type=change_type,
            record_id=report.id,
            report_id=report.id,
            reported_by=report.reported_by,
        ))
