"""
Tests for the Report Lifecycle - filing, triage, cancellation and comments.

These tests verify:
1. CREATE: validation before I/O, forced initial status, admin notification
2. SETUP: schema/policy failures block later submissions, bucket problems abort
3. STATUS: admin-only, no-op on unchanged status, reporter notification
4. CANCEL: owner-only, cascade survives comment/notification delete failures
5. COMMENTS: author stamping and admin-comment notification
"""

from types import SimpleNamespace

import pytest

from campus_care.core.errors import (
    BackendUnavailableError,
    ErrorKind,
    ForbiddenError,
    PolicyViolationError,
    ReportNotFoundError,
    SchemaMissingError,
    StorageUnavailableError,
    ValidationError,
)
from campus_care.core.security import AuthorizationPolicy, Principal
from campus_care.models import ADMIN_RECIPIENT, NotificationType, ReportCategory, ReportStatus
from campus_care.services.lifecycle import (
    ImageUpload,
    ReportLifecycle,
    ReportSubmission,
    validate_submission,
)
from campus_care.services.notifications import NotificationFanout
from campus_care.services.realtime import ChangeType, ReportChangeFeed
from campus_care.services.setup import SCHEMA_REMEDIATION, SetupState
from campus_care.stores import FallbackReportStore


# =============================================================================
# FIXTURES
# =============================================================================


class FakeStorage:
    """Records uploads; ``error`` makes the next upload fail."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.uploaded: list[str] = []
        self.removed: list[str] = []

    def public_url(self, path: str) -> str:
        return f"https://project.supabase.co/storage/v1/object/public/report123/{path}"

    async def upload(self, path, content, content_type=None):
        if self.error is not None:
            raise self.error
        self.uploaded.append(path)
        return self.public_url(path)

    async def remove(self, paths):
        self.removed.extend(paths)


@pytest.fixture
def submission() -> ReportSubmission:
    return ReportSubmission(
        title="Broken light",
        description="The light outside block C flickers all night",
        category="electrical",
        location="Block C",
    )


@pytest.fixture
def system(make_store):
    """A lifecycle over a two-provider chain of in-memory stores."""

    def _build(storage=None) -> SimpleNamespace:
        primary = make_store("postgres")
        secondary = make_store("firestore")
        fanout = NotificationFanout(primary)
        setup = SetupState()
        feed = ReportChangeFeed()
        lifecycle = ReportLifecycle(
            store=FallbackReportStore([primary, secondary]),
            notifier=fanout,
            storage=storage,
            setup=setup,
            policy=AuthorizationPolicy({"admin@pccoepune.org"}),
            feed=feed,
        )
        return SimpleNamespace(
            primary=primary,
            secondary=secondary,
            fanout=fanout,
            setup=setup,
            feed=feed,
            lifecycle=lifecycle,
        )

    return _build


# =============================================================================
# TEST: VALIDATION
# =============================================================================


class TestValidation:
    def test_every_blank_field_is_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_submission(ReportSubmission(title=" ", description="", category="", location="\t"))

        assert set(exc_info.value.field_errors) == {"title", "description", "category", "location"}

    def test_unknown_category_is_rejected(self, submission):
        submission.category = "weather"

        with pytest.raises(ValidationError) as exc_info:
            validate_submission(submission)

        assert set(exc_info.value.field_errors) == {"category"}

    def test_category_is_normalised(self, submission):
        submission.category = " Electrical "
        assert validate_submission(submission) == ReportCategory.ELECTRICAL

    async def test_invalid_submission_touches_no_backend(self, system, reporter):
        s = system()

        with pytest.raises(ValidationError):
            await s.lifecycle.create_report(
                reporter,
                ReportSubmission(title="", description="", category="", location=""),
            )

        assert s.primary.calls == []
        assert s.fanout.pending == 0


# =============================================================================
# TEST: CREATE REPORT
# =============================================================================


class TestCreateReport:
    async def test_create_forces_submitted_and_stamps_reporter(self, system, reporter, submission):
        s = system()

        result = await s.lifecycle.create_report(reporter, submission)

        report = result.report
        assert report.id in s.primary.reports
        assert report.status == ReportStatus.SUBMITTED
        assert report.created_at == report.updated_at
        assert report.reported_by == "student-1"
        assert report.reporter_name == "Asha Patil"
        assert report.image_url is None
        assert result.warnings == []

    async def test_create_notifies_admins(self, system, reporter, submission):
        s = system()

        result = await s.lifecycle.create_report(reporter, submission)
        await s.fanout.drain()

        [notification] = s.primary.notifications
        assert notification.recipient == ADMIN_RECIPIENT
        assert notification.type == NotificationType.NEW_REPORT
        assert notification.title == "New report: Broken light"
        assert notification.content == "A new report has been submitted by Asha Patil"
        assert notification.report_id == result.report.id
        assert notification.user_id == "student-1"

    async def test_missing_identity_uses_defaults(self, system, submission):
        s = system()
        nobody = Principal(uid="", display_name=None, email=None)

        report = (await s.lifecycle.create_report(nobody, submission)).report

        assert report.reported_by == "anonymous"
        assert report.reporter_name == "Anonymous User"
        assert report.reporter_email == "no-email@example.com"

    async def test_create_publishes_change(self, system, reporter, submission):
        s = system()

        async with s.feed.subscribe("reports", reported_by="student-1") as queue:
            result = await s.lifecycle.create_report(reporter, submission)
            change = queue.get_nowait()

        assert change.change_type == ChangeType.INSERT
        assert change.record_id == result.report.id

    async def test_notification_failure_does_not_fail_create(self, system, reporter, submission):
        s = system()
        s.primary.failures["create_notification"] = RuntimeError("notifications table locked")

        result = await s.lifecycle.create_report(reporter, submission)
        await s.fanout.drain()

        assert result.report.id in s.primary.reports
        assert len(s.fanout.failures) == 1
        assert s.primary.notifications == []


# =============================================================================
# TEST: SETUP FAILURES
# =============================================================================


class TestSetupFailures:
    async def test_schema_missing_blocks_later_submissions(self, system, reporter, submission):
        s = system()
        s.primary.failures["create_report"] = SchemaMissingError("The reports table does not exist in the database.")

        with pytest.raises(SchemaMissingError) as exc_info:
            await s.lifecycle.create_report(reporter, submission)
        assert exc_info.value.remediation == SCHEMA_REMEDIATION
        assert s.setup.schema_missing

        # Second attempt is refused without another insert
        with pytest.raises(SchemaMissingError):
            await s.lifecycle.create_report(reporter, submission)
        assert s.primary.calls.count("create_report") == 1

        s.setup.reset()
        del s.primary.failures["create_report"]
        assert (await s.lifecycle.create_report(reporter, submission)).report.id

    async def test_policy_violation_blocks_submissions(self, system, reporter, submission):
        s = system()
        s.primary.failures["create_report"] = PolicyViolationError("row-level security")

        with pytest.raises(PolicyViolationError) as exc_info:
            await s.lifecycle.create_report(reporter, submission)

        assert exc_info.value.kind == ErrorKind.AUTHORIZATION
        assert exc_info.value.remediation
        assert s.setup.policy_missing
        assert s.setup.submissions_blocked

    async def test_generic_insert_failure_does_not_block(self, system, reporter, submission):
        s = system()
        s.primary.failures["create_report"] = BackendUnavailableError("timeout")

        with pytest.raises(BackendUnavailableError):
            await s.lifecycle.create_report(reporter, submission)

        assert not s.setup.submissions_blocked

    async def test_image_without_storage_aborts(self, system, reporter, submission):
        s = system(storage=None)

        with pytest.raises(StorageUnavailableError) as exc_info:
            await s.lifecycle.create_report(reporter, submission, ImageUpload("a.jpg", b"x", "image/jpeg"))

        assert "report123" in exc_info.value.remediation
        assert s.setup.storage_missing
        assert "create_report" not in s.primary.calls

    async def test_missing_bucket_aborts(self, system, reporter, submission):
        s = system(storage=FakeStorage(error=StorageUnavailableError("Bucket not found")))

        with pytest.raises(StorageUnavailableError):
            await s.lifecycle.create_report(reporter, submission, ImageUpload("a.jpg", b"x"))

        assert s.primary.reports == {}

    async def test_other_upload_failure_submits_without_image(self, system, reporter, submission):
        s = system(storage=FakeStorage(error=BackendUnavailableError("HTTP 500")))

        result = await s.lifecycle.create_report(reporter, submission, ImageUpload("a.jpg", b"x"))

        assert result.report.image_url is None
        assert len(result.warnings) == 1

    async def test_uploaded_image_url_is_stored(self, system, reporter, submission):
        storage = FakeStorage()
        s = system(storage=storage)

        result = await s.lifecycle.create_report(reporter, submission, ImageUpload("light.jpg", b"x"))

        [path] = storage.uploaded
        assert path.startswith("reports/student-1/")
        assert result.report.image_url.endswith(path)


# =============================================================================
# TEST: STATUS CHANGES
# =============================================================================


class TestUpdateStatus:
    async def test_admin_moves_report_to_in_progress(self, system, reporter, admin, submission):
        s = system()
        report = (await s.lifecycle.create_report(reporter, submission)).report
        await s.fanout.drain()

        result = await s.lifecycle.update_status(admin, report.id, "in-progress")
        await s.fanout.drain()

        assert result.changed is True
        assert result.report.status == ReportStatus.IN_PROGRESS
        assert result.report.updated_at >= report.updated_at
        assert s.primary.reports[report.id].status == ReportStatus.IN_PROGRESS

        notification = s.primary.notifications[-1]
        assert notification.recipient == "student-1"
        assert notification.type == NotificationType.STATUS_UPDATE
        assert notification.title == "Report status updated"

    async def test_resolving_sends_resolved_notification(self, system, reporter, admin, submission):
        s = system()
        report = (await s.lifecycle.create_report(reporter, submission)).report

        await s.lifecycle.update_status(admin, report.id, "resolved")
        await s.fanout.drain()

        assert s.primary.notifications[-1].type == NotificationType.RESOLVED

    async def test_non_admin_is_rejected_without_write(self, system, reporter, submission):
        s = system()
        report = (await s.lifecycle.create_report(reporter, submission)).report

        with pytest.raises(ForbiddenError):
            await s.lifecycle.update_status(reporter, report.id, "resolved")

        assert s.primary.reports[report.id].status == ReportStatus.SUBMITTED
        assert "update_report_status" not in s.primary.calls

    async def test_same_status_is_a_noop(self, system, reporter, admin, submission):
        s = system()
        report = (await s.lifecycle.create_report(reporter, submission)).report
        await s.fanout.drain()

        result = await s.lifecycle.update_status(admin, report.id, "submitted")

        assert result.changed is False
        assert s.fanout.pending == 0
        assert "update_report_status" not in s.primary.calls

    async def test_invalid_status_is_validation_error(self, system, reporter, admin, submission):
        s = system()
        report = (await s.lifecycle.create_report(reporter, submission)).report

        with pytest.raises(ValidationError):
            await s.lifecycle.update_status(admin, report.id, "closed")

    async def test_any_status_may_follow_any_other(self, system, reporter, admin, submission):
        s = system()
        report = (await s.lifecycle.create_report(reporter, submission)).report

        await s.lifecycle.update_status(admin, report.id, "resolved")
        result = await s.lifecycle.update_status(admin, report.id, "submitted")

        assert result.report.status == ReportStatus.SUBMITTED

    async def test_update_falls_back_to_secondary(self, system, admin, make_report):
        s = system()
        s.secondary.reports["legacy"] = make_report(id="legacy")

        result = await s.lifecycle.update_status(admin, "legacy", "resolved")

        assert result.changed
        assert s.secondary.reports["legacy"].status == ReportStatus.RESOLVED

    async def test_unknown_report_is_not_found(self, system, admin):
        s = system()
        with pytest.raises(ReportNotFoundError):
            await s.lifecycle.update_status(admin, "ghost", "resolved")


# =============================================================================
# TEST: READ ACCESS
# =============================================================================


class TestReadAccess:
    async def test_other_reporters_cannot_view(self, system, reporter, other_reporter, submission):
        s = system()
        report = (await s.lifecycle.create_report(reporter, submission)).report

        with pytest.raises(ForbiddenError):
            await s.lifecycle.get_report(other_reporter, report.id)

    async def test_reporter_list_is_scoped_even_when_asking_for_all(self, system, report_set, reporter):
        s = system()
        for r in report_set:
            s.primary.reports[r.id] = r

        reports = await s.lifecycle.list_reports(reporter, mine=False)

        assert {r.reported_by for r in reports} == {"student-1"}

    async def test_admin_can_list_everything(self, system, report_set, admin):
        s = system()
        for r in report_set:
            s.primary.reports[r.id] = r

        reports = await s.lifecycle.list_reports(admin, mine=False)

        assert [r.id for r in reports] == ["r3", "r2", "r1"]


# =============================================================================
# TEST: CANCEL
# =============================================================================


class TestCancelReport:
    async def _seed(self, s, reporter, admin, submission):
        report = (await s.lifecycle.create_report(reporter, submission)).report
        await s.lifecycle.add_comment(admin, report.id, "Electrician scheduled")
        await s.fanout.drain()
        return report

    async def test_cancel_cascades(self, system, reporter, admin, submission):
        s = system()
        report = await self._seed(s, reporter, admin, submission)

        await s.lifecycle.cancel_report(reporter, report.id)

        assert report.id not in s.primary.reports
        assert s.primary.comments == []
        assert [n for n in s.primary.notifications if n.report_id == report.id] == []
        assert s.primary.calls[-3:] == ["delete_comments", "delete_notifications", "delete_report"]

    async def test_cancel_survives_comment_delete_failure(self, system, reporter, admin, submission):
        s = system()
        report = await self._seed(s, reporter, admin, submission)
        s.primary.failures["delete_comments"] = BackendUnavailableError("comments offline")

        await s.lifecycle.cancel_report(reporter, report.id)

        assert report.id not in s.primary.reports
        assert len(s.primary.comments) == 1
        assert [n for n in s.primary.notifications if n.report_id == report.id] == []

    async def test_queued_notifications_are_not_written_after_cancel(
        self, system, reporter, admin, submission
    ):
        s = system()
        report = (await s.lifecycle.create_report(reporter, submission)).report
        await s.lifecycle.add_comment(admin, report.id, "Electrician scheduled")
        assert s.fanout.pending == 2

        await s.lifecycle.cancel_report(reporter, report.id)
        await s.fanout.drain()

        assert report.id not in s.primary.reports
        assert [n for n in s.primary.notifications if n.report_id == report.id] == []

    async def test_failed_delete_leaves_report_intact(self, system, reporter, submission):
        s = system()
        report = (await s.lifecycle.create_report(reporter, submission)).report
        s.primary.failures["delete_report"] = BackendUnavailableError("offline")

        with pytest.raises(BackendUnavailableError):
            await s.lifecycle.cancel_report(reporter, report.id)

        assert report.id in s.primary.reports

    async def test_resolved_report_cannot_be_cancelled(self, system, reporter, admin, submission):
        s = system()
        report = (await s.lifecycle.create_report(reporter, submission)).report
        await s.lifecycle.update_status(admin, report.id, "resolved")

        with pytest.raises(ForbiddenError):
            await s.lifecycle.cancel_report(reporter, report.id)

    async def test_admin_cannot_cancel_someone_elses_report(self, system, reporter, admin, submission):
        s = system()
        report = (await s.lifecycle.create_report(reporter, submission)).report

        with pytest.raises(ForbiddenError):
            await s.lifecycle.cancel_report(admin, report.id)

    async def test_cancel_removes_uploaded_image(self, system, reporter, submission):
        storage = FakeStorage()
        s = system(storage=storage)
        report = (await s.lifecycle.create_report(reporter, submission, ImageUpload("a.jpg", b"x"))).report

        await s.lifecycle.cancel_report(reporter, report.id)

        assert storage.removed == storage.uploaded


# =============================================================================
# TEST: COMMENTS
# =============================================================================


class TestComments:
    async def test_comment_is_stamped_with_author(self, system, reporter, submission):
        s = system()
        report = (await s.lifecycle.create_report(reporter, submission)).report
        await s.fanout.drain()

        comment = await s.lifecycle.add_comment(reporter, report.id, "  Still broken today  ")

        assert comment.content == "Still broken today"
        assert comment.user_id == "student-1"
        assert comment.user_name == "Asha Patil"
        assert comment.is_admin is False
        assert s.fanout.pending == 0

    async def test_admin_comment_notifies_reporter(self, system, reporter, admin, submission):
        s = system()
        report = (await s.lifecycle.create_report(reporter, submission)).report
        await s.fanout.drain()

        comment = await s.lifecycle.add_comment(admin, report.id, "Electrician scheduled")
        await s.fanout.drain()

        assert comment.is_admin is True
        notification = s.primary.notifications[-1]
        assert notification.type == NotificationType.COMMENT
        assert notification.recipient == "student-1"

    async def test_blank_comment_is_rejected(self, system, reporter, submission):
        s = system()
        report = (await s.lifecycle.create_report(reporter, submission)).report

        with pytest.raises(ValidationError):
            await s.lifecycle.add_comment(reporter, report.id, "   ")

    async def test_comments_require_visibility(self, system, reporter, other_reporter, submission):
        s = system()
        report = (await s.lifecycle.create_report(reporter, submission)).report

        with pytest.raises(ForbiddenError):
            await s.lifecycle.add_comment(other_reporter, report.id, "me too")
        with pytest.raises(ForbiddenError):
            await s.lifecycle.list_comments(other_reporter, report.id)
