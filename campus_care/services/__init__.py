"""Business logic services for CampusCare."""

from .identity import AuthSession, IdentityError, IdentityProvider, IdentityUser
from .lifecycle import (
    ImageUpload,
    ReportLifecycle,
    ReportSubmission,
    StatusChangeResult,
    SubmissionResult,
    validate_submission,
)
from .notifications import NotificationFanout, build_notification
from .realtime import ChangeType, ReportChange, ReportChangeFeed
from .setup import SetupState
from .views import SortOrder, ViewParams, apply_view

__all__ = [
    # Lifecycle (primary)
    "ReportLifecycle",
    "ReportSubmission",
    "ImageUpload",
    "SubmissionResult",
    "StatusChangeResult",
    "validate_submission",
    # Notifications
    "NotificationFanout",
    "build_notification",
    # Identity
    "IdentityProvider",
    "IdentityError",
    "IdentityUser",
    "AuthSession",
    # Realtime
    "ReportChangeFeed",
    "ReportChange",
    "ChangeType",
    # Setup
    "SetupState",
    # Views
    "ViewParams",
    "SortOrder",
    "apply_view",
]
