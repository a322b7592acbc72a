"""User API routes for CampusCare.

Profile, the reporter dashboard and the notification inbox.
"""

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from ..core.dependencies import FanoutDep, IdentityDep, LifecycleDep, PrincipalDep
from ..schemas import (
    MarkReadResponse,
    NotificationResponse,
    ReportResponse,
    ReporterDashboardResponse,
    StatusCountsResponse,
)
from ..services.aggregation import status_counts
from ..services.identity import IdentityError
from ..services.views import SortOrder, sort_reports

router = APIRouter(prefix="/me", tags=["user"])

RECENT_REPORTS = 3


# =============================================================================
# SCHEMAS
# =============================================================================


class ProfileResponse(BaseModel):
    """The signed-in user."""
    uid: str
    email: str | None = None
    display_name: str | None = None
    role: str
    is_admin: bool


class ProfileUpdateRequest(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=100)


# =============================================================================
# ENDPOINTS
# =============================================================================


@router.get("", response_model=ProfileResponse)
async def get_profile(principal: PrincipalDep):
    return ProfileResponse(
        uid=principal.uid,
        email=principal.email,
        display_name=principal.display_name,
        role=principal.role.value,
        is_admin=principal.is_admin,
    )


@router.patch("", response_model=ProfileResponse)
async def update_profile(
    request: ProfileUpdateRequest,
    principal: PrincipalDep,
    identity: IdentityDep,
):
    """Change the display name. Existing reports keep the name they were filed under."""
    try:
        user = await identity.update_profile(principal.uid, request.display_name.strip())
    except IdentityError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    return ProfileResponse(
        uid=user.uid,
        email=user.email,
        display_name=user.display_name,
        role=principal.role.value,
        is_admin=principal.is_admin,
    )


@router.get("/dashboard", response_model=ReporterDashboardResponse)
async def get_dashboard(principal: PrincipalDep, lifecycle: LifecycleDep):
    """Counts by status over the caller's reports, plus the newest few."""
    reports = await lifecycle.list_reports(principal, mine=True)
    return ReporterDashboardResponse(
        stats=StatusCountsResponse.model_validate(status_counts(reports)),
        recent_reports=[
            ReportResponse.model_validate(r)
            for r in sort_reports(reports, SortOrder.NEWEST)[:RECENT_REPORTS]
        ],
    )


@router.get("/notifications", response_model=list[NotificationResponse])
async def list_notifications(
    principal: PrincipalDep,
    fanout: FanoutDep,
    unread_only: bool = Query(default=False),
):
    """Inbox, newest first. Admins also see the shared admin inbox."""
    notifications = await fanout.list_for(principal, unread_only=unread_only)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.post("/notifications/read", response_model=MarkReadResponse)
async def mark_notifications_read(principal: PrincipalDep, fanout: FanoutDep):
    updated = await fanout.mark_all_read(principal)
    return MarkReadResponse(updated=updated)
