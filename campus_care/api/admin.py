"""
Admin API: triage and statistics for campus staff.

These endpoints power the admin views:
1. Dashboard cards (totals, pending, distinct reporters, newest reports)
2. Insights (status totals, category chart, 7-day timeline)
3. The all-reports list with the same search/filter/sort as reporters get
4. Status changes, which notify the reporter
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Query

from ..core.dependencies import AdminDep, LifecycleDep
from ..schemas import (
    DashboardResponse,
    InsightsResponse,
    ReportResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from ..services.aggregation import dashboard_summary, insights
from .reports import ViewParamsDep

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(admin: AdminDep, lifecycle: LifecycleDep):
    reports = await lifecycle.all_reports(admin)
    return DashboardResponse.model_validate(dashboard_summary(reports))


@router.get("/insights", response_model=InsightsResponse)
async def get_insights(
    admin: AdminDep,
    lifecycle: LifecycleDep,
    days: int = Query(default=7, ge=1, le=90, description="Timeline length in days"),
):
    reports = await lifecycle.all_reports(admin)
    today = datetime.now(timezone.utc).date()
    return InsightsResponse.model_validate(insights(reports, today, days))


@router.get("/reports", response_model=list[ReportResponse])
async def list_all_reports(admin: AdminDep, lifecycle: LifecycleDep, params: ViewParamsDep):
    reports = await lifecycle.list_reports(admin, params, mine=False)
    return [ReportResponse.model_validate(r) for r in reports]


@router.get("/reports/{report_id}", response_model=ReportResponse)
async def get_report(report_id: str, admin: AdminDep, lifecycle: LifecycleDep):
    report = await lifecycle.get_report(admin, report_id)
    return ReportResponse.model_validate(report)


@router.patch("/reports/{report_id}/status", response_model=StatusUpdateResponse)
async def update_status(
    report_id: str,
    request: StatusUpdateRequest,
    admin: AdminDep,
    lifecycle: LifecycleDep,
):
    """Move a report to another status. Setting the current status is a no-op."""
    result = await lifecycle.update_status(admin, report_id, request.status)
    return StatusUpdateResponse(
        report=ReportResponse.model_validate(result.report),
        changed=result.changed,
    )
