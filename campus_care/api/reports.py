"""
Reports API: filing, browsing and discussing campus issue reports.

Reporters see only their own reports here. Admin-wide listings and status
changes live under /admin.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from ..core.dependencies import LifecycleDep, PrincipalDep
from ..schemas import (
    CommentCreate,
    CommentResponse,
    ReportResponse,
    SubmissionResponse,
)
from ..services.lifecycle import ImageUpload, ReportSubmission
from ..services.views import STATUS_ALL, SortOrder, ViewParams

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


def view_params(
    search: Annotated[str, Query(description="Matches title, description or location")] = "",
    status_filter: Annotated[str, Query(alias="status")] = STATUS_ALL,
    sort: SortOrder = SortOrder.NEWEST,
) -> ViewParams:
    return ViewParams(search=search.strip(), status=status_filter, sort=sort)


ViewParamsDep = Annotated[ViewParams, Depends(view_params)]


# =============================================================================
# REPORTS
# =============================================================================


@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def create_report(
    principal: PrincipalDep,
    lifecycle: LifecycleDep,
    title: Annotated[str, Form()] = "",
    description: Annotated[str, Form()] = "",
    category: Annotated[str, Form()] = "",
    location: Annotated[str, Form()] = "",
    image: Annotated[UploadFile | None, File()] = None,
):
    """
    File a new report.

    Blank fields are accepted by the form parser on purpose so that the
    lifecycle can report every missing field in one validation error.
    """
    upload = None
    if image is not None and image.filename:
        upload = ImageUpload(
            filename=image.filename,
            content=await image.read(),
            content_type=image.content_type,
        )

    result = await lifecycle.create_report(
        principal,
        ReportSubmission(
            title=title,
            description=description,
            category=category,
            location=location,
        ),
        image=upload,
    )
    return SubmissionResponse(
        report=ReportResponse.model_validate(result.report),
        warnings=result.warnings,
    )


@router.get("", response_model=list[ReportResponse])
async def list_my_reports(
    principal: PrincipalDep,
    lifecycle: LifecycleDep,
    params: ViewParamsDep,
):
    """The caller's reports, searched, filtered and sorted."""
    reports = await lifecycle.list_reports(principal, params, mine=True)
    return [ReportResponse.model_validate(r) for r in reports]


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(report_id: str, principal: PrincipalDep, lifecycle: LifecycleDep):
    report = await lifecycle.get_report(principal, report_id)
    return ReportResponse.model_validate(report)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_report(report_id: str, principal: PrincipalDep, lifecycle: LifecycleDep):
    """Withdraw one of the caller's own unresolved reports."""
    await lifecycle.cancel_report(principal, report_id)


# =============================================================================
# COMMENTS
# =============================================================================


@router.get("/{report_id}/comments", response_model=list[CommentResponse])
async def list_comments(report_id: str, principal: PrincipalDep, lifecycle: LifecycleDep):
    comments = await lifecycle.list_comments(principal, report_id)
    return [CommentResponse.model_validate(c) for c in comments]


@router.post(
    "/{report_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    report_id: str,
    request: CommentCreate,
    principal: PrincipalDep,
    lifecycle: LifecycleDep,
):
    comment = await lifecycle.add_comment(principal, report_id, request.content)
    return CommentResponse.model_validate(comment)
