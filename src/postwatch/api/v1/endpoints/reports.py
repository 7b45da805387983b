"""Report submission and admin report review endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from postwatch.api.v1.dependencies import AdminDep, CurrentUserDep, SessionDep
from postwatch.models import PostReport, ReportReason, ReportStatus
from postwatch.schemas.moderation import (
    ReportCreate,
    ReportPage,
    ReportResponse,
    ReportResult,
    ReportReviewRequest,
    ReportStats,
)
from postwatch.services import reports as report_service

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("/posts/{post_id}", response_model=ReportResult, status_code=status.HTTP_201_CREATED)
async def report_post(
    post_id: int,
    payload: ReportCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ReportResult:
    """Report a post; the fifth distinct report freezes it."""
    return report_service.report_post(
        db,
        current_user.id,
        post_id,
        payload.reason,
        payload.description,
    )


@router.get("", response_model=ReportPage)
async def list_reports(
    _admin: AdminDep,
    db: SessionDep,
    report_status: ReportStatus | None = Query(None, alias="status"),
    reason: ReportReason | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ReportPage:
    return report_service.list_reports(db, status=report_status, reason=reason, page=page, limit=limit)


@router.get("/stats", response_model=ReportStats)
async def get_report_stats(_admin: AdminDep, db: SessionDep) -> ReportStats:
    return report_service.get_report_stats(db)


@router.get("/posts/{post_id}", response_model=list[ReportResponse])
async def get_post_reports(post_id: int, _admin: AdminDep, db: SessionDep) -> list[PostReport]:
    return report_service.get_post_reports(db, post_id)


@router.put("/{report_id}/review", response_model=ReportResponse)
async def review_report(
    report_id: int,
    payload: ReportReviewRequest,
    admin: AdminDep,
    db: SessionDep,
) -> PostReport:
    """Mark a report reviewed, resolved or dismissed."""
    return report_service.review_report(
        db,
        admin.id,
        report_id,
        payload.status,
        payload.admin_notes,
    )
