"""Appeal submission and admin appeal review endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from postwatch.api.v1.dependencies import AdminDep, CurrentUserDep, SessionDep
from postwatch.models import AppealStatus, PostAppeal
from postwatch.schemas.moderation import AppealCreate, AppealPage, AppealResponse, AppealReviewRequest
from postwatch.services import appeals as appeal_service

router = APIRouter(prefix="/appeals", tags=["appeals"])


@router.post("/posts/{post_id}", response_model=AppealResponse, status_code=status.HTTP_201_CREATED)
async def appeal_post(
    post_id: int,
    payload: AppealCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PostAppeal:
    """Appeal the suspension of one of your own posts."""
    return appeal_service.appeal_post(
        db,
        current_user.id,
        post_id,
        payload.reason,
        payload.additional_info,
    )


@router.get("/me", response_model=list[AppealResponse])
async def get_my_appeals(current_user: CurrentUserDep, db: SessionDep) -> list[PostAppeal]:
    return appeal_service.list_user_appeals(db, current_user.id)


@router.get("", response_model=AppealPage)
async def list_appeals(
    _admin: AdminDep,
    db: SessionDep,
    appeal_status: AppealStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> AppealPage:
    appeals, total = appeal_service.list_appeals(db, status=appeal_status, page=page, limit=limit)
    return AppealPage(
        appeals=[AppealResponse.model_validate(appeal) for appeal in appeals],
        page=page,
        limit=limit,
        total_count=total,
    )


@router.put("/{appeal_id}/review", response_model=AppealResponse)
async def review_appeal(
    appeal_id: int,
    payload: AppealReviewRequest,
    admin: AdminDep,
    db: SessionDep,
) -> PostAppeal:
    """Approve (restoring the post) or reject an appeal."""
    return appeal_service.review_appeal(
        db,
        admin.id,
        appeal_id,
        payload.decision,
        payload.admin_notes,
    )
