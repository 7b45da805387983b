"""Approver decisions on posts."""

from __future__ import annotations

from fastapi import APIRouter

from postwatch.api.v1.dependencies import ApproverDep, SessionDep
from postwatch.models import Post
from postwatch.schemas.moderation import PostDecisionRequest, PostRejectRequest
from postwatch.schemas.post import PostResponse
from postwatch.services import lifecycle

router = APIRouter(prefix="/approver", tags=["approver"])


@router.post("/posts/{post_id}/approve", response_model=PostResponse)
async def approve_post(
    post_id: int,
    payload: PostDecisionRequest,
    approver: ApproverDep,
    db: SessionDep,
) -> Post:
    return lifecycle.approve_post(db, approver.id, post_id, payload.notes)


@router.post("/posts/{post_id}/reject", response_model=PostResponse)
async def reject_post(
    post_id: int,
    payload: PostRejectRequest,
    approver: ApproverDep,
    db: SessionDep,
) -> Post:
    """Reject a post; counts toward the owner's suspension threshold."""
    return lifecycle.reject_post(db, approver.id, post_id, payload.reason)
