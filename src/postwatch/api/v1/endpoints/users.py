"""Account suspension endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from postwatch.api.v1.dependencies import AdminDep, SessionDep
from postwatch.models import User
from postwatch.schemas.moderation import SuspensionResult
from postwatch.schemas.user import SuspendedPostsCount, UserStatusResponse
from postwatch.services import suspension

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}/suspended-posts", response_model=SuspendedPostsCount)
async def get_suspended_posts_count(user_id: int, _admin: AdminDep, db: SessionDep) -> SuspendedPostsCount:
    return SuspendedPostsCount(
        user_id=user_id,
        suspended_posts_count=suspension.get_suspended_posts_count(db, user_id),
    )


@router.post("/{user_id}/suspension-check", response_model=SuspensionResult)
async def check_suspension(user_id: int, _admin: AdminDep, db: SessionDep) -> SuspensionResult:
    """Re-run the suspension cascade for a user."""
    return suspension.check_and_suspend_user(db, user_id)


@router.post("/{user_id}/reactivate", response_model=UserStatusResponse)
async def reactivate_user(user_id: int, admin: AdminDep, db: SessionDep) -> User:
    return suspension.reactivate_user(db, admin.id, user_id)
