"""Like toggle and like query endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from postwatch.api.v1.dependencies import CacheDep, CurrentUserDep, SessionDep
from postwatch.schemas.engagement import (
    BatchLikeStatusRequest,
    LikedPostPage,
    LikeStats,
    LikeStatus,
)
from postwatch.services import likes as like_service

router = APIRouter(prefix="/likes", tags=["likes"])


# Plain ``def``: the toggle may back off with blocking sleeps, so it runs in the threadpool.
@router.post("/posts/{post_id}", response_model=LikeStatus)
def toggle_like(
    post_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: CacheDep,
) -> LikeStatus:
    """Like the post, or remove the like if it already exists."""
    return like_service.toggle_like(db, current_user.id, post_id, cache=cache)


@router.get("/posts/{post_id}", response_model=LikeStatus)
async def check_like_status(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> LikeStatus:
    return like_service.check_like_status(db, current_user.id, post_id)


@router.post("/status", response_model=dict[int, LikeStatus])
async def batch_check_like_status(
    payload: BatchLikeStatusRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> dict[int, LikeStatus]:
    return like_service.batch_check_like_status(db, current_user.id, payload.post_ids)


@router.get("/me", response_model=LikedPostPage)
async def get_liked_posts(
    current_user: CurrentUserDep,
    db: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> LikedPostPage:
    posts, total = like_service.get_liked_posts(db, current_user.id, page=page, limit=limit)
    return LikedPostPage(posts=posts, page=page, limit=limit, total_count=total)


@router.get("/posts/{post_id}/stats", response_model=LikeStats)
async def get_post_like_stats(post_id: int, db: SessionDep) -> LikeStats:
    return like_service.get_post_like_stats(db, post_id)
