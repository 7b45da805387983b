"""View recording and view statistics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Query, Request

from postwatch.api.v1.dependencies import CacheDep, OptionalUserDep, SessionDep
from postwatch.core.errors import RateLimitedError
from postwatch.schemas.engagement import (
    DeclineReason,
    MilestoneStats,
    TrendingPeriod,
    TrendingPosts,
    ViewRecordRequest,
    ViewResult,
    ViewStats,
)
from postwatch.services import milestones
from postwatch.services import views as view_service

router = APIRouter(prefix="/views", tags=["views"])


@router.post("/posts/{post_id}", response_model=ViewResult)
async def record_view(
    post_id: int,
    payload: ViewRecordRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: OptionalUserDep,
    db: SessionDep,
    cache: CacheDep,
) -> ViewResult:
    """Record a qualified view; anonymous viewers are identified by IP and user agent."""

    def _schedule(pid: int, views: int, owner_id: int) -> None:
        background_tasks.add_task(milestones.run_milestone_check, pid, views, owner_id)

    result = view_service.record_view(
        db,
        post_id,
        user_id=current_user.id if current_user else None,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        watch_time_sec=payload.watch_time_sec,
        visibility_pct=payload.visibility_pct,
        cache=cache,
        schedule_milestone=_schedule,
    )
    if result.declined == DeclineReason.RATE_LIMITED:
        raise RateLimitedError("Too many views from this address; please slow down")
    return result


@router.get("/posts/{post_id}/stats", response_model=ViewStats)
async def get_post_view_stats(post_id: int, db: SessionDep) -> ViewStats:
    return view_service.get_post_view_stats(db, post_id)


@router.get("/posts/{post_id}/milestones", response_model=MilestoneStats)
async def get_post_milestones(post_id: int, db: SessionDep) -> MilestoneStats:
    return milestones.get_post_milestones(db, post_id)


@router.get("/trending", response_model=TrendingPosts)
async def get_trending_posts(
    db: SessionDep,
    period: TrendingPeriod = Query(TrendingPeriod.DAY),
    limit: int = Query(20, ge=1, le=100),
) -> TrendingPosts:
    """Active posts from the chosen window, ranked by views and likes."""
    return view_service.get_trending_posts(db, period, limit)
