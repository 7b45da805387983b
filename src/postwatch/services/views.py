"""View recording engine: qualification, deduplication and rate limiting."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from postwatch.core.errors import PostwatchError
from postwatch.core.settings import settings
from postwatch.db.time import utcnow
from postwatch.db.transaction import run_in_transaction
from postwatch.models import Post, PostStatus, PostView
from postwatch.schemas.engagement import (
    DeclineReason,
    TrendingPeriod,
    TrendingPost,
    TrendingPosts,
    ViewResult,
    ViewStats,
)
from postwatch.services.cache import Cache, get_cache
from postwatch.services.lifecycle import get_post
from postwatch.services.milestones import check_milestone

logger = logging.getLogger(__name__)

MilestoneScheduler = Callable[[int, int, int], None]

TRENDING_VIEW_WEIGHT = 1
TRENDING_LIKE_WEIGHT = 3

_TRENDING_WINDOWS: dict[TrendingPeriod, timedelta] = {
    TrendingPeriod.HOUR: timedelta(hours=1),
    TrendingPeriod.DAY: timedelta(hours=24),
    TrendingPeriod.WEEK: timedelta(days=7),
    TrendingPeriod.MONTH: timedelta(days=30),
}


def viewer_identity(
    user_id: int | None,
    ip_address: str | None,
    user_agent: str | None,
) -> str:
    """Return the dedup key for a viewer.

    Authenticated viewers are keyed by user id. Anonymous viewers are keyed by
    a SHA-256 digest of ``ip|user-agent`` so raw addresses never end up in
    cache keys.
    """
    if user_id is not None:
        return f"user:{user_id}"
    raw = f"{ip_address or ''}|{user_agent or ''}".encode()
    return f"anon:{hashlib.sha256(raw).hexdigest()}"


def is_qualified(watch_time_sec: float | None, visibility_pct: float | None) -> bool:
    """Check client-reported metrics against the minimum watch time and visibility.

    Missing metrics are treated as qualifying.
    """
    if watch_time_sec is not None and watch_time_sec < settings.view_min_watch_sec:
        return False
    if visibility_pct is not None and visibility_pct < settings.view_min_visibility_pct:
        return False
    return True


def _dedup_key(post_id: int, identity: str) -> str:
    return f"view:{post_id}:{identity}"


def _current_views(db: Session, post_id: int) -> int:
    return db.scalar(select(Post.views).where(Post.id == post_id)) or 0


def record_view(
    db: Session,
    post_id: int,
    *,
    user_id: int | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    watch_time_sec: float | None = None,
    visibility_pct: float | None = None,
    cache: Cache | None = None,
    schedule_milestone: MilestoneScheduler | None = None,
) -> ViewResult:
    """Count a view at most once per (post, viewer identity).

    Declines are ordinary results: the caller gets ``view_recorded=False``
    together with the reason. The cache only short-cuts known duplicates; the
    database insert under a unique constraint remains authoritative, so the
    outcome is correct with Redis down.

    Args:
        schedule_milestone: Called as ``(post_id, views, owner_id)`` after a new
            view commits. When omitted the milestone check runs inline.

    Raises:
        NotFoundError: If the post does not exist.
    """
    cache = cache or get_cache()
    identity = viewer_identity(user_id, ip_address, user_agent)

    source = ip_address or identity
    if not cache.allow("views", source, limit=settings.view_rate_limit_per_min, window_seconds=60):
        logger.info("View rate limit exceeded for %s", source)
        return ViewResult(view_recorded=False, view_count=0, declined=DeclineReason.RATE_LIMITED)

    if not is_qualified(watch_time_sec, visibility_pct):
        return ViewResult(
            view_recorded=False,
            view_count=_current_views(db, post_id),
            declined=DeclineReason.UNQUALIFIED,
        )

    post = get_post(db, post_id)
    owner_id = post.owner_id
    if post.status != PostStatus.ACTIVE or post.is_frozen:
        return ViewResult(
            view_recorded=False,
            view_count=post.views,
            declined=DeclineReason.UNAVAILABLE,
        )

    key = _dedup_key(post_id, identity)
    if cache.exists(key):
        return ViewResult(
            view_recorded=False,
            view_count=_current_views(db, post_id),
            declined=DeclineReason.DUPLICATE,
        )

    def _work(session: Session) -> bool:
        seen = session.scalar(
            select(PostView.id)
            .where(PostView.post_id == post_id, PostView.viewer_key == identity)
            .limit(1)
        )
        if seen is not None:
            return False
        try:
            with session.begin_nested():  # SAVEPOINT
                session.add(
                    PostView(
                        post_id=post_id,
                        viewer_key=identity,
                        user_id=user_id,
                        ip_address=ip_address,
                        user_agent=user_agent,
                        watch_time_sec=watch_time_sec,
                        visibility_pct=visibility_pct,
                    )
                )
                session.flush()
        except IntegrityError:
            return False
        session.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(views=Post.views + 1)
        )
        return True

    recorded = run_in_transaction(db, _work)
    views = _current_views(db, post_id)
    cache.set(key, settings.view_dedup_ttl_sec)

    if not recorded:
        return ViewResult(view_recorded=False, view_count=views, declined=DeclineReason.DUPLICATE)

    logger.debug("Recorded view of post %s by %s (views=%d)", post_id, identity, views)
    if schedule_milestone is not None:
        schedule_milestone(post_id, views, owner_id)
    else:
        check_milestone(db, post_id, views, owner_id)
    return ViewResult(view_recorded=True, view_count=views)


def get_post_view_stats(db: Session, post_id: int) -> ViewStats:
    """Split the recorded views of a post into authenticated and anonymous."""
    get_post(db, post_id)
    total, authenticated = db.execute(
        select(func.count(PostView.id), func.count(PostView.user_id))
        .where(PostView.post_id == post_id)
    ).one()
    return ViewStats(
        total_views=total,
        authenticated_views=authenticated,
        anonymous_views=total - authenticated,
    )


def get_trending_posts(
    db: Session,
    period: TrendingPeriod | str = TrendingPeriod.DAY,
    limit: int = 20,
    *,
    now: datetime | None = None,
) -> TrendingPosts:
    """Rank active, unfrozen posts created within ``period`` by engagement.

    The score weighs each like three times as much as a view. Ties go to the
    newer post.
    """
    try:
        period = TrendingPeriod(period)
    except ValueError as exc:
        raise PostwatchError(f"Unknown trending period: {period}") from exc
    limit = max(1, min(limit, 100))
    now = now or utcnow()
    since = now - _TRENDING_WINDOWS[period]

    score = (Post.views * TRENDING_VIEW_WEIGHT + Post.likes * TRENDING_LIKE_WEIGHT).label("score")
    rows = db.execute(
        select(Post, score)
        .where(
            Post.status == PostStatus.ACTIVE,
            Post.is_frozen.is_(False),
            Post.created_at >= since,
        )
        .order_by(score.desc(), Post.created_at.desc(), Post.id.desc())
        .limit(limit)
    ).all()
    return TrendingPosts(
        posts=[
            TrendingPost(
                post_id=post.id,
                owner_id=post.owner_id,
                title=post.title,
                like_count=post.likes,
                view_count=post.views,
                created_at=post.created_at,
                trending_score=int(post_score),
            )
            for post, post_score in rows
        ],
        period=period,
        generated_at=now,
    )
