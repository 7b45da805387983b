"""View milestone notifications.

Milestone checks run after a view has been committed and are strictly best
effort: any failure is logged and never reaches the viewer.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from postwatch.core.settings import settings
from postwatch.db.session import SessionLocal
from postwatch.db.time import as_utc, utcnow
from postwatch.models import Notification, Post, User
from postwatch.schemas.engagement import MilestoneStats
from postwatch.services.lifecycle import get_post
from postwatch.services.notifications import (
    VIEW_MILESTONE,
    DatabaseNotifier,
    Notifier,
    PendingNotification,
    dispatch,
)

logger = logging.getLogger(__name__)

VIEW_MILESTONES: tuple[int, ...] = (
    100,
    500,
    1_000,
    5_000,
    10_000,
    25_000,
    50_000,
    100_000,
    250_000,
    500_000,
    1_000_000,
)


def format_milestone_message(views: int) -> str:
    """Render the celebratory text for a milestone.

    >>> format_milestone_message(500)
    'Great! Your post reached 500 views!'
    >>> format_milestone_message(25_000)
    'Congratulations! Your post reached 25K views!'
    """
    if views >= 1_000_000:
        return f"Amazing! Your post reached {views / 1_000_000:.1f}M views!"
    if views >= 1_000:
        digits = 0 if views >= 10_000 else 1
        return f"Congratulations! Your post reached {views / 1_000:.{digits}f}K views!"
    return f"Great! Your post reached {views} views!"


def _notified_milestones(db: Session, owner_id: int, post_id: int) -> set[int]:
    rows = db.scalars(
        select(Notification.metadata_).where(
            Notification.user_id == owner_id,
            Notification.type == VIEW_MILESTONE,
        )
    )
    return {
        int(meta["milestone"])
        for meta in rows
        if meta and meta.get("post_id") == post_id and "milestone" in meta
    }


def _recently_notified(
    db: Session,
    owner_id: int,
    milestone: int,
    current_views: int,
    now: datetime,
) -> bool:
    """True if a recent notification for the same milestone makes this one redundant.

    Looks at the owner's latest milestone notification within the window. It
    only suppresses when that notification announced the same milestone value
    and the view count has grown less than the configured factor since.
    """
    since = now - timedelta(hours=settings.milestone_renotify_window_hours)
    latest = db.scalars(
        select(Notification)
        .where(
            Notification.user_id == owner_id,
            Notification.type == VIEW_MILESTONE,
            Notification.created_at >= since,
        )
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(1)
    ).first()
    if latest is None or not latest.metadata_:
        return False
    if latest.metadata_.get("milestone") != milestone:
        return False
    recorded = int(latest.metadata_.get("views", 0))
    return current_views < recorded * settings.milestone_renotify_growth


def check_milestone(
    db: Session,
    post_id: int,
    current_views: int,
    owner_id: int,
    *,
    notifier: Notifier | None = None,
    now: datetime | None = None,
) -> None:
    """Notify the owner if ``current_views`` crossed a milestone not yet announced."""
    try:
        now = now or utcnow()
        post = db.get(Post, post_id)
        owner = db.get(User, owner_id)
        if post is None or owner is None or not owner.notifications_enabled:
            return

        min_age = timedelta(hours=settings.milestone_min_post_age_hours)
        if now - as_utc(post.created_at) < min_age:
            return

        notified = _notified_milestones(db, owner_id, post_id)
        reached = [m for m in VIEW_MILESTONES if m <= current_views and m not in notified]
        if not reached:
            return
        milestone = max(reached)

        if _recently_notified(db, owner_id, milestone, current_views, now):
            logger.debug(
                "Skipping %d-view milestone for post %s: owner notified recently", milestone, post_id
            )
            return

        label = f'"{post.title}"' if post.title else '"Your post"'
        dispatch(
            notifier or DatabaseNotifier(db),
            [
                PendingNotification(
                    user_id=owner_id,
                    type=VIEW_MILESTONE,
                    message=f"{format_milestone_message(milestone)} - {label}",
                    metadata={"post_id": post_id, "milestone": milestone, "views": current_views},
                )
            ],
        )
        logger.info("Notified user %s of %d views on post %s", owner_id, milestone, post_id)
    except Exception:
        logger.exception("Milestone check failed for post %s", post_id)


def run_milestone_check(post_id: int, current_views: int, owner_id: int) -> None:
    """Run :func:`check_milestone` in its own session (background task entry point)."""
    db = SessionLocal()
    try:
        check_milestone(db, post_id, current_views, owner_id)
    finally:
        db.close()


def get_post_milestones(db: Session, post_id: int) -> MilestoneStats:
    post = get_post(db, post_id)
    views = db.scalar(select(Post.views).where(Post.id == post.id)) or 0
    reached = [m for m in VIEW_MILESTONES if views >= m]
    upcoming = next((m for m in VIEW_MILESTONES if views < m), None)
    progress = round(views / upcoming * 100, 1) if upcoming else 100.0
    return MilestoneStats(
        current_views=views,
        reached_milestones=reached,
        next_milestone=upcoming,
        progress_to_next=progress,
    )
