"""Like toggle engine and like queries."""

from __future__ import annotations

import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from postwatch.core.errors import NotFoundError
from postwatch.core.settings import settings
from postwatch.models import Post, PostLike, User
from postwatch.schemas.engagement import LikedPost, LikeStats, LikeStatus
from postwatch.services.cache import Cache, get_cache
from postwatch.services.lifecycle import get_post
from postwatch.services.notifications import (
    POST_LIKED,
    DatabaseNotifier,
    Notifier,
    PendingNotification,
    dispatch,
)
from postwatch.services.toggle import idempotent_toggle

logger = logging.getLogger(__name__)

RECENT_LIKERS_LIMIT = 10


def _like_count(db: Session, post_id: int) -> int:
    return db.scalar(select(Post.likes).where(Post.id == post_id)) or 0


def toggle_like(
    db: Session,
    user_id: int,
    post_id: int,
    *,
    notifier: Notifier | None = None,
    cache: Cache | None = None,
) -> LikeStatus:
    """Like the post if the user has not liked it yet, otherwise unlike it.

    The counter moves in the same transaction as the ``post_like`` row and is
    never decremented below zero. Calls racing on the same (user, post) pair
    are serialised by the composite primary key; see :func:`idempotent_toggle`.

    Raises:
        NotFoundError: If the user or the post does not exist.
        ToggleRetriesExhaustedError: If the unique race never settled.
    """
    if db.get(User, user_id) is None:
        raise NotFoundError("User not found")
    post = get_post(db, post_id)
    owner_id, title = post.owner_id, post.title

    def _remove(session: Session) -> bool:
        result = session.execute(
            delete(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == user_id)
        )
        if result.rowcount == 0:
            return False
        session.execute(
            update(Post)
            .where(Post.id == post_id, Post.likes > 0)
            .values(likes=Post.likes - 1)
        )
        return True

    def _add(session: Session) -> None:
        session.add(PostLike(post_id=post_id, user_id=user_id))
        session.flush()
        session.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(likes=Post.likes + 1)
        )

    is_liked = idempotent_toggle(
        db,
        _remove,
        _add,
        attempts=settings.like_toggle_max_attempts,
        backoff=settings.like_toggle_backoff_seconds,
    )
    like_count = _like_count(db, post_id)
    logger.debug("User %s %s post %s (likes=%d)", user_id, "liked" if is_liked else "unliked", post_id, like_count)

    if is_liked and owner_id != user_id:
        liker = db.get(User, user_id)
        name = liker.username if liker is not None else "Someone"
        label = f'your post "{title}"' if title else "your post"
        dispatch(
            notifier or DatabaseNotifier(db),
            [
                PendingNotification(
                    user_id=owner_id,
                    type=POST_LIKED,
                    message=f"{name} liked {label}",
                    metadata={"post_id": post_id, "liker_id": user_id},
                )
            ],
        )

    (cache or get_cache()).invalidate_post_listings()
    return LikeStatus(is_liked=is_liked, like_count=like_count)


def check_like_status(db: Session, user_id: int, post_id: int) -> LikeStatus:
    get_post(db, post_id)
    liked = db.scalar(
        select(PostLike.user_id).where(PostLike.post_id == post_id, PostLike.user_id == user_id)
    ) is not None
    return LikeStatus(is_liked=liked, like_count=_like_count(db, post_id))


def batch_check_like_status(
    db: Session,
    user_id: int,
    post_ids: list[int],
) -> dict[int, LikeStatus]:
    """Return like status for every existing post in ``post_ids``.

    Unknown post ids are omitted from the result rather than raising.
    """
    if not post_ids:
        return {}
    counts = dict(db.execute(select(Post.id, Post.likes).where(Post.id.in_(post_ids))).all())
    liked = set(
        db.scalars(
            select(PostLike.post_id).where(
                PostLike.user_id == user_id,
                PostLike.post_id.in_(post_ids),
            )
        )
    )
    return {
        post_id: LikeStatus(is_liked=post_id in liked, like_count=likes)
        for post_id, likes in counts.items()
    }


def get_liked_posts(
    db: Session,
    user_id: int,
    *,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[LikedPost], int]:
    """Return the posts a user liked, most recent like first, and the total."""
    page = max(1, page)
    limit = max(1, min(limit, 100))
    total = db.scalar(
        select(func.count()).select_from(PostLike).where(PostLike.user_id == user_id)
    ) or 0
    rows = db.execute(
        select(Post.id, Post.title, Post.likes, Post.views, PostLike.created_at)
        .join(PostLike, PostLike.post_id == Post.id)
        .where(PostLike.user_id == user_id)
        .order_by(PostLike.created_at.desc(), Post.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    liked = [
        LikedPost(post_id=pid, title=title, like_count=likes, view_count=views, liked_at=liked_at)
        for pid, title, likes, views, liked_at in rows
    ]
    return liked, total


def get_post_like_stats(db: Session, post_id: int) -> LikeStats:
    get_post(db, post_id)
    recent = db.scalars(
        select(PostLike.user_id)
        .where(PostLike.post_id == post_id)
        .order_by(PostLike.created_at.desc())
        .limit(RECENT_LIKERS_LIMIT)
    ).all()
    return LikeStats(like_count=_like_count(db, post_id), recent_likers=list(recent))
