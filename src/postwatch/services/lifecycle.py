"""Post lifecycle state machine.

All post status changes go through this module. Each transition is a
conditional ``UPDATE`` whose ``WHERE`` clause encodes the expected current
state, and only the caller whose update actually changed the row performs
the side effects (notifications, suspension cascade). Re-running a
transition that already happened is therefore a harmless no-op.

Allowed transitions::

    draft     -> active      approver approval
    draft     -> suspended   approver rejection
    active    -> suspended   report freeze (is_frozen) or approver rejection
    suspended -> active      appeal approval, report resolution, re-approval
"""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from postwatch.core.errors import InvalidStateError, NotFoundError
from postwatch.core.settings import settings
from postwatch.db.time import utcnow
from postwatch.db.transaction import run_in_transaction
from postwatch.models import Post, PostStatus, User
from postwatch.services.notifications import (
    POST_APPROVED,
    POST_FROZEN,
    POST_REJECTED,
    DatabaseNotifier,
    Notifier,
    PendingNotification,
    dispatch,
)
from postwatch.services.suspension import suspend_if_due

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[PostStatus, frozenset[PostStatus]] = {
    PostStatus.DRAFT: frozenset({PostStatus.ACTIVE, PostStatus.SUSPENDED}),
    PostStatus.ACTIVE: frozenset({PostStatus.SUSPENDED}),
    PostStatus.SUSPENDED: frozenset({PostStatus.ACTIVE}),
}


def can_transition(current: PostStatus, target: PostStatus) -> bool:
    """Return True if a post may move from ``current`` to ``target``."""
    return target in _TRANSITIONS.get(current, frozenset())


def get_post(db: Session, post_id: int) -> Post:
    """Return the post or raise :class:`NotFoundError`."""
    post = db.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post


def _post_label(title: str | None) -> str:
    return f'"{title}"' if title else "Your post"


def freeze_if_due(db: Session, post_id: int, outbox: list[PendingNotification]) -> bool:
    """Freeze the post inside the caller's transaction once reports reach the threshold.

    Returns:
        True only for the caller whose conditional update froze the post.
    """
    result = db.execute(
        update(Post)
        .where(
            Post.id == post_id,
            Post.status != PostStatus.SUSPENDED,
            Post.report_count >= settings.report_freeze_threshold,
        )
        .values(is_frozen=True, frozen_at=utcnow(), status=PostStatus.SUSPENDED)
    )
    if result.rowcount != 1:
        return False

    owner_id, title, report_count = db.execute(
        select(Post.owner_id, Post.title, Post.report_count).where(Post.id == post_id)
    ).one()
    outbox.append(
        PendingNotification(
            user_id=owner_id,
            type=POST_FROZEN,
            message=(
                f"{_post_label(title)} has been frozen due to multiple reports. "
                "You can appeal this decision."
            ),
            metadata={"post_id": post_id, "report_count": report_count, "can_appeal": True},
        )
    )
    logger.info("Post %s frozen after %d reports", post_id, report_count)
    suspend_if_due(db, owner_id, outbox)
    return True


def evaluate_freeze(db: Session, post_id: int, *, notifier: Notifier | None = None) -> bool:
    """Freeze ``post_id`` if its report count crossed the threshold.

    Idempotent: once a post is suspended, further calls return False and send
    nothing.
    """
    get_post(db, post_id)

    def _work(session: Session) -> tuple[bool, list[PendingNotification]]:
        outbox: list[PendingNotification] = []
        return freeze_if_due(session, post_id, outbox), outbox

    frozen, outbox = run_in_transaction(db, _work)
    dispatch(notifier or DatabaseNotifier(db), outbox)
    return frozen


def restore_post(
    db: Session,
    post_id: int,
    *,
    reset_reports: bool,
    frozen_only: bool = False,
) -> bool:
    """Move a suspended post back to active inside the caller's transaction.

    Args:
        reset_reports: Also zero ``report_count`` (appeal approval only).
        frozen_only: Restore only report-frozen posts, leaving approver
            rejections untouched.

    Returns:
        True if this call changed the post.
    """
    conditions = [Post.id == post_id, Post.status == PostStatus.SUSPENDED]
    if frozen_only:
        conditions.append(Post.is_frozen.is_(True))

    values: dict[str, object] = {
        "status": PostStatus.ACTIVE,
        "is_frozen": False,
        "frozen_at": None,
    }
    if reset_reports:
        values["report_count"] = 0

    result = db.execute(update(Post).where(*conditions).values(**values))
    return result.rowcount == 1


def approve_post(
    db: Session,
    approver_id: int,
    post_id: int,
    notes: str | None = None,
    *,
    notifier: Notifier | None = None,
) -> Post:
    """Approve a draft post, or re-approve a suspended one after manual review.

    Re-approval clears the freeze but keeps ``report_count``; only an appeal
    approval resets it.
    """
    if db.get(User, approver_id) is None:
        raise NotFoundError("Approver not found")
    post = get_post(db, post_id)
    current = post.status
    if not can_transition(current, PostStatus.ACTIVE):
        raise InvalidStateError(f"Cannot approve a post that is {current.value}")

    def _work(session: Session) -> list[PendingNotification]:
        result = session.execute(
            update(Post)
            .where(Post.id == post_id, Post.status == current)
            .values(
                status=PostStatus.ACTIVE,
                approver_id=approver_id,
                approved_at=utcnow(),
                is_frozen=False,
                frozen_at=None,
                rejection_reason=None,
            )
        )
        if result.rowcount != 1:
            raise InvalidStateError("Post was modified concurrently; reload and retry")
        message = "Your post has been approved"
        if notes:
            message = f"{message}. Notes: {notes}"
        return [
            PendingNotification(
                user_id=post.owner_id,
                type=POST_APPROVED,
                message=message,
                metadata={"post_id": post_id, "approver_id": approver_id},
            )
        ]

    outbox = run_in_transaction(db, _work)
    logger.info("Post %s approved by %s (was %s)", post_id, approver_id, current.value)
    dispatch(notifier or DatabaseNotifier(db), outbox)
    db.refresh(post)
    return post


def reject_post(
    db: Session,
    approver_id: int,
    post_id: int,
    reason: str,
    *,
    notifier: Notifier | None = None,
) -> Post:
    """Reject a draft or active post and run the owner's suspension cascade."""
    if db.get(User, approver_id) is None:
        raise NotFoundError("Approver not found")
    post = get_post(db, post_id)
    current = post.status
    if not can_transition(current, PostStatus.SUSPENDED):
        raise InvalidStateError(f"Cannot reject a post that is {current.value}")

    def _work(session: Session) -> list[PendingNotification]:
        result = session.execute(
            update(Post)
            .where(Post.id == post_id, Post.status == current)
            .values(
                status=PostStatus.SUSPENDED,
                is_frozen=False,
                approver_id=approver_id,
                rejection_reason=reason,
            )
        )
        if result.rowcount != 1:
            raise InvalidStateError("Post was modified concurrently; reload and retry")
        outbox = [
            PendingNotification(
                user_id=post.owner_id,
                type=POST_REJECTED,
                message=f"Your post has been rejected. Reason: {reason}",
                metadata={"post_id": post_id, "approver_id": approver_id},
            )
        ]
        suspend_if_due(session, post.owner_id, outbox)
        return outbox

    outbox = run_in_transaction(db, _work)
    logger.info("Post %s rejected by %s", post_id, approver_id)
    dispatch(notifier or DatabaseNotifier(db), outbox)
    db.refresh(post)
    return post
