"""User suspension cascade.

A user is suspended automatically once enough of their posts are suspended.
The count is always recomputed from the ``post`` table, so posts restored by
an appeal stop counting on the next evaluation without any bookkeeping.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from postwatch.core.errors import InvalidStateError, NotFoundError
from postwatch.core.settings import settings
from postwatch.db.transaction import run_in_transaction
from postwatch.models import Post, PostStatus, User, UserStatus
from postwatch.schemas.moderation import SuspensionResult
from postwatch.services.notifications import (
    ACCOUNT_REACTIVATED,
    ACCOUNT_SUSPENDED,
    DatabaseNotifier,
    Notifier,
    PendingNotification,
    dispatch,
)

logger = logging.getLogger(__name__)


def get_suspended_posts_count(db: Session, user_id: int) -> int:
    """Return how many of the user's posts are currently suspended."""
    return db.scalar(
        select(func.count()).select_from(Post).where(
            Post.owner_id == user_id,
            Post.status == PostStatus.SUSPENDED,
        )
    ) or 0


def suspend_if_due(
    db: Session,
    user_id: int,
    outbox: list[PendingNotification],
) -> SuspensionResult:
    """Suspend ``user_id`` inside the caller's transaction when the threshold is met.

    The status change is a conditional update on ``status = 'active'`` so
    concurrent cascades for the same user produce exactly one notification.
    """
    threshold = settings.suspended_posts_threshold
    count = get_suspended_posts_count(db, user_id)
    status = db.scalar(select(User.status).where(User.id == user_id))

    if status is None:
        return SuspensionResult(
            suspended=False,
            suspended_posts_count=count,
            message="User not found",
        )

    if count < threshold:
        return SuspensionResult(
            suspended=False,
            suspended_posts_count=count,
            message=f"User has {count} suspended posts (threshold: {threshold})",
        )

    if status != UserStatus.ACTIVE:
        return SuspensionResult(
            suspended=False,
            suspended_posts_count=count,
            message="already suspended" if status == UserStatus.SUSPENDED else f"User is {status.value}",
        )

    result = db.execute(
        update(User)
        .where(User.id == user_id, User.status == UserStatus.ACTIVE)
        .values(status=UserStatus.SUSPENDED)
    )
    if result.rowcount != 1:
        # Another request won the race and already suspended the account.
        return SuspensionResult(
            suspended=False,
            suspended_posts_count=count,
            message="already suspended",
        )

    outbox.append(
        PendingNotification(
            user_id=user_id,
            type=ACCOUNT_SUSPENDED,
            message=(
                f"Your account has been automatically suspended due to {count} "
                "suspended posts. Please contact support for review."
            ),
            metadata={"suspended_posts_count": count},
        )
    )
    logger.info(
        "User %s automatically suspended due to %d suspended posts", user_id, count
    )
    return SuspensionResult(
        suspended=True,
        suspended_posts_count=count,
        message=f"User automatically suspended due to {count} suspended posts",
    )


def check_and_suspend_user(
    db: Session,
    user_id: int,
    *,
    notifier: Notifier | None = None,
) -> SuspensionResult:
    """Evaluate the suspension cascade for a user and commit the outcome.

    Raises:
        NotFoundError: If the user does not exist.
    """
    if db.get(User, user_id) is None:
        raise NotFoundError("User not found")

    def _work(session: Session) -> tuple[SuspensionResult, list[PendingNotification]]:
        outbox: list[PendingNotification] = []
        return suspend_if_due(session, user_id, outbox), outbox

    result, outbox = run_in_transaction(db, _work)
    dispatch(notifier or DatabaseNotifier(db), outbox)
    return result


def reactivate_user(
    db: Session,
    admin_id: int,
    user_id: int,
    *,
    notifier: Notifier | None = None,
) -> User:
    """Return a suspended or frozen account to active (admin action).

    Reactivation does not touch the user's posts; if they still hold enough
    suspended posts the next cascade will suspend the account again.
    """
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if user.status == UserStatus.ACTIVE:
        raise InvalidStateError("User is already active")

    def _work(session: Session) -> list[PendingNotification]:
        result = session.execute(
            update(User)
            .where(User.id == user_id, User.status != UserStatus.ACTIVE)
            .values(status=UserStatus.ACTIVE)
        )
        if result.rowcount != 1:
            raise InvalidStateError("User is already active")
        return [
            PendingNotification(
                user_id=user_id,
                type=ACCOUNT_REACTIVATED,
                message="Your account has been reactivated by an administrator.",
                metadata={"admin_id": admin_id},
            )
        ]

    outbox = run_in_transaction(db, _work)
    logger.info("User %s reactivated by admin %s", user_id, admin_id)
    dispatch(notifier or DatabaseNotifier(db), outbox)
    db.refresh(user)
    return user
