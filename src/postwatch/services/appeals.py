"""Appeal submission and admin review for suspended posts."""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from postwatch.core.errors import AlreadyAppealedError, InvalidStateError, NotFoundError
from postwatch.db.time import utcnow
from postwatch.db.transaction import run_in_transaction
from postwatch.models import AppealStatus, PostAppeal, PostStatus, User, UserRole
from postwatch.services.lifecycle import get_post, restore_post
from postwatch.services.notifications import (
    APPEAL_APPROVED,
    APPEAL_REJECTED,
    APPEAL_SUBMITTED,
    DatabaseNotifier,
    Notifier,
    PendingNotification,
    dispatch,
)

logger = logging.getLogger(__name__)


def appeal_post(
    db: Session,
    user_id: int,
    post_id: int,
    reason: str,
    additional_info: str | None = None,
    *,
    notifier: Notifier | None = None,
) -> PostAppeal:
    """Open an appeal against a suspended post and alert every admin.

    Raises:
        NotFoundError: If the post does not exist.
        InvalidStateError: If the caller does not own the post or it is not suspended.
        AlreadyAppealedError: If the caller already appealed this post.
    """
    post = get_post(db, post_id)
    if post.owner_id != user_id:
        raise InvalidStateError("You can only appeal your own posts")
    if post.status != PostStatus.SUSPENDED:
        raise InvalidStateError("Only suspended posts can be appealed")

    def _work(session: Session) -> tuple[PostAppeal, list[PendingNotification]]:
        appeal = PostAppeal(
            post_id=post_id,
            appellant_user_id=user_id,
            appeal_reason=reason,
            additional_info=additional_info,
            status=AppealStatus.PENDING,
        )
        try:
            with session.begin_nested():  # SAVEPOINT
                session.add(appeal)
                session.flush()
        except IntegrityError as exc:
            raise AlreadyAppealedError() from exc

        admin_ids = session.scalars(select(User.id).where(User.role == UserRole.ADMIN)).all()
        outbox = [
            PendingNotification(
                user_id=admin_id,
                type=APPEAL_SUBMITTED,
                message=f"New appeal submitted for post {post_id}",
                metadata={"post_id": post_id, "appeal_id": appeal.id, "appellant_id": user_id},
            )
            for admin_id in admin_ids
        ]
        return appeal, outbox

    appeal, outbox = run_in_transaction(db, _work)
    logger.info("User %s appealed post %s (appeal %s)", user_id, post_id, appeal.id)
    dispatch(notifier or DatabaseNotifier(db), outbox)
    return appeal


def review_appeal(
    db: Session,
    admin_id: int,
    appeal_id: int,
    decision: AppealStatus | str,
    admin_notes: str | None = None,
    *,
    notifier: Notifier | None = None,
) -> PostAppeal:
    """Approve or reject a pending appeal.

    Approval restores the post to active, clears the freeze and resets its
    report count to zero in the same transaction that closes the appeal.
    Rejection leaves the post suspended. The owner is notified either way.
    """
    try:
        outcome = AppealStatus(decision)
    except ValueError as exc:
        raise InvalidStateError(f"Invalid appeal decision: {decision}") from exc
    if outcome == AppealStatus.PENDING:
        raise InvalidStateError("Decision must be approved or rejected")

    appeal = db.get(PostAppeal, appeal_id)
    if appeal is None:
        raise NotFoundError("Appeal not found")
    if appeal.status != AppealStatus.PENDING:
        raise InvalidStateError("Appeal has already been reviewed")

    def _work(session: Session) -> list[PendingNotification]:
        result = session.execute(
            update(PostAppeal)
            .where(PostAppeal.id == appeal_id, PostAppeal.status == AppealStatus.PENDING)
            .values(
                status=outcome,
                reviewed_by=admin_id,
                reviewed_at=utcnow(),
                admin_notes=admin_notes,
            )
        )
        if result.rowcount != 1:
            raise InvalidStateError("Appeal has already been reviewed")

        if outcome == AppealStatus.APPROVED:
            if restore_post(session, appeal.post_id, reset_reports=True):
                message = "Your appeal has been approved and your post has been restored."
            else:
                logger.info(
                    "Appeal %s approved but post %s was no longer suspended", appeal_id, appeal.post_id
                )
                message = "Your appeal has been approved. Your post is already active."
            type_ = APPEAL_APPROVED
        else:
            message = "Your appeal has been reviewed and rejected. The post remains suspended."
            type_ = APPEAL_REJECTED
        if admin_notes:
            message = f"{message} Notes: {admin_notes}"

        return [
            PendingNotification(
                user_id=appeal.appellant_user_id,
                type=type_,
                message=message,
                metadata={"post_id": appeal.post_id, "appeal_id": appeal_id},
            )
        ]

    outbox = run_in_transaction(db, _work)
    logger.info("Appeal %s %s by admin %s", appeal_id, outcome.value, admin_id)
    dispatch(notifier or DatabaseNotifier(db), outbox)
    db.refresh(appeal)
    return appeal


def list_user_appeals(db: Session, user_id: int) -> list[PostAppeal]:
    return list(
        db.scalars(
            select(PostAppeal)
            .where(PostAppeal.appellant_user_id == user_id)
            .order_by(PostAppeal.created_at.desc(), PostAppeal.id.desc())
        )
    )


def list_appeals(
    db: Session,
    *,
    status: AppealStatus | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[PostAppeal], int]:
    """Return one page of appeals (oldest pending first) and the total count."""
    page = max(1, page)
    limit = max(1, min(limit, 100))
    conditions = [PostAppeal.status == status] if status is not None else []

    total = db.scalar(select(func.count()).select_from(PostAppeal).where(*conditions)) or 0
    rows = db.scalars(
        select(PostAppeal)
        .where(*conditions)
        .order_by(PostAppeal.created_at.asc(), PostAppeal.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return list(rows), total
