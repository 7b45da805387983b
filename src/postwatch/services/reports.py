"""Report aggregation: user reports, admin review and report statistics."""

from __future__ import annotations

import logging
import math

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from postwatch.core.errors import AlreadyReportedError, InvalidStateError, NotFoundError
from postwatch.core.settings import settings
from postwatch.db.time import utcnow
from postwatch.db.transaction import run_in_transaction
from postwatch.models import Post, PostReport, ReportReason, ReportStatus
from postwatch.schemas.moderation import ReasonCount, ReportPage, ReportResponse, ReportResult, ReportStats
from postwatch.services.lifecycle import freeze_if_due, get_post, restore_post
from postwatch.services.notifications import (
    POST_UNFROZEN,
    DatabaseNotifier,
    Notifier,
    PendingNotification,
    dispatch,
)

logger = logging.getLogger(__name__)

# Reviews that close a report for good.
_TERMINAL_REPORT_STATUSES = frozenset({ReportStatus.RESOLVED, ReportStatus.DISMISSED})


def report_post(
    db: Session,
    reporter_id: int,
    post_id: int,
    reason: ReportReason,
    description: str | None = None,
    *,
    notifier: Notifier | None = None,
) -> ReportResult:
    """File a report against a post and freeze it once the threshold is reached.

    The report row and the counter increment commit together. Reaching the
    freeze threshold runs the conditional freeze in the same transaction, so
    among concurrent reporters exactly one observes ``frozen=True`` and the
    owner is notified once.

    Raises:
        NotFoundError: If the post does not exist.
        AlreadyReportedError: If this user already reported the post.
    """
    get_post(db, post_id)

    def _work(session: Session) -> tuple[ReportResult, list[PendingNotification]]:
        outbox: list[PendingNotification] = []
        report = PostReport(
            post_id=post_id,
            reporter_user_id=reporter_id,
            reason=ReportReason(reason),
            description=description,
            status=ReportStatus.PENDING,
        )
        try:
            with session.begin_nested():  # SAVEPOINT
                session.add(report)
                session.flush()
        except IntegrityError as exc:
            raise AlreadyReportedError() from exc

        session.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(report_count=Post.report_count + 1)
        )
        report_count = session.scalar(select(Post.report_count).where(Post.id == post_id)) or 0

        frozen = False
        if report_count >= settings.report_freeze_threshold:
            frozen = freeze_if_due(session, post_id, outbox)

        result = ReportResult(report_id=report.id, post_report_count=report_count, frozen=frozen)
        return result, outbox

    result, outbox = run_in_transaction(db, _work)
    logger.info(
        "User %s reported post %s (%s); report_count=%d",
        reporter_id,
        post_id,
        ReportReason(reason).value,
        result.post_report_count,
    )
    dispatch(notifier or DatabaseNotifier(db), outbox)
    return result


def review_report(
    db: Session,
    admin_id: int,
    report_id: int,
    status: ReportStatus | str,
    admin_notes: str | None = None,
    *,
    notifier: Notifier | None = None,
) -> PostReport:
    """Record an admin decision on a report.

    ``resolved`` also unfreezes the reported post if it is currently frozen
    by reports. The post's ``report_count`` is kept; only an approved appeal
    resets it.
    """
    try:
        new_status = ReportStatus(status)
    except ValueError as exc:
        raise InvalidStateError(f"Invalid review status: {status}") from exc
    if new_status == ReportStatus.PENDING:
        raise InvalidStateError("A report cannot be moved back to pending")

    report = db.get(PostReport, report_id)
    if report is None:
        raise NotFoundError("Report not found")
    if report.status in _TERMINAL_REPORT_STATUSES:
        raise InvalidStateError(f"Report is already {report.status.value}")
    if report.status == new_status:
        raise InvalidStateError(f"Report is already {new_status.value}")
    previous = report.status

    def _work(session: Session) -> list[PendingNotification]:
        outbox: list[PendingNotification] = []
        result = session.execute(
            update(PostReport)
            .where(PostReport.id == report_id, PostReport.status == previous)
            .values(
                status=new_status,
                reviewed_by=admin_id,
                reviewed_at=utcnow(),
                admin_notes=admin_notes,
            )
        )
        if result.rowcount != 1:
            raise InvalidStateError("Report was reviewed concurrently")

        if new_status == ReportStatus.RESOLVED and restore_post(
            session, report.post_id, reset_reports=False, frozen_only=True
        ):
            owner_id = session.scalar(select(Post.owner_id).where(Post.id == report.post_id))
            outbox.append(
                PendingNotification(
                    user_id=owner_id,
                    type=POST_UNFROZEN,
                    message="Your post has been reviewed and unfrozen by an administrator.",
                    metadata={"post_id": report.post_id, "report_id": report_id},
                )
            )
            logger.info("Post %s unfrozen by report %s resolution", report.post_id, report_id)
        return outbox

    outbox = run_in_transaction(db, _work)
    logger.info("Report %s marked %s by admin %s", report_id, new_status.value, admin_id)
    dispatch(notifier or DatabaseNotifier(db), outbox)
    db.refresh(report)
    return report


def list_reports(
    db: Session,
    *,
    status: ReportStatus | None = None,
    reason: ReportReason | None = None,
    page: int = 1,
    limit: int = 20,
) -> ReportPage:
    """Return one page of reports, newest first."""
    page = max(1, page)
    limit = max(1, min(limit, 100))

    conditions = []
    if status is not None:
        conditions.append(PostReport.status == status)
    if reason is not None:
        conditions.append(PostReport.reason == reason)

    total = db.scalar(select(func.count()).select_from(PostReport).where(*conditions)) or 0
    rows = db.scalars(
        select(PostReport)
        .where(*conditions)
        .order_by(PostReport.created_at.desc(), PostReport.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    total_pages = math.ceil(total / limit) if total else 0
    return ReportPage(
        reports=[ReportResponse.model_validate(row) for row in rows],
        page=page,
        limit=limit,
        total_count=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


def get_post_reports(db: Session, post_id: int) -> list[PostReport]:
    get_post(db, post_id)
    return list(
        db.scalars(
            select(PostReport)
            .where(PostReport.post_id == post_id)
            .order_by(PostReport.created_at.desc(), PostReport.id.desc())
        )
    )


def get_report_stats(db: Session) -> ReportStats:
    """Aggregate report counts by status and reason plus the number of frozen posts."""
    by_status = dict(
        db.execute(
            select(PostReport.status, func.count()).group_by(PostReport.status)
        ).all()
    )
    by_reason = db.execute(
        select(PostReport.reason, func.count())
        .group_by(PostReport.reason)
        .order_by(func.count().desc())
    ).all()
    frozen_posts = db.scalar(
        select(func.count()).select_from(Post).where(Post.is_frozen.is_(True))
    ) or 0
    return ReportStats(
        total_reports=sum(by_status.values()),
        pending_reports=by_status.get(ReportStatus.PENDING, 0),
        reviewed_reports=by_status.get(ReportStatus.REVIEWED, 0),
        resolved_reports=by_status.get(ReportStatus.RESOLVED, 0),
        dismissed_reports=by_status.get(ReportStatus.DISMISSED, 0),
        frozen_posts=frozen_posts,
        reports_by_reason=[ReasonCount(reason=reason, count=count) for reason, count in by_reason],
    )

