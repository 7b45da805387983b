from __future__ import annotations

import pytest

from postwatch.core.errors import AlreadyReportedError, InvalidStateError, NotFoundError
from postwatch.models import PostReport, PostStatus, ReportReason, ReportStatus, UserRole
from postwatch.services import notifications
from postwatch.services.reports import (
    get_post_reports,
    get_report_stats,
    list_reports,
    report_post,
    review_report,
)


def test_report_increments_counter(db_session, owner, make_post, reporters, notifier) -> None:
    post = make_post(owner)

    result = report_post(db_session, reporters[0].id, post.id, ReportReason.SPAM, notifier=notifier)

    assert result.post_report_count == 1
    assert result.frozen is False
    db_session.refresh(post)
    assert post.report_count == 1
    assert post.status == PostStatus.ACTIVE
    assert notifier.sent == []


def test_duplicate_report_is_rejected(db_session, owner, make_post, reporters, notifier) -> None:
    post = make_post(owner)
    report_post(db_session, reporters[0].id, post.id, ReportReason.SPAM, notifier=notifier)

    with pytest.raises(AlreadyReportedError) as excinfo:
        report_post(db_session, reporters[0].id, post.id, ReportReason.HARASSMENT, notifier=notifier)

    assert excinfo.value.code == "already_reported"
    assert db_session.query(PostReport).filter_by(post_id=post.id).count() == 1
    db_session.refresh(post)
    assert post.report_count == 1


def test_report_missing_post(db_session, reporters) -> None:
    with pytest.raises(NotFoundError):
        report_post(db_session, reporters[0].id, 9999, ReportReason.SPAM)


def test_fifth_report_freezes_exactly_once(db_session, owner, make_post, reporters, notifier) -> None:
    post = make_post(owner, report_count=0)

    results = [
        report_post(db_session, reporter.id, post.id, ReportReason.SPAM, notifier=notifier)
        for reporter in reporters
    ]

    assert [r.frozen for r in results] == [False] * 4 + [True] + [False] * 5
    assert results[-1].post_report_count == 10
    frozen_messages = notifier.of_type(notifications.POST_FROZEN)
    assert len(frozen_messages) == 1
    assert frozen_messages[0]["user_id"] == owner.id
    assert "appeal" in frozen_messages[0]["message"]

    db_session.refresh(post)
    assert post.status == PostStatus.SUSPENDED
    assert post.is_frozen is True
    assert post.frozen_at is not None


def test_freeze_from_four_reports(db_session, owner, make_post, reporters, notifier) -> None:
    post = make_post(owner, report_count=4)

    result = report_post(db_session, reporters[0].id, post.id, ReportReason.VIOLENCE, notifier=notifier)

    assert result.frozen is True
    assert result.post_report_count == 5


def test_freeze_threshold_follows_settings(db_session, owner, make_post, reporters, monkeypatch) -> None:
    from postwatch.core.settings import settings

    monkeypatch.setattr(settings, "report_freeze_threshold", 2)
    post = make_post(owner)

    report_post(db_session, reporters[0].id, post.id, ReportReason.SPAM)
    result = report_post(db_session, reporters[1].id, post.id, ReportReason.SPAM)

    assert result.frozen is True


def test_resolving_report_unfreezes_post(db_session, owner, admin, make_post, reporters, notifier) -> None:
    post = make_post(owner, report_count=4)
    report_post(db_session, reporters[0].id, post.id, ReportReason.SPAM, notifier=notifier)
    report = db_session.query(PostReport).filter_by(post_id=post.id).one()

    reviewed = review_report(
        db_session, admin.id, report.id, "resolved", "False alarm", notifier=notifier
    )

    assert reviewed.status == ReportStatus.RESOLVED
    assert reviewed.reviewed_by == admin.id
    assert reviewed.admin_notes == "False alarm"
    db_session.refresh(post)
    assert post.status == PostStatus.ACTIVE
    assert post.is_frozen is False
    assert post.report_count == 5
    assert len(notifier.of_type(notifications.POST_UNFROZEN)) == 1


def test_resolving_report_leaves_rejected_post_alone(
    db_session, owner, admin, make_post, reporters, notifier
) -> None:
    post = make_post(owner, status=PostStatus.SUSPENDED)
    report_post(db_session, reporters[0].id, post.id, ReportReason.SPAM)
    report = db_session.query(PostReport).filter_by(post_id=post.id).one()

    review_report(db_session, admin.id, report.id, ReportStatus.RESOLVED, notifier=notifier)

    db_session.refresh(post)
    assert post.status == PostStatus.SUSPENDED
    assert notifier.sent == []


def test_closed_report_cannot_be_reviewed_again(db_session, owner, admin, make_post, reporters) -> None:
    post = make_post(owner)
    report_post(db_session, reporters[0].id, post.id, ReportReason.SPAM)
    report = db_session.query(PostReport).filter_by(post_id=post.id).one()

    review_report(db_session, admin.id, report.id, "reviewed")
    review_report(db_session, admin.id, report.id, "dismissed")

    with pytest.raises(InvalidStateError):
        review_report(db_session, admin.id, report.id, "resolved")


def test_repeated_review_keeps_first_reviewer(
    db_session, owner, admin, make_user, make_post, reporters
) -> None:
    other_admin = make_user(role=UserRole.ADMIN)
    post = make_post(owner)
    report_post(db_session, reporters[0].id, post.id, ReportReason.SPAM)
    report = db_session.query(PostReport).filter_by(post_id=post.id).one()
    first = review_report(db_session, admin.id, report.id, "reviewed")
    reviewed_at = first.reviewed_at

    with pytest.raises(InvalidStateError):
        review_report(db_session, other_admin.id, report.id, "reviewed")

    db_session.refresh(report)
    assert report.reviewed_by == admin.id
    assert report.reviewed_at == reviewed_at


def test_review_rejects_unknown_status(db_session, admin) -> None:
    with pytest.raises(InvalidStateError):
        review_report(db_session, admin.id, 1, "escalated")
    with pytest.raises(NotFoundError):
        review_report(db_session, admin.id, 12345, "reviewed")


def test_listing_and_stats(db_session, owner, make_post, reporters, admin) -> None:
    first = make_post(owner)
    second = make_post(owner, is_frozen=True, status=PostStatus.SUSPENDED)
    for reporter in reporters[:3]:
        report_post(db_session, reporter.id, first.id, ReportReason.SPAM)
    report_post(db_session, reporters[0].id, second.id, ReportReason.NUDITY)
    dismissed = db_session.query(PostReport).filter_by(post_id=second.id).one()
    review_report(db_session, admin.id, dismissed.id, "dismissed")

    page = list_reports(db_session, page=1, limit=2)
    assert page.total_count == 4
    assert page.total_pages == 2
    assert page.has_next is True
    assert page.has_prev is False
    assert len(page.reports) == 2

    spam_only = list_reports(db_session, reason=ReportReason.SPAM)
    assert spam_only.total_count == 3
    pending = list_reports(db_session, status=ReportStatus.PENDING)
    assert pending.total_count == 3

    assert len(get_post_reports(db_session, first.id)) == 3

    stats = get_report_stats(db_session)
    assert stats.total_reports == 4
    assert stats.pending_reports == 3
    assert stats.dismissed_reports == 1
    assert stats.frozen_posts == 1
    assert stats.reports_by_reason[0].reason == ReportReason.SPAM
    assert stats.reports_by_reason[0].count == 3
