from __future__ import annotations

import pytest

from postwatch.core.errors import AlreadyAppealedError, InvalidStateError, NotFoundError
from postwatch.models import AppealStatus, PostStatus, UserRole
from postwatch.services import notifications
from postwatch.services.appeals import appeal_post, list_appeals, list_user_appeals, review_appeal
from postwatch.services.lifecycle import approve_post
from postwatch.services.reports import report_post


@pytest.fixture()
def frozen_post(owner, make_post):
    return make_post(owner, status=PostStatus.SUSPENDED, is_frozen=True, report_count=5)


def test_appeal_notifies_every_admin(db_session, owner, frozen_post, make_user, notifier) -> None:
    admins = [make_user(role=UserRole.ADMIN) for _ in range(2)]
    make_user(role=UserRole.APPROVER)

    appeal = appeal_post(db_session, owner.id, frozen_post.id, "Not spam", "See context", notifier=notifier)

    assert appeal.status == AppealStatus.PENDING
    assert appeal.additional_info == "See context"
    submitted = notifier.of_type(notifications.APPEAL_SUBMITTED)
    assert sorted(item["user_id"] for item in submitted) == sorted(a.id for a in admins)


def test_only_owner_may_appeal(db_session, frozen_post, make_user) -> None:
    stranger = make_user()

    with pytest.raises(InvalidStateError):
        appeal_post(db_session, stranger.id, frozen_post.id, "Please")


def test_active_post_cannot_be_appealed(db_session, owner, make_post) -> None:
    post = make_post(owner)

    with pytest.raises(InvalidStateError):
        appeal_post(db_session, owner.id, post.id, "Please")


def test_missing_post(db_session, owner) -> None:
    with pytest.raises(NotFoundError):
        appeal_post(db_session, owner.id, 31337, "Please")


def test_second_appeal_conflicts(db_session, owner, frozen_post) -> None:
    appeal_post(db_session, owner.id, frozen_post.id, "First")

    with pytest.raises(AlreadyAppealedError) as excinfo:
        appeal_post(db_session, owner.id, frozen_post.id, "Second")

    assert excinfo.value.code == "already_appealed"
    assert len(list_user_appeals(db_session, owner.id)) == 1


def test_approved_appeal_restores_post(db_session, owner, admin, frozen_post, reporters, notifier) -> None:
    appeal = appeal_post(db_session, owner.id, frozen_post.id, "Context missing")

    reviewed = review_appeal(db_session, admin.id, appeal.id, "approved", "Agreed", notifier=notifier)

    assert reviewed.status == AppealStatus.APPROVED
    assert reviewed.reviewed_by == admin.id
    assert reviewed.reviewed_at is not None
    db_session.refresh(frozen_post)
    assert frozen_post.status == PostStatus.ACTIVE
    assert frozen_post.is_frozen is False
    assert frozen_post.frozen_at is None
    assert frozen_post.report_count == 0
    [message] = notifier.of_type(notifications.APPEAL_APPROVED)
    assert message["user_id"] == owner.id

    # A single new report must not re-freeze the restored post.
    result = report_post(db_session, reporters[0].id, frozen_post.id, "spam")
    assert result.frozen is False
    assert result.post_report_count == 1


def test_approved_appeal_on_already_restored_post(
    db_session, owner, admin, approver, frozen_post, notifier
) -> None:
    appeal = appeal_post(db_session, owner.id, frozen_post.id, "Context missing")
    approve_post(db_session, approver.id, frozen_post.id, notifier=notifier)

    reviewed = review_appeal(db_session, admin.id, appeal.id, "approved", notifier=notifier)

    assert reviewed.status == AppealStatus.APPROVED
    [message] = notifier.of_type(notifications.APPEAL_APPROVED)
    assert "restored" not in message["message"]
    assert "already active" in message["message"]
    db_session.refresh(frozen_post)
    assert frozen_post.status == PostStatus.ACTIVE
    # Nothing was restored, so the report counter keeps its value.
    assert frozen_post.report_count == 5


def test_rejected_appeal_keeps_post_suspended(db_session, owner, admin, frozen_post, notifier) -> None:
    appeal = appeal_post(db_session, owner.id, frozen_post.id, "Context missing")

    reviewed = review_appeal(db_session, admin.id, appeal.id, AppealStatus.REJECTED, notifier=notifier)

    assert reviewed.status == AppealStatus.REJECTED
    db_session.refresh(frozen_post)
    assert frozen_post.status == PostStatus.SUSPENDED
    assert frozen_post.report_count == 5
    assert len(notifier.of_type(notifications.APPEAL_REJECTED)) == 1


def test_decided_appeal_is_terminal(db_session, owner, admin, frozen_post) -> None:
    appeal = appeal_post(db_session, owner.id, frozen_post.id, "Context missing")
    review_appeal(db_session, admin.id, appeal.id, "rejected")

    with pytest.raises(InvalidStateError):
        review_appeal(db_session, admin.id, appeal.id, "approved")


def test_review_validation(db_session, admin) -> None:
    with pytest.raises(InvalidStateError):
        review_appeal(db_session, admin.id, 1, "pending")
    with pytest.raises(NotFoundError):
        review_appeal(db_session, admin.id, 999, "approved")


def test_list_appeals(db_session, make_user, make_post, admin) -> None:
    owners = [make_user() for _ in range(3)]
    appeals = []
    for user in owners:
        post = make_post(user, status=PostStatus.SUSPENDED)
        appeals.append(appeal_post(db_session, user.id, post.id, "Please"))
    review_appeal(db_session, admin.id, appeals[0].id, "approved")

    pending, total = list_appeals(db_session, status=AppealStatus.PENDING)
    assert total == 2
    assert {a.id for a in pending} == {appeals[1].id, appeals[2].id}

    everything, total = list_appeals(db_session, page=2, limit=2)
    assert total == 3
    assert len(everything) == 1
