from __future__ import annotations

import pytest

from postwatch.core.errors import InvalidStateError, NotFoundError
from postwatch.models import PostStatus, UserStatus
from postwatch.services import notifications
from postwatch.services.lifecycle import evaluate_freeze
from postwatch.services.suspension import (
    check_and_suspend_user,
    get_suspended_posts_count,
    reactivate_user,
)


def test_two_suspended_posts_keep_user_active(db_session, owner, make_post, notifier) -> None:
    make_post(owner, status=PostStatus.SUSPENDED)
    make_post(owner, status=PostStatus.SUSPENDED)
    make_post(owner, status=PostStatus.ACTIVE)

    result = check_and_suspend_user(db_session, owner.id, notifier=notifier)

    assert result.suspended is False
    assert result.suspended_posts_count == 2
    assert result.message == "User has 2 suspended posts (threshold: 3)"
    db_session.refresh(owner)
    assert owner.status == UserStatus.ACTIVE


def test_third_post_suspends_and_fourth_is_noop(db_session, owner, make_post, notifier) -> None:
    for _ in range(3):
        make_post(owner, status=PostStatus.SUSPENDED)

    first = check_and_suspend_user(db_session, owner.id, notifier=notifier)
    assert first.suspended is True
    assert first.suspended_posts_count == 3

    make_post(owner, status=PostStatus.SUSPENDED)
    second = check_and_suspend_user(db_session, owner.id, notifier=notifier)

    assert second.suspended is False
    assert second.message == "already suspended"
    assert second.suspended_posts_count == 4
    db_session.refresh(owner)
    assert owner.status == UserStatus.SUSPENDED

    [message] = notifier.of_type(notifications.ACCOUNT_SUSPENDED)
    assert message["user_id"] == owner.id
    assert "due to 3 suspended posts" in message["message"]


def test_three_independent_freezes_suspend_owner(db_session, owner, make_post, notifier) -> None:
    posts = [make_post(owner, report_count=5) for _ in range(3)]

    evaluate_freeze(db_session, posts[0].id, notifier=notifier)
    evaluate_freeze(db_session, posts[1].id, notifier=notifier)
    db_session.refresh(owner)
    assert owner.status == UserStatus.ACTIVE

    evaluate_freeze(db_session, posts[2].id, notifier=notifier)
    db_session.refresh(owner)
    assert owner.status == UserStatus.SUSPENDED
    assert len(notifier.of_type(notifications.POST_FROZEN)) == 3
    assert len(notifier.of_type(notifications.ACCOUNT_SUSPENDED)) == 1


def test_suspended_posts_count(db_session, owner, make_post) -> None:
    make_post(owner, status=PostStatus.SUSPENDED)
    make_post(owner, status=PostStatus.DRAFT)

    assert get_suspended_posts_count(db_session, owner.id) == 1


def test_missing_user(db_session) -> None:
    with pytest.raises(NotFoundError):
        check_and_suspend_user(db_session, 777)


def test_reactivate_user(db_session, owner, admin, make_post, notifier) -> None:
    for _ in range(3):
        make_post(owner, status=PostStatus.SUSPENDED)
    check_and_suspend_user(db_session, owner.id, notifier=notifier)

    user = reactivate_user(db_session, admin.id, owner.id, notifier=notifier)

    assert user.status == UserStatus.ACTIVE
    assert len(notifier.of_type(notifications.ACCOUNT_REACTIVATED)) == 1
    with pytest.raises(InvalidStateError):
        reactivate_user(db_session, admin.id, owner.id)


def test_notification_failure_does_not_undo_suspension(
    db_session, owner, make_post, failing_notifier
) -> None:
    for _ in range(3):
        make_post(owner, status=PostStatus.SUSPENDED)

    result = check_and_suspend_user(db_session, owner.id, notifier=failing_notifier)

    assert result.suspended is True
    db_session.refresh(owner)
    assert owner.status == UserStatus.SUSPENDED
