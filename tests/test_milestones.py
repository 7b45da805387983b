from __future__ import annotations

from datetime import timedelta

import pytest

from postwatch.models import Notification
from postwatch.services import notifications
from postwatch.services.milestones import check_milestone, format_milestone_message, get_post_milestones


@pytest.mark.parametrize(
    ("views", "expected"),
    [
        (100, "Great! Your post reached 100 views!"),
        (1_000, "Congratulations! Your post reached 1.0K views!"),
        (5_000, "Congratulations! Your post reached 5.0K views!"),
        (25_000, "Congratulations! Your post reached 25K views!"),
        (1_000_000, "Amazing! Your post reached 1.0M views!"),
    ],
)
def test_format_milestone_message(views: int, expected: str) -> None:
    assert format_milestone_message(views) == expected


def test_highest_unnotified_milestone_is_sent(db_session, owner, make_post, notifier) -> None:
    post = make_post(owner, views=1_200)

    check_milestone(db_session, post.id, 1_200, owner.id, notifier=notifier)

    [message] = notifier.of_type(notifications.VIEW_MILESTONE)
    assert message["metadata"] == {"post_id": post.id, "milestone": 1_000, "views": 1_200}
    assert message["message"].endswith('- "Sunset over the bay"')


def test_same_milestone_is_not_repeated(db_session, owner, make_post, stored_notifications) -> None:
    post = make_post(owner, views=150)

    check_milestone(db_session, post.id, 150, owner.id)
    check_milestone(db_session, post.id, 170, owner.id)

    stored = stored_notifications(owner.id, notifications.VIEW_MILESTONE)
    assert len(stored) == 1
    assert stored[0].metadata_["milestone"] == 100


def test_recent_notification_suppresses_small_growth(
    db_session, owner, make_post, stored_notifications
) -> None:
    first = make_post(owner, views=100)
    second = make_post(owner, views=105)

    check_milestone(db_session, first.id, 100, owner.id)
    check_milestone(db_session, second.id, 105, owner.id)

    assert len(stored_notifications(owner.id, notifications.VIEW_MILESTONE)) == 1


def test_growth_past_window_threshold_notifies(db_session, owner, make_post, stored_notifications) -> None:
    first = make_post(owner, views=100)
    second = make_post(owner, views=500)

    check_milestone(db_session, first.id, 100, owner.id)
    check_milestone(db_session, second.id, 500, owner.id)

    assert len(stored_notifications(owner.id, notifications.VIEW_MILESTONE)) == 2


def test_viral_post_does_not_silence_other_posts(
    db_session, owner, make_post, stored_notifications
) -> None:
    viral = make_post(owner, views=50_000)
    fresh = make_post(owner, views=100)

    check_milestone(db_session, viral.id, 50_000, owner.id)
    check_milestone(db_session, fresh.id, 100, owner.id)

    stored = stored_notifications(owner.id, notifications.VIEW_MILESTONE)
    assert [n.metadata_["milestone"] for n in stored] == [50_000, 100]
    assert stored[1].metadata_["post_id"] == fresh.id


def test_young_post_is_skipped(db_session, owner, make_post, notifier) -> None:
    post = make_post(owner, views=100, age=timedelta(minutes=10))

    check_milestone(db_session, post.id, 100, owner.id, notifier=notifier)

    assert notifier.sent == []


def test_notifications_disabled(db_session, make_user, make_post, notifier) -> None:
    quiet = make_user(notifications_enabled=False)
    post = make_post(quiet, views=100)

    check_milestone(db_session, post.id, 100, quiet.id, notifier=notifier)

    assert notifier.sent == []


def test_errors_are_swallowed(db_session, owner, make_post, mocker, caplog) -> None:
    post = make_post(owner, views=100)
    mocker.patch(
        "postwatch.services.milestones._notified_milestones",
        side_effect=RuntimeError("boom"),
    )

    check_milestone(db_session, post.id, 100, owner.id)

    assert "Milestone check failed" in caplog.text
    assert db_session.query(Notification).count() == 0


def test_get_post_milestones(db_session, owner, make_post) -> None:
    post = make_post(owner, views=750)

    stats = get_post_milestones(db_session, post.id)

    assert stats.current_views == 750
    assert stats.reached_milestones == [100, 500]
    assert stats.next_milestone == 1_000
    assert stats.progress_to_next == 75.0


def test_get_post_milestones_past_ladder(db_session, owner, make_post) -> None:
    post = make_post(owner, views=2_000_000)

    stats = get_post_milestones(db_session, post.id)

    assert stats.next_milestone is None
    assert stats.progress_to_next == 100.0
    assert stats.reached_milestones[-1] == 1_000_000
