from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from postwatch.core.errors import InternalError, NotFoundError
from postwatch.db.transaction import run_in_transaction
from postwatch.models import Notification, User
from postwatch.services.notifications import DatabaseNotifier, PendingNotification, dispatch


def _transient() -> OperationalError:
    return OperationalError("UPDATE post", {}, Exception("database is locked"))


def test_transient_conflict_is_retried(db_session) -> None:
    calls = []

    def work(session):
        calls.append(1)
        if len(calls) == 1:
            raise _transient()
        session.add(User(username="retried"))
        return "done"

    assert run_in_transaction(db_session, work, attempts=3, backoff=0) == "done"
    assert len(calls) == 2
    assert db_session.query(User).filter_by(username="retried").count() == 1


def test_retries_exhausted(db_session) -> None:
    def work(_session):
        raise _transient()

    with pytest.raises(InternalError):
        run_in_transaction(db_session, work, attempts=2, backoff=0)


def test_domain_error_rolls_back(db_session) -> None:
    def work(session):
        session.add(User(username="ghost"))
        session.flush()
        raise NotFoundError("Post not found")

    with pytest.raises(NotFoundError):
        run_in_transaction(db_session, work)

    assert db_session.query(User).filter_by(username="ghost").count() == 0


def test_dispatch_skips_failures(failing_notifier, caplog) -> None:
    pending = [PendingNotification(user_id=1, type="post_frozen", message="frozen")]

    assert dispatch(failing_notifier, pending) == 0
    assert "Failed to deliver post_frozen notification" in caplog.text


def test_database_notifier_persists(db_session, owner) -> None:
    delivered = dispatch(
        DatabaseNotifier(db_session),
        [
            PendingNotification(owner.id, "post_liked", "someone liked your post", {"post_id": 1}),
            PendingNotification(owner.id, "view_milestone", "100 views"),
        ],
    )

    assert delivered == 2
    rows = db_session.query(Notification).order_by(Notification.id).all()
    assert [row.type for row in rows] == ["post_liked", "view_milestone"]
    assert rows[0].metadata_ == {"post_id": 1}
    assert rows[1].metadata_ is None
    assert rows[0].is_read is False
