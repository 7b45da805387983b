# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from datetime import timedelta
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.pop("REDIS_URL", None)

from postwatch.core.security import create_access_token
from postwatch.core.settings import settings
from postwatch.db.session import Base, enable_sqlite_savepoints
from postwatch.db.session import get_db as app_get_session
from postwatch.db.time import utcnow
from postwatch.main import app as fastapi_app
from postwatch.models import Notification, Post, PostStatus, User, UserRole, UserStatus
from postwatch.services import milestones
from postwatch.services.cache import Cache, get_cache

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)


class RecordingNotifier:
    """Notifier double that keeps every delivered message in memory."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[dict[str, Any]] = []

    def notify(
        self,
        user_id: int,
        type_: str,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        if self.fail:
            raise RuntimeError("notification backend down")
        self.sent.append(
            {"user_id": user_id, "type": type_, "message": message, "metadata": metadata or {}}
        )

    def of_type(self, type_: str) -> list[dict[str, Any]]:
        return [item for item in self.sent if item["type"] == type_]


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep retry backoff out of the test run time."""
    monkeypatch.setattr(settings, "like_toggle_backoff_seconds", 0.0)
    monkeypatch.setattr(settings, "transaction_backoff_seconds", 0.0)


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def failing_notifier() -> RecordingNotifier:
    return RecordingNotifier(fail=True)


@pytest.fixture()
def no_cache() -> Cache:
    return Cache(None)


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    def _make_user(
        role: UserRole = UserRole.USER,
        status: UserStatus = UserStatus.ACTIVE,
        notifications_enabled: bool = True,
        username: str | None = None,
    ) -> User:
        index = next(_USER_COUNTER)
        user = User(
            username=username or f"user{index}",
            email=f"user{index}@example.com",
            role=role,
            status=status,
            notifications_enabled=notifications_enabled,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture()
def make_post(db_session: Session) -> Callable[..., Post]:
    def _make_post(
        owner: User,
        status: PostStatus = PostStatus.ACTIVE,
        title: str | None = "Sunset over the bay",
        report_count: int = 0,
        views: int = 0,
        likes: int = 0,
        age: timedelta = timedelta(hours=2),
        is_frozen: bool = False,
    ) -> Post:
        post = Post(
            owner_id=owner.id,
            title=title,
            body="body",
            status=status,
            is_frozen=is_frozen,
            frozen_at=utcnow() if is_frozen else None,
            report_count=report_count,
            views=views,
            likes=likes,
            created_at=utcnow() - age,
        )
        db_session.add(post)
        db_session.commit()
        return post

    return _make_post


@pytest.fixture()
def owner(make_user: Callable[..., User]) -> User:
    return make_user(username="owner")


@pytest.fixture()
def admin(make_user: Callable[..., User]) -> User:
    return make_user(role=UserRole.ADMIN, username="admin")


@pytest.fixture()
def approver(make_user: Callable[..., User]) -> User:
    return make_user(role=UserRole.APPROVER, username="approver")


@pytest.fixture()
def reporters(make_user: Callable[..., User]) -> list[User]:
    return [make_user() for _ in range(10)]


@pytest.fixture()
def stored_notifications(db_session: Session) -> Callable[..., list[Notification]]:
    def _stored(user_id: int, type_: str | None = None) -> list[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if type_ is not None:
            query = query.where(Notification.type == type_)
        return list(db_session.scalars(query.order_by(Notification.id)))

    return _stored


@pytest.fixture()
def auth_headers() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture()
def app(db_session: Session, no_cache: Cache) -> Iterator[FastAPI]:
    def _get_session_override() -> Iterator[Session]:
        yield db_session

    fastapi_app.dependency_overrides[app_get_session] = _get_session_override
    fastapi_app.dependency_overrides[get_cache] = lambda: no_cache
    try:
        yield fastapi_app
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def scheduled_milestones(monkeypatch: pytest.MonkeyPatch) -> list[tuple[int, int, int]]:
    """Capture milestone checks scheduled as background tasks by the API."""
    calls: list[tuple[int, int, int]] = []
    monkeypatch.setattr(
        milestones,
        "run_milestone_check",
        lambda post_id, views, owner_id: calls.append((post_id, views, owner_id)),
    )
    return calls


@pytest.fixture()
def client(app: FastAPI, scheduled_milestones: list[tuple[int, int, int]]) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client
