"""Background moderation sweep.

Request handlers evaluate thresholds as they go, but a crash between commit
and cascade, or a threshold lowered through configuration, can leave posts
and users whose stored state lags behind the rules. The sweep periodically
re-runs the idempotent transitions for those rows. Only one worker sweeps at
a time: it holds a lease in the cache and renews it between items, and stops
as soon as a renewal fails.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from postwatch.core.errors import PostwatchError
from postwatch.core.settings import settings
from postwatch.db.session import SessionLocal
from postwatch.models import Post, PostStatus, User, UserStatus
from postwatch.services.cache import Cache, get_cache
from postwatch.services.lifecycle import evaluate_freeze
from postwatch.services.suspension import check_and_suspend_user

logger = logging.getLogger(__name__)

SWEEP_LEASE_KEY = "lease:moderation-sweep"


@dataclass
class SweepReport:
    """What a single sweep pass changed."""

    frozen_posts: int = 0
    suspended_users: int = 0
    lease_lost: bool = False


class ModerationSweepWorker:
    """Periodically re-evaluates freeze and suspension thresholds."""

    def __init__(
        self,
        cache: Cache | None = None,
        session_factory: Callable[[], Session] = SessionLocal,
        owner: str | None = None,
    ) -> None:
        self.cache = cache or get_cache()
        self.session_factory = session_factory
        self.owner = owner or uuid.uuid4().hex
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop and wait for the current pass."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        interval = max(0.1, float(settings.sweep_interval_seconds))

        while not self._stopping.is_set():
            try:
                await asyncio.to_thread(self.run_once)
            except SQLAlchemyError as e:
                logger.warning("ModerationSweepWorker encountered database error: %s", e)
            except PostwatchError as e:
                logger.warning("ModerationSweepWorker encountered domain error: %s", e)

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except TimeoutError:
                continue

    def _renew(self) -> bool:
        if self.cache.renew_lease(SWEEP_LEASE_KEY, self.owner, settings.sweep_lease_ttl_seconds):
            return True
        logger.warning("Moderation sweep lease lost by %s; stopping pass", self.owner)
        return False

    def run_once(self) -> SweepReport | None:
        """Run one sweep pass; returns None if another worker holds the lease."""
        ttl = settings.sweep_lease_ttl_seconds
        if not self.cache.acquire_lease(SWEEP_LEASE_KEY, self.owner, ttl):
            logger.debug("Moderation sweep lease held elsewhere; skipping")
            return None

        report = SweepReport()
        try:
            with self.session_factory() as db:
                for post_id in self._lagging_posts(db):
                    if not self._renew():
                        report.lease_lost = True
                        return report
                    if evaluate_freeze(db, post_id):
                        report.frozen_posts += 1

                for user_id in self._lagging_users(db):
                    if not self._renew():
                        report.lease_lost = True
                        return report
                    if check_and_suspend_user(db, user_id).suspended:
                        report.suspended_users += 1
        finally:
            if not report.lease_lost:
                self.cache.release_lease(SWEEP_LEASE_KEY, self.owner)

        if report.frozen_posts or report.suspended_users:
            logger.info(
                "Moderation sweep froze %d posts and suspended %d users",
                report.frozen_posts,
                report.suspended_users,
            )
        return report

    def _lagging_posts(self, db: Session) -> list[int]:
        return list(
            db.scalars(
                select(Post.id)
                .where(
                    Post.status != PostStatus.SUSPENDED,
                    Post.report_count >= settings.report_freeze_threshold,
                )
                .order_by(Post.id)
                .limit(settings.sweep_batch_size)
            )
        )

    def _lagging_users(self, db: Session) -> list[int]:
        return list(
            db.scalars(
                select(Post.owner_id)
                .join(User, User.id == Post.owner_id)
                .where(Post.status == PostStatus.SUSPENDED, User.status == UserStatus.ACTIVE)
                .group_by(Post.owner_id)
                .having(func.count(Post.id) >= settings.suspended_posts_threshold)
                .order_by(Post.owner_id)
                .limit(settings.sweep_batch_size)
            )
        )
