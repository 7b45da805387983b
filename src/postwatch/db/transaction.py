"""Transaction helpers shared by the moderation and engagement services."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from postwatch.core.errors import InternalError
from postwatch.core.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_in_transaction(
    db: Session,
    work: Callable[[Session], T],
    *,
    attempts: int | None = None,
    backoff: float | None = None,
) -> T:
    """Run ``work`` and commit, retrying transient conflicts.

    ``work`` is re-executed from scratch after a rollback when the database
    reports an ``OperationalError`` (serialization failures, deadlocks, locked
    SQLite files). Any other exception rolls back and propagates unchanged, so
    domain errors raised inside ``work`` abort the transaction.

    Args:
        db: Session the work runs in.
        work: Callable receiving the session; its return value is returned.
        attempts: Maximum executions; defaults to ``TRANSACTION_MAX_ATTEMPTS``.
        backoff: Base delay in seconds, multiplied by the attempt number.

    Raises:
        InternalError: If every attempt hit a transient conflict.
    """
    max_attempts = max(1, attempts or settings.transaction_max_attempts)
    delay = settings.transaction_backoff_seconds if backoff is None else backoff

    for attempt in range(1, max_attempts + 1):
        try:
            result = work(db)
            db.commit()
            return result
        except OperationalError as exc:
            db.rollback()
            if attempt >= max_attempts:
                logger.error("Transaction failed after %d attempts: %s", attempt, exc)
                raise InternalError("Database is temporarily unavailable") from exc
            logger.warning(
                "Transient transaction conflict (attempt %d/%d): %s",
                attempt,
                max_attempts,
                exc,
            )
            time.sleep(delay * attempt)
        except Exception:
            db.rollback()
            raise

    raise InternalError("Transaction did not run")  # pragma: no cover - loop always returns
