"""Retry helper for delete-first toggles guarded by a unique key."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from postwatch.core.errors import ToggleRetriesExhaustedError

logger = logging.getLogger(__name__)


def idempotent_toggle(
    db: Session,
    remove: Callable[[Session], bool],
    add: Callable[[Session], None],
    *,
    attempts: int,
    backoff: float,
) -> bool:
    """Flip a membership row and commit; returns True if the row now exists.

    Each attempt first runs ``remove``. If it deleted something the toggle is
    an "off" transition; otherwise ``add`` inserts the row. A unique violation
    from ``add`` means a concurrent call inserted the same row in between, so
    the transaction is rolled back and the whole delete-first step re-runs,
    which then observes and removes that row.

    Args:
        remove: Deletes the row (plus any counter bookkeeping); returns True
            if a row was deleted.
        add: Inserts the row (plus counter bookkeeping); may raise
            ``IntegrityError`` on a duplicate.
        attempts: Maximum number of attempts.
        backoff: Base sleep in seconds between attempts, scaled linearly.

    Raises:
        ToggleRetriesExhaustedError: If every attempt hit the unique race.
    """
    max_attempts = max(1, attempts)
    for attempt in range(1, max_attempts + 1):
        try:
            if remove(db):
                db.commit()
                return False
            add(db)
            db.commit()
            return True
        except IntegrityError:
            db.rollback()
            logger.debug("Toggle unique race (attempt %d/%d)", attempt, max_attempts)
            if attempt < max_attempts:
                time.sleep(backoff * attempt)
        except Exception:
            db.rollback()
            raise

    logger.warning("Toggle gave up after %d attempts", max_attempts)
    raise ToggleRetriesExhaustedError()
