"""Notification dispatch for moderation and engagement events.

Services never notify in the middle of a transaction. They append
:class:`PendingNotification` items to an outbox while the transaction runs,
and :func:`dispatch` delivers the outbox once the commit has succeeded.
Delivery is best effort: a failing notifier is logged and skipped so that an
already committed state transition is never reported as a failure.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy.orm import Session

from postwatch.models import Notification

logger = logging.getLogger(__name__)

# Notification type tags
POST_FROZEN = "post_frozen"
POST_UNFROZEN = "post_unfrozen"
POST_APPROVED = "post_approved"
POST_REJECTED = "post_rejected"
ACCOUNT_SUSPENDED = "account_suspended"
ACCOUNT_REACTIVATED = "account_reactivated"
APPEAL_SUBMITTED = "appeal_submitted"
APPEAL_APPROVED = "appeal_approved"
APPEAL_REJECTED = "appeal_rejected"
POST_LIKED = "post_liked"
VIEW_MILESTONE = "view_milestone"


@dataclass(frozen=True)
class PendingNotification:
    """A message collected during a transaction and delivered after commit."""

    user_id: int
    type: str
    message: str
    metadata: dict[str, Any] = field(default_factory=dict)


class Notifier(Protocol):
    """Anything able to deliver a message to a user."""

    def notify(
        self,
        user_id: int,
        type_: str,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Deliver one message; may raise on failure."""


class DatabaseNotifier:
    """Persist notifications as rows in the ``notification`` table.

    Each message is committed on its own so one failure cannot take the
    others down with it.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def notify(
        self,
        user_id: int,
        type_: str,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        try:
            self.db.add(
                Notification(
                    user_id=user_id,
                    type=type_,
                    message=message,
                    metadata_=metadata or None,
                    is_read=False,
                )
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


def dispatch(notifier: Notifier, pending: Iterable[PendingNotification]) -> int:
    """Deliver every pending notification, swallowing individual failures.

    Returns:
        Number of notifications delivered successfully.
    """
    delivered = 0
    for item in pending:
        try:
            notifier.notify(item.user_id, item.type, item.message, item.metadata)
        except Exception:
            logger.exception(
                "Failed to deliver %s notification to user %s", item.type, item.user_id
            )
            continue
        delivered += 1
    return delivered
