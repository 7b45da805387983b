"""Domain error taxonomy for moderation and engagement services.

Every error carries a short ``code`` tag so the HTTP layer (or any other
caller) can translate it without string matching. Declined views are not
errors and never appear here; they are returned as regular results.
"""

from __future__ import annotations


class PostwatchError(Exception):
    """Base class for expected business-rule failures."""

    code = "error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or self.__class__.__doc__ or self.code


class NotFoundError(PostwatchError):
    """Entity not found."""

    code = "not_found"


class ConflictError(PostwatchError):
    """Operation conflicts with an existing record."""

    code = "conflict"


class AlreadyReportedError(ConflictError):
    """You have already reported this post."""

    code = "already_reported"


class AlreadyAppealedError(ConflictError):
    """You have already appealed this post."""

    code = "already_appealed"


class InvalidStateError(PostwatchError):
    """Action is not valid for the current lifecycle state."""

    code = "invalid_state"


class RateLimitedError(PostwatchError):
    """Too many requests; please slow down."""

    code = "rate_limited"


class InternalError(PostwatchError):
    """Unexpected failure while processing the request."""

    code = "internal"


class ToggleRetriesExhaustedError(InternalError):
    """Could not settle a concurrent toggle within the retry budget."""

    code = "toggle_retries_exhausted"
