"""JWT helpers.

Token issuance belongs to the identity service; this module only mints
tokens in the shape the API expects (``sub`` is the numeric user id) for
local development and tests.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import jwt

from postwatch.core.settings import settings


def create_access_token(user_id: int, extra_claims: dict[str, Any] | None = None) -> str:
    """Create a signed access token for ``user_id``."""
    to_encode: dict[str, Any] = {"sub": str(user_id)}
    if extra_claims:
        to_encode.update(extra_claims)
    to_encode["exp"] = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    encoded_jwt: str = jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def decode_subject(token: str) -> int | None:
    """Return the user id carried by ``token``.

    Raises:
        jose.JWTError: If the token is invalid or expired.
    """
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    subject = payload.get("sub")
    if subject is None:
        return None
    try:
        return int(subject)
    except (TypeError, ValueError):
        return None
