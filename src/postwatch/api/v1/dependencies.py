"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from postwatch.core.security import decode_subject
from postwatch.db.session import get_db
from postwatch.models import User
from postwatch.services.cache import Cache, get_cache

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
CacheDep = Annotated[Cache, Depends(get_cache)]


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _resolve_user(token: str, db: Session) -> User:
    try:
        user_id = decode_subject(token)
    except JWTError as err:
        raise _credentials_error() from err
    if user_id is None:
        raise _credentials_error()

    user = db.get(User, user_id)
    if user is None:
        raise _credentials_error("User not found")
    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Raises:
        HTTPException: If token is invalid or user not found
    """
    return _resolve_user(credentials.credentials, db)


def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_bearer_scheme)],
    db: SessionDep,
) -> User | None:
    """Like :func:`get_current_user`, but anonymous requests yield ``None``."""
    if credentials is None:
        return None
    return _resolve_user(credentials.credentials, db)


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]
OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]


def require_admin(current_user: CurrentUserDep) -> User:
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


def require_approver(current_user: CurrentUserDep) -> User:
    if not current_user.is_approver:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Approver access required")
    return current_user


AdminDep = Annotated[User, Depends(require_admin)]
ApproverDep = Annotated[User, Depends(require_approver)]
