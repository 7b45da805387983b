# src/postwatch/models/user.py
"""SQLAlchemy models for user accounts."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from postwatch.db.session import Base
from postwatch.db.time import utcnow


class UserRole(str, enum.Enum):
    """Privilege level of an account."""

    USER = "user"
    APPROVER = "approver"
    ADMIN = "admin"


class UserStatus(str, enum.Enum):
    """Account lifecycle states."""

    ACTIVE = "active"
    FROZEN = "frozen"
    SUSPENDED = "suspended"


class User(Base):
    """Account that owns posts and receives notifications.

    The number of suspended posts is never stored here; it is recounted from
    the ``post`` table whenever the suspension cascade runs.
    """

    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.USER,
    )
    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserStatus.ACTIVE,
    )
    notifications_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def is_admin(self) -> bool:
        """Return True for administrator accounts."""
        return self.role == UserRole.ADMIN

    @property
    def is_approver(self) -> bool:
        """Return True for accounts allowed to approve or reject posts."""
        return self.role in (UserRole.APPROVER, UserRole.ADMIN)
