# src/postwatch/models/post.py
"""SQLAlchemy models for posts and their lifecycle state."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from postwatch.db.session import Base
from postwatch.db.time import utcnow


class PostStatus(str, enum.Enum):
    """Lifecycle states of a post.

    ``SUSPENDED`` covers both approver rejection and report freezes; the
    ``is_frozen`` flag tells the two apart.
    """

    DRAFT = "draft"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class Post(Base):
    """Primary content entity produced by users."""

    __tablename__ = "post"
    __table_args__ = (
        CheckConstraint("report_count >= 0", name="ck_post_report_count"),
        CheckConstraint("likes >= 0", name="ck_post_likes"),
        CheckConstraint("views >= 0", name="ck_post_views"),
        Index("ix_post_owner_status", "owner_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[PostStatus] = mapped_column(
        Enum(PostStatus, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=PostStatus.DRAFT,
    )
    # Frozen posts are always suspended; rejected posts are suspended but not frozen.
    is_frozen: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    frozen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approver_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=True,
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Shared counters; only ever mutated with atomic UPDATE ... SET col = col +/- 1.
    report_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
