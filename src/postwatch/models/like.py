# src/postwatch/models/like.py
"""Models capturing like interactions on posts."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from postwatch.db.session import Base
from postwatch.db.time import utcnow


class PostLike(Base):
    """Per-user like on a post; the row existing means "liked"."""

    __tablename__ = "post_like"
    __table_args__ = (Index("ix_post_like_user_id", "user_id"),)

    # Composite primary key prevents duplicate likes from the same user.
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
