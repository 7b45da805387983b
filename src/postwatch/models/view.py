# src/postwatch/models/view.py
"""Models recording qualified post views."""

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from postwatch.db.session import Base
from postwatch.db.time import utcnow


class PostView(Base):
    """One counted view per (post, viewer identity).

    ``viewer_key`` is ``user:<id>`` for authenticated viewers and
    ``anon:<sha256>`` for anonymous ones.
    """

    __tablename__ = "post_view"
    __table_args__ = (UniqueConstraint("post_id", "viewer_key", name="uq_post_view_post_viewer"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        nullable=False,
    )
    viewer_key: Mapped[str] = mapped_column(String(80), nullable=False)
    user_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="SET NULL"),
        nullable=True,
    )
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    watch_time_sec: Mapped[float | None] = mapped_column(Float, nullable=True)
    visibility_pct: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
