# src/postwatch/models/__init__.py
"""SQLAlchemy models for the Postwatch application."""

from .like import PostLike
from .moderation import AppealStatus, PostAppeal, PostReport, ReportReason, ReportStatus
from .notification import Notification
from .post import Post, PostStatus
from .user import User, UserRole, UserStatus
from .view import PostView

__all__ = [
    "PostLike",
    "AppealStatus", "PostAppeal", "PostReport", "ReportReason", "ReportStatus",
    "Notification",
    "Post", "PostStatus",
    "User", "UserRole", "UserStatus",
    "PostView",
]
