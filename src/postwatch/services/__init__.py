# src/postwatch/services/__init__.py
"""Business logic services for the Postwatch application."""

from .appeals import appeal_post, list_appeals, list_user_appeals, review_appeal
from .cache import Cache, get_cache
from .lifecycle import approve_post, can_transition, evaluate_freeze, reject_post
from .likes import (
    batch_check_like_status,
    check_like_status,
    get_liked_posts,
    get_post_like_stats,
    toggle_like,
)
from .milestones import check_milestone, get_post_milestones
from .notifications import DatabaseNotifier, Notifier, PendingNotification, dispatch
from .reports import get_post_reports, get_report_stats, list_reports, report_post, review_report
from .suspension import check_and_suspend_user, get_suspended_posts_count, reactivate_user
from .sweep import ModerationSweepWorker
from .toggle import idempotent_toggle
from .views import get_post_view_stats, get_trending_posts, record_view, viewer_identity

__all__ = [
    "appeal_post", "list_appeals", "list_user_appeals", "review_appeal",
    "Cache", "get_cache",
    "approve_post", "can_transition", "evaluate_freeze", "reject_post",
    "batch_check_like_status", "check_like_status", "get_liked_posts",
    "get_post_like_stats", "toggle_like",
    "check_milestone", "get_post_milestones",
    "DatabaseNotifier", "Notifier", "PendingNotification", "dispatch",
    "get_post_reports", "get_report_stats", "list_reports", "report_post", "review_report",
    "check_and_suspend_user", "get_suspended_posts_count", "reactivate_user",
    "ModerationSweepWorker",
    "idempotent_toggle",
    "get_post_view_stats", "get_trending_posts", "record_view", "viewer_identity",
]
