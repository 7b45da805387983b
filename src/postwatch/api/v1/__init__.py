# src/postwatch/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    appeals_router,
    approver_router,
    likes_router,
    reports_router,
    users_router,
    views_router,
)

__all__ = [
    "reports_router",
    "appeals_router",
    "approver_router",
    "users_router",
    "likes_router",
    "views_router",
]
