# src/postwatch/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .appeals import router as appeals_router
from .approver import router as approver_router
from .likes import router as likes_router
from .reports import router as reports_router
from .users import router as users_router
from .views import router as views_router

__all__ = [
    "reports_router",
    "appeals_router",
    "approver_router",
    "users_router",
    "likes_router",
    "views_router",
]
