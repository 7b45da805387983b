"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .engagement import (
    BatchLikeStatusRequest,
    DeclineReason,
    LikedPost,
    LikedPostPage,
    LikeStats,
    LikeStatus,
    MilestoneStats,
    TrendingPeriod,
    TrendingPost,
    TrendingPosts,
    ViewRecordRequest,
    ViewResult,
    ViewStats,
)
from .moderation import (
    AppealCreate,
    AppealPage,
    AppealResponse,
    AppealReviewRequest,
    PostDecisionRequest,
    PostRejectRequest,
    ReasonCount,
    ReportCreate,
    ReportPage,
    ReportResponse,
    ReportResult,
    ReportReviewRequest,
    ReportStats,
    SuspensionResult,
)
from .post import PostResponse
from .user import SuspendedPostsCount, UserStatusResponse

__all__ = [
    "BatchLikeStatusRequest", "DeclineReason", "LikedPost", "LikedPostPage", "LikeStats", "LikeStatus",
    "MilestoneStats", "TrendingPeriod", "TrendingPost", "TrendingPosts", "ViewRecordRequest", "ViewResult", "ViewStats",
    "AppealCreate", "AppealPage", "AppealResponse", "AppealReviewRequest",
    "PostDecisionRequest", "PostRejectRequest",
    "ReasonCount", "ReportCreate", "ReportPage", "ReportResponse", "ReportResult", "ReportReviewRequest",
    "ReportStats", "SuspensionResult",
    "PostResponse",
    "SuspendedPostsCount", "UserStatusResponse",
]
