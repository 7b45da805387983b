# src/postwatch/schemas/engagement.py
"""Like and view Pydantic schemas."""

from __future__ import annotations

import enum
from datetime import datetime

from pydantic import BaseModel, Field


class LikeStatus(BaseModel):
    """Whether the caller likes a post, and the post's like counter."""

    is_liked: bool
    like_count: int


class BatchLikeStatusRequest(BaseModel):
    """Schema for checking like status of several posts at once."""

    post_ids: list[int] = Field(..., min_length=1, max_length=100)


class LikedPost(BaseModel):
    post_id: int
    title: str | None
    like_count: int
    view_count: int
    liked_at: datetime


class LikeStats(BaseModel):
    like_count: int
    recent_likers: list[int]


class DeclineReason(str, enum.Enum):
    """Why a view was not counted. Declines are normal traffic, not errors."""

    UNQUALIFIED = "unqualified"
    RATE_LIMITED = "rate_limited"
    DUPLICATE = "duplicate"
    UNAVAILABLE = "unavailable"


class ViewRecordRequest(BaseModel):
    """Client-reported viewing metrics."""

    watch_time_sec: float | None = Field(None, ge=0)
    visibility_pct: float | None = Field(None, ge=0, le=100)


class ViewResult(BaseModel):
    """Outcome of a view recording attempt."""

    view_recorded: bool
    view_count: int
    declined: DeclineReason | None = None


class ViewStats(BaseModel):
    total_views: int
    authenticated_views: int
    anonymous_views: int


class MilestoneStats(BaseModel):
    """Milestone progress for a post."""

    current_views: int
    reached_milestones: list[int]
    next_milestone: int | None
    progress_to_next: float


class LikedPostPage(BaseModel):
    posts: list[LikedPost]
    page: int
    limit: int
    total_count: int


class TrendingPeriod(str, enum.Enum):
    """Look-back windows for the trending listing."""

    HOUR = "1h"
    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"


class TrendingPost(BaseModel):
    post_id: int
    owner_id: int
    title: str | None
    like_count: int
    view_count: int
    created_at: datetime
    trending_score: int


class TrendingPosts(BaseModel):
    """Active posts created within ``period``, highest trending score first."""

    posts: list[TrendingPost]
    period: TrendingPeriod
    generated_at: datetime
