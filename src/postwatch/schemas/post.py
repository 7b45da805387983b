# src/postwatch/schemas/post.py
"""Post-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from postwatch.models import PostStatus


class PostResponse(BaseModel):
    """Schema for post moderation state returned by the API."""

    id: int
    owner_id: int
    title: str | None
    status: PostStatus
    is_frozen: bool
    frozen_at: datetime | None
    approver_id: int | None
    rejection_reason: str | None
    report_count: int
    likes: int
    views: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
