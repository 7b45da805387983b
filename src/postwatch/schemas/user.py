"""User-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict

from postwatch.models import UserRole, UserStatus


class UserStatusResponse(BaseModel):
    """Moderation-relevant view of an account."""

    id: int
    username: str
    role: UserRole
    status: UserStatus

    model_config = ConfigDict(from_attributes=True)


class SuspendedPostsCount(BaseModel):
    user_id: int
    suspended_posts_count: int
