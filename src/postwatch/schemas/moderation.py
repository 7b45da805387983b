# src/postwatch/schemas/moderation.py
"""Moderation-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from postwatch.models import AppealStatus, ReportReason, ReportStatus


class ReportCreate(BaseModel):
    """Schema for reporting a post."""

    reason: ReportReason = Field(..., description="Why the post is being reported")
    description: str | None = Field(None, max_length=2000)


class ReportResult(BaseModel):
    """Outcome of a successful report submission."""

    report_id: int
    post_report_count: int
    frozen: bool


class ReportReviewRequest(BaseModel):
    """Schema for an admin reviewing a report."""

    status: Literal["reviewed", "resolved", "dismissed"]
    admin_notes: str | None = Field(None, max_length=2000)


class ReportResponse(BaseModel):
    """Report information returned by the API."""

    id: int
    post_id: int
    reporter_user_id: int
    reason: ReportReason
    description: str | None
    status: ReportStatus
    reviewed_by: int | None
    reviewed_at: datetime | None
    admin_notes: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportPage(BaseModel):
    """One page of reports with pagination metadata."""

    reports: list[ReportResponse]
    page: int
    limit: int
    total_count: int
    total_pages: int
    has_next: bool
    has_prev: bool


class ReasonCount(BaseModel):
    reason: ReportReason
    count: int


class ReportStats(BaseModel):
    """Aggregate report counters for the admin dashboard."""

    total_reports: int
    pending_reports: int
    reviewed_reports: int
    resolved_reports: int
    dismissed_reports: int
    frozen_posts: int
    reports_by_reason: list[ReasonCount]


class AppealCreate(BaseModel):
    """Schema for appealing a suspended post."""

    reason: str = Field(..., min_length=1, max_length=2000)
    additional_info: str | None = Field(None, max_length=4000)


class AppealReviewRequest(BaseModel):
    """Schema for an admin decision on an appeal."""

    decision: Literal["approved", "rejected"]
    admin_notes: str | None = Field(None, max_length=2000)


class AppealResponse(BaseModel):
    """Appeal information returned by the API."""

    id: int
    post_id: int
    appellant_user_id: int
    appeal_reason: str
    additional_info: str | None
    status: AppealStatus
    reviewed_by: int | None
    reviewed_at: datetime | None
    admin_notes: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SuspensionResult(BaseModel):
    """Outcome of a suspension cascade evaluation."""

    suspended: bool
    suspended_posts_count: int
    message: str


class PostDecisionRequest(BaseModel):
    """Schema for an approver approving or rejecting a post."""

    notes: str | None = Field(None, max_length=2000)


class PostRejectRequest(BaseModel):
    """Schema for an approver rejecting a post."""

    reason: str = Field(..., min_length=1, max_length=2000)


class AppealPage(BaseModel):
    """One page of appeals for the admin queue."""

    appeals: list[AppealResponse]
    page: int
    limit: int
    total_count: int
