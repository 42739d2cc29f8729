"""Pydantic models for peer review endpoints."""

from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, Field

from academy.utils.time import UTCDatetime

PeerReviewStatus = Literal["pending", "completed", "skipped"]


class PeerReviewAction(BaseModel):
    """One POST body for all three actions.

    ``rating`` is deliberately loose here; the service rejects anything
    outside 1..5 before touching the database.
    """

    action: Literal["assign", "submit", "skip"]
    submission_id: uuid.UUID | None = None
    peer_review_id: uuid.UUID | None = None
    count: int = Field(default=2, ge=1, le=10)
    seed: int | None = None
    rating: int | None = None
    feedback: str | None = Field(default=None, max_length=2000)


class ReviewedSubmission(BaseModel):
    id: uuid.UUID
    assignment_id: uuid.UUID
    assignment_title: str | None = None
    commit_sha: str
    commit_url: str | None = None
    readme_content: str | None = None
    participant_id: uuid.UUID | None = None


class PeerReviewResponse(BaseModel):
    id: uuid.UUID
    submission_id: uuid.UUID
    reviewer_id: uuid.UUID
    rating: int | None
    feedback: str | None
    is_anonymous: bool
    status: PeerReviewStatus
    bonus_points_earned: int
    assigned_at: UTCDatetime
    completed_at: UTCDatetime | None
    submission: ReviewedSubmission | None = None


class PeerReviewListResponse(BaseModel):
    reviews: list[PeerReviewResponse]
    total: int


class PeerReviewActionResponse(BaseModel):
    success: bool = True
    reviews: list[PeerReviewResponse]
