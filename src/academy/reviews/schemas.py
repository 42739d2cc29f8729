"""Pydantic models for mentor review endpoints."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field, field_validator, model_validator

from academy.submissions.schemas import SubmissionResponse, SubmissionStatus
from academy.utils.text import sanitize_text


class ReviewRequest(BaseModel):
    submission_id: uuid.UUID
    mentor_rating: int = Field(..., ge=1, le=5)
    mentor_notes: str | None = Field(default=None, max_length=2000)

    @field_validator("mentor_notes")
    @classmethod
    def strip_html(cls, v: str | None) -> str | None:
        return sanitize_text(v)


class BulkReviewRequest(BaseModel):
    submission_ids: list[uuid.UUID] = Field(..., min_length=1, max_length=100)
    mentor_rating: int | None = Field(default=None, ge=1, le=5)
    mentor_notes: str | None = Field(default=None, max_length=2000)
    status: SubmissionStatus | None = None

    @field_validator("mentor_notes")
    @classmethod
    def strip_html(cls, v: str | None) -> str | None:
        return sanitize_text(v)

    @field_validator("submission_ids")
    @classmethod
    def dedupe(cls, v: list[uuid.UUID]) -> list[uuid.UUID]:
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def rating_or_status(self) -> BulkReviewRequest:
        if self.mentor_rating is None and self.status is None:
            msg = "Either mentor_rating or status is required"
            raise ValueError(msg)
        return self


class ReviewResponse(BaseModel):
    success: bool = True
    submission: SubmissionResponse
    achievement_awarded: bool = False


class BulkReviewResponse(BaseModel):
    success: bool = True
    updated: int
    submissions: list[SubmissionResponse]
    achievements_awarded: int = 0
