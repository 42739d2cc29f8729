"""Pydantic models for assignments and submissions."""

from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

from academy.utils.text import sanitize_text
from academy.utils.time import UTCDatetime

SubmissionStatus = Literal["submitted", "reviewed", "needs_revision", "approved"]


class SubmissionCreate(BaseModel):
    assignment_id: uuid.UUID
    commit_sha: str = Field(..., min_length=7, max_length=64, pattern=r"^[0-9a-fA-F]+$")
    commit_message: str | None = Field(default=None, max_length=2000)
    commit_url: HttpUrl | None = None
    readme_content: str | None = Field(default=None, max_length=50_000)
    self_rating: int | None = Field(default=None, ge=1, le=5)

    @field_validator("commit_message", "readme_content")
    @classmethod
    def strip_html(cls, v: str | None) -> str | None:
        return sanitize_text(v)


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    day: int
    type: str
    title: str
    description: str | None
    target_roles: list[str] | None
    max_points: int
    due_at: UTCDatetime | None
    folder_name: str


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    participant_id: uuid.UUID
    assignment_id: uuid.UUID
    commit_sha: str
    commit_message: str | None
    commit_url: str | None
    self_rating: int | None
    mentor_rating: int | None
    mentor_notes: str | None
    points_earned: int
    bonus_points: int
    status: str
    submitted_at: UTCDatetime
    reviewed_at: UTCDatetime | None


class SubmissionListResponse(BaseModel):
    submissions: list[SubmissionResponse]
    total: int
