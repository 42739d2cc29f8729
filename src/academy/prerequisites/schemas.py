"""Pydantic models for onboarding prerequisites."""

from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from academy.utils.text import sanitize_text
from academy.utils.time import UTCDatetime

PrerequisiteCategory = Literal["development", "ai_platforms", "google", "collaboration", "technical", "confirmation"]


class PrerequisiteItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    category: PrerequisiteCategory
    name: str
    description: str | None = None
    help_url: str | None = None
    is_required: bool
    display_order: int


class PrerequisiteStatus(PrerequisiteItemResponse):
    is_completed: bool = False
    completed_at: UTCDatetime | None = None
    notes: str | None = None


class PrerequisiteSummary(BaseModel):
    required_total: int
    required_completed: int
    required_completion_pct: int
    total_items: int
    total_completed: int
    total_completion_pct: int
    is_ready: bool


class PrerequisiteItemsResponse(BaseModel):
    items: list[PrerequisiteItemResponse]


class ParticipantPrerequisitesResponse(BaseModel):
    participant_id: uuid.UUID
    prerequisites: list[PrerequisiteStatus]
    summary: PrerequisiteSummary


class ItemStat(BaseModel):
    id: int
    code: str
    name: str
    category: PrerequisiteCategory
    is_required: bool
    completed_count: int
    total_participants: int
    completion_pct: int


class ParticipantReadiness(BaseModel):
    participant_id: uuid.UUID
    name: str
    email: str
    role: str | None
    team: str | None
    required_total: int
    required_completed: int
    required_completion_pct: int
    total_items: int
    completed_count: int


class ReadinessOverview(BaseModel):
    total_participants: int
    fully_ready: int
    partially_ready: int
    not_started: int
    readiness_pct: int


class PrerequisiteStatsResponse(BaseModel):
    stats: list[ItemStat]
    summary: list[ParticipantReadiness]
    overview: ReadinessOverview


class BatchItem(BaseModel):
    prerequisite_id: int = Field(..., gt=0)
    is_completed: bool


class PrerequisiteUpdate(BaseModel):
    """Single update (``prerequisite_id`` + ``is_completed``) or a batch of ``updates``.

    ``participant_id`` defaults to the caller.
    """

    type: Literal["single", "batch"] = "single"
    participant_id: uuid.UUID | None = None
    prerequisite_id: int | None = Field(default=None, gt=0)
    is_completed: bool | None = None
    notes: str | None = Field(default=None, max_length=1000)
    updates: list[BatchItem] = Field(default_factory=list, max_length=100)

    @field_validator("notes")
    @classmethod
    def strip_html(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return sanitize_text(v) or None

    @model_validator(mode="after")
    def check_shape(self) -> PrerequisiteUpdate:
        if self.type == "single" and (self.prerequisite_id is None or self.is_completed is None):
            msg = "prerequisite_id and is_completed are required"
            raise ValueError(msg)
        if self.type == "batch" and not self.updates:
            msg = "updates must not be empty"
            raise ValueError(msg)
        return self


class PrerequisiteRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    participant_id: uuid.UUID
    prerequisite_id: int
    is_completed: bool
    completed_at: UTCDatetime | None = None
    notes: str | None = None


class PrerequisiteUpdateResponse(BaseModel):
    success: bool = True
    updated: int
    prerequisite: PrerequisiteRecord | None = None
