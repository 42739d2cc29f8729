"""Pydantic models for live sessions."""

from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from academy.utils.time import UTCDatetime

Section = Literal["briefing", "resources", "lab", "debrief"]


class LiveSessionCreate(BaseModel):
    mission_day_id: int = Field(..., gt=0)


class LiveSessionPosition(BaseModel):
    current_step: int
    current_section: Section


class LiveSessionSummary(LiveSessionPosition):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    join_code: str
    mission_day_id: int


class LiveSessionCreated(BaseModel):
    success: bool = True
    session: LiveSessionSummary


class MissionDayBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    day: int
    title: str
    subtitle: str | None = None
    briefing_content: str | None = None
    resources_content: str | None = None
    tech_skills_focus: list[str] | None = None


class Instructor(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    avatar_url: str | None = None


class LiveSessionState(LiveSessionPosition):
    id: uuid.UUID
    join_code: str
    is_active: bool
    started_at: UTCDatetime
    ended_at: UTCDatetime | None = None
    mission_day: MissionDayBrief | None = None
    instructor: Instructor | None = None
    participant_count: int


class LiveSessionStateResponse(BaseModel):
    session: LiveSessionState


class LiveSessionControl(BaseModel):
    """Instructor controls. ``action`` is applied after an explicit ``step``."""

    step: int | None = Field(default=None, ge=1)
    section: Section | None = None
    action: Literal["next_step", "prev_step"] | None = None


class LiveSessionControlResponse(BaseModel):
    success: bool = True
    session: LiveSessionPosition


class Attendee(BaseModel):
    id: uuid.UUID
    participant_id: uuid.UUID
    name: str
    avatar_url: str | None = None
    role: str | None = None
    joined_at: UTCDatetime
    is_active: bool


class AttendeeListResponse(BaseModel):
    participants: list[Attendee]


class JoinResponse(BaseModel):
    success: bool = True
    message: str | None = None
