"""Pydantic models for registration and participant endpoints."""

from __future__ import annotations

import re
import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_validator

from academy.utils.text import sanitize_text
from academy.utils.time import UTCDatetime

Role = Literal["FDE", "AI-SE", "AI-PM", "AI-DA", "AI-DS", "AI-SEC", "AI-FE"]
Team = Literal["Alpha", "Beta", "Gamma", "Delta", "Epsilon", "Zeta", "Eta", "Theta"]
Stream = Literal["Tech", "Business"]
ParticipantStatus = Literal["pending", "approved", "rejected"]

GITHUB_USERNAME_RE = re.compile(r"^[a-zA-Z0-9](?:[a-zA-Z0-9]|-(?=[a-zA-Z0-9])){0,38}$")
NICKNAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


def _check_github_username(v: str | None) -> str | None:
    if v is None or v == "":
        return None
    if not GITHUB_USERNAME_RE.match(v):
        msg = "Invalid GitHub username format"
        raise ValueError(msg)
    return v


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    nickname: str = Field(..., min_length=2, max_length=30)
    email: EmailStr = Field(..., max_length=255)
    github_username: str | None = Field(default=None, max_length=39)
    role: Role | None = None
    team: Team | None = None
    stream: Stream | None = None
    avatar_url: HttpUrl | None = None

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        cleaned = sanitize_text(v) or ""
        if len(cleaned) < 2:
            msg = "Name must be at least 2 characters"
            raise ValueError(msg)
        return cleaned

    @field_validator("nickname")
    @classmethod
    def validate_nickname(cls, v: str) -> str:
        if not NICKNAME_RE.match(v):
            msg = "Nickname can only contain letters, numbers, underscores and hyphens"
            raise ValueError(msg)
        return v

    @field_validator("github_username")
    @classmethod
    def validate_github_username(cls, v: str | None) -> str | None:
        return _check_github_username(v)


class ProfileUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    nickname: str | None = Field(default=None, min_length=2, max_length=30)
    github_username: str | None = Field(default=None, max_length=39)
    role: Role | None = None
    team: Team | None = None
    stream: Stream | None = None
    avatar_url: HttpUrl | None = None

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str | None) -> str | None:
        return sanitize_text(v)

    @field_validator("nickname")
    @classmethod
    def validate_nickname(cls, v: str | None) -> str | None:
        if v is not None and not NICKNAME_RE.match(v):
            msg = "Nickname can only contain letters, numbers, underscores and hyphens"
            raise ValueError(msg)
        return v

    @field_validator("github_username")
    @classmethod
    def validate_github_username(cls, v: str | None) -> str | None:
        return _check_github_username(v)


class AdminParticipantUpdate(BaseModel):
    status: ParticipantStatus | None = None
    is_admin: bool | None = None
    is_mentor: bool | None = None


class MasteryCountersUpdate(BaseModel):
    """Counters fed by activity outside this service (tutor sessions, attendance)."""

    days_completed: int | None = Field(default=None, ge=0, le=25)
    ai_tutor_sessions: int | None = Field(default=None, ge=0)


class PublicParticipant(BaseModel):
    """Public projection: never carries email."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    github_username: str | None
    name: str
    nickname: str | None
    role: str | None
    team: str | None
    stream: str | None
    avatar_url: str | None
    repo_url: str | None
    status: str
    is_mentor: bool
    created_at: UTCDatetime


class ParticipantResponse(PublicParticipant):
    """Full record, for the participant themself and for staff."""

    email: str
    is_admin: bool
    updated_at: UTCDatetime


class RegisterResponse(BaseModel):
    success: bool = True
    participant: ParticipantResponse


class ParticipantListResponse(BaseModel):
    participants: list[PublicParticipant]
    total: int
