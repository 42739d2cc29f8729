"""Pydantic models for mission content."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

Phase = Literal["common", "role-specific", "team-project"]


class DayContentResponse(BaseModel):
    day: int
    situation: str | None
    resources: str | None
    mentor_notes: str | None
    source: Literal["local", "github", "database"]
    cached: bool = False
    phase: Phase


class RoleContentResponse(BaseModel):
    day: int
    role: str
    content: str | None
    source: Literal["local", "github", "fallback"]
    cached: bool = False
    has_fallback: bool
