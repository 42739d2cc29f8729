"""Pydantic models for intel drops."""

from __future__ import annotations

from datetime import time

from pydantic import BaseModel, ConfigDict

from academy.utils.time import UTCDatetime


class IntelDropResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    day: int
    trigger_time: time | None
    title: str
    classification: str
    content: str
    affected_task_forces: list[str] | None
    released_at: UTCDatetime | None


class IntelListResponse(BaseModel):
    drops: list[IntelDropResponse]
    total: int
