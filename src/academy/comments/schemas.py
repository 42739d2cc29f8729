"""Pydantic models for submission comments."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator

from academy.utils.text import sanitize_text
from academy.utils.time import UTCDatetime


def _clean_content(v: str) -> str:
    cleaned = sanitize_text(v)
    if not cleaned:
        msg = "Comment cannot be empty"
        raise ValueError(msg)
    return cleaned


class CommentCreate(BaseModel):
    submission_id: uuid.UUID
    content: str = Field(..., min_length=1, max_length=2000)
    parent_id: uuid.UUID | None = None

    @field_validator("content")
    @classmethod
    def strip_html(cls, v: str) -> str:
        return _clean_content(v)


class CommentUpdate(BaseModel):
    comment_id: uuid.UUID
    content: str = Field(..., min_length=1, max_length=2000)

    @field_validator("content")
    @classmethod
    def strip_html(cls, v: str) -> str:
        return _clean_content(v)


class CommentAuthor(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    nickname: str | None
    github_username: str | None
    avatar_url: str | None


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    submission_id: uuid.UUID
    parent_id: uuid.UUID | None
    content: str
    is_edited: bool
    created_at: UTCDatetime
    updated_at: UTCDatetime | None
    author: CommentAuthor | None = None
    replies: list[CommentResponse] = []


class CommentThreadResponse(BaseModel):
    comments: list[CommentResponse]
    total_count: int


CommentResponse.model_rebuild()
