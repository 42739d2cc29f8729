"""Pydantic models for leaderboard, activity and progress endpoints."""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict

from academy.utils.time import UTCDatetime


class LeaderboardRow(BaseModel):
    rank: int | None
    participant_id: uuid.UUID
    name: str
    nickname: str | None
    github_username: str | None
    role: str | None
    team: str | None
    stream: str | None
    avatar_url: str | None
    total_points: int
    bonus_points: int
    total_submissions: int
    on_time_submissions: int
    avg_mentor_rating: float | None
    current_streak: int


class LeaderboardResponse(BaseModel):
    leaderboard: list[LeaderboardRow]
    total: int


class TeamProgress(BaseModel):
    team: str | None
    team_points: int
    avg_submissions: float
    avg_rating: float | None
    members: int


class ActivityParticipant(BaseModel):
    name: str
    github_username: str | None
    avatar_url: str | None


class ActivityEntry(BaseModel):
    id: uuid.UUID
    participant_id: uuid.UUID | None
    action: str
    details: dict[str, Any] | None
    created_at: UTCDatetime
    participant: ActivityParticipant | None = None


class ActivityFeedResponse(BaseModel):
    activity: list[ActivityEntry]
    total: int


class AchievementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    name: str
    description: str | None
    icon: str | None
    points_bonus: int


class EarnedAchievement(AchievementResponse):
    earned_at: UTCDatetime


class RecognitionResponse(BaseModel):
    code: str
    name: str
    icon: str
    description: str
    context: str | None
    earned_at: UTCDatetime


class MasteryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    mastery_level: int
    clearance: str
    days_completed: int
    artifacts_submitted: int
    ai_tutor_sessions: int
    peer_assists_given: int
    updated_at: UTCDatetime


class ProgressResponse(BaseModel):
    participant_id: uuid.UUID
    leaderboard: LeaderboardRow | None
    mastery: MasteryResponse | None
    achievements: list[EarnedAchievement]
    recognitions: list[RecognitionResponse]
