"""Leaderboard, activity feed, achievement catalog and personal progress."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.capabilities import AuthUser
from academy.auth.dependencies import require_participant
from academy.database import get_session
from academy.gamification import views
from academy.gamification.schemas import (
    AchievementResponse,
    ActivityFeedResponse,
    LeaderboardResponse,
    ProgressResponse,
    TeamProgress,
)

router = APIRouter(prefix="/api", tags=["Gamification"])


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    team: str | None = Query(default=None),
    role: str | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
):
    rows = await views.leaderboard(db, team=team, role=role, limit=limit)
    return LeaderboardResponse(leaderboard=rows, total=len(rows))


@router.get("/leaderboard/teams", response_model=list[TeamProgress])
async def get_team_progress(db: AsyncSession = Depends(get_session)):
    return views.team_progress(await views.leaderboard(db))


@router.get("/activity", response_model=ActivityFeedResponse)
async def get_activity(
    limit: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_session),
):
    entries = await views.activity_feed(db, limit=limit)
    return ActivityFeedResponse(activity=entries, total=len(entries))


@router.get("/achievements", response_model=list[AchievementResponse])
async def list_achievements(db: AsyncSession = Depends(get_session)):
    return await views.achievement_catalog(db)


@router.get("/me/progress", response_model=ProgressResponse)
async def my_progress(
    user: AuthUser = Depends(require_participant),
    db: AsyncSession = Depends(get_session),
):
    return await views.progress_for(db, user.participant.id)
