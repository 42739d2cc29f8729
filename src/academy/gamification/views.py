"""Read-side projections over the gamification tables."""

from __future__ import annotations

import uuid
from collections import defaultdict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.db.models import (
    Achievement,
    ActivityLog,
    LeaderboardEntry,
    Participant,
    ParticipantAchievement,
    ParticipantMastery,
    ParticipantRecognition,
)
from academy.gamification.schemas import (
    AchievementResponse,
    ActivityEntry,
    ActivityParticipant,
    EarnedAchievement,
    LeaderboardRow,
    MasteryResponse,
    ProgressResponse,
    RecognitionResponse,
    TeamProgress,
)


def leaderboard_row(entry: LeaderboardEntry) -> LeaderboardRow:
    p = entry.participant
    return LeaderboardRow(
        rank=entry.rank,
        participant_id=entry.participant_id,
        name=p.name,
        nickname=p.nickname,
        github_username=p.github_username,
        role=p.role,
        team=p.team,
        stream=p.stream,
        avatar_url=p.avatar_url,
        total_points=entry.total_points,
        bonus_points=entry.bonus_points,
        total_submissions=entry.total_submissions,
        on_time_submissions=entry.on_time_submissions,
        avg_mentor_rating=entry.avg_mentor_rating,
        current_streak=entry.current_streak,
    )


async def leaderboard(
    db: AsyncSession, *, team: str | None = None, role: str | None = None, limit: int | None = None
) -> list[LeaderboardRow]:
    """Approved participants ordered by rank."""
    query = (
        select(LeaderboardEntry)
        .join(Participant, LeaderboardEntry.participant_id == Participant.id)
        .where(Participant.status == "approved")
        .order_by(LeaderboardEntry.rank.asc().nulls_last(), LeaderboardEntry.participant_id)
    )
    if team is not None:
        query = query.where(Participant.team == team)
    if role is not None:
        query = query.where(Participant.role == role)
    if limit is not None:
        query = query.limit(limit)
    return [leaderboard_row(e) for e in (await db.execute(query)).scalars()]


def team_progress(rows: list[LeaderboardRow]) -> list[TeamProgress]:
    """Per-team totals, highest points first."""
    by_team: dict[str | None, list[LeaderboardRow]] = defaultdict(list)
    for row in rows:
        by_team[row.team].append(row)

    result = []
    for team, members in by_team.items():
        ratings = [m.avg_mentor_rating for m in members if m.avg_mentor_rating is not None]
        result.append(
            TeamProgress(
                team=team,
                team_points=sum(m.total_points for m in members),
                avg_submissions=round(sum(m.total_submissions for m in members) / len(members), 2),
                avg_rating=round(sum(ratings) / len(ratings), 2) if ratings else None,
                members=len(members),
            )
        )
    result.sort(key=lambda t: (-t.team_points, t.team or ""))
    return result


async def activity_feed(db: AsyncSession, *, limit: int = 50) -> list[ActivityEntry]:
    rows = await db.execute(
        select(ActivityLog, Participant.name, Participant.github_username, Participant.avatar_url)
        .outerjoin(Participant, ActivityLog.participant_id == Participant.id)
        .order_by(ActivityLog.created_at.desc())
        .limit(limit)
    )
    entries = []
    for log, name, github_username, avatar_url in rows:
        entries.append(
            ActivityEntry(
                id=log.id,
                participant_id=log.participant_id,
                action=log.action,
                details=log.details,
                created_at=log.created_at,
                participant=(
                    ActivityParticipant(name=name, github_username=github_username, avatar_url=avatar_url)
                    if name is not None
                    else None
                ),
            )
        )
    return entries


async def achievement_catalog(db: AsyncSession) -> list[AchievementResponse]:
    achievements = (await db.execute(select(Achievement).order_by(Achievement.points_bonus, Achievement.code))).scalars()
    return [AchievementResponse.model_validate(a) for a in achievements]


async def progress_for(db: AsyncSession, participant_id: uuid.UUID) -> ProgressResponse:
    entry = await db.get(LeaderboardEntry, participant_id)
    mastery = (
        await db.execute(select(ParticipantMastery).where(ParticipantMastery.participant_id == participant_id))
    ).scalar_one_or_none()
    earned = (
        await db.execute(
            select(ParticipantAchievement)
            .where(ParticipantAchievement.participant_id == participant_id)
            .order_by(ParticipantAchievement.earned_at)
        )
    ).scalars()
    recognitions = (
        await db.execute(
            select(ParticipantRecognition)
            .where(ParticipantRecognition.participant_id == participant_id)
            .order_by(ParticipantRecognition.earned_at)
        )
    ).scalars()

    return ProgressResponse(
        participant_id=participant_id,
        leaderboard=leaderboard_row(entry) if entry else None,
        mastery=MasteryResponse.model_validate(mastery) if mastery else None,
        achievements=[
            EarnedAchievement(
                **AchievementResponse.model_validate(pa.achievement).model_dump(),
                earned_at=pa.earned_at,
            )
            for pa in earned
        ],
        recognitions=[
            RecognitionResponse(
                code=pr.recognition_type.code,
                name=pr.recognition_type.name,
                icon=pr.recognition_type.icon,
                description=pr.recognition_type.description,
                context=pr.context,
                earned_at=pr.earned_at,
            )
            for pr in recognitions
        ],
    )
