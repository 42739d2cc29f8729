"""Factories and small helpers shared by the test modules."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.jwt import create_access_token
from academy.database import get_session_factory
from academy.db.models import Assignment, LeaderboardEntry, Participant, ParticipantMastery, Submission
from academy.utils.time import utcnow


@asynccontextmanager
async def new_session() -> AsyncGenerator[AsyncSession, None]:
    """A short-lived session for assertions after API calls (no stale identity map)."""
    async with get_session_factory()() as session:
        yield session


async def make_participant(
    db: AsyncSession,
    *,
    name: str = "Test Agent",
    github_username: str | None = None,
    email: str | None = None,
    role: str | None = "AI-SE",
    team: str | None = "Alpha",
    status: str = "approved",
    is_admin: bool = False,
    is_mentor: bool = False,
) -> Participant:
    """Insert a participant with its leaderboard and mastery rows."""
    handle = github_username or f"agent-{uuid.uuid4().hex[:8]}"
    participant = Participant(
        id=uuid.uuid4(),
        auth_user_id=f"auth-{handle}",
        github_username=handle,
        name=name,
        nickname=handle[:30],
        email=email or f"{handle}@example.com",
        role=role,
        team=team,
        stream="Tech",
        status=status,
        is_admin=is_admin,
        is_mentor=is_mentor,
    )
    db.add(participant)
    await db.flush()
    db.add(LeaderboardEntry(participant_id=participant.id))
    db.add(ParticipantMastery(participant_id=participant.id))
    await db.commit()
    return participant


async def make_assignment(
    db: AsyncSession,
    *,
    day: int = 1,
    type: str = "in_class",  # noqa: A002
    title: str | None = None,
    max_points: int = 15,
    due_at: datetime | None = None,
    target_roles: list[str] | None = None,
) -> Assignment:
    assignment = Assignment(
        id=uuid.uuid4(),
        day=day,
        type=type,
        title=title or f"Day {day} {type}",
        max_points=max_points,
        due_at=due_at,
        target_roles=target_roles,
        folder_name=f"day-{day:02d}-{type}",
    )
    db.add(assignment)
    await db.commit()
    return assignment


async def make_submission(
    db: AsyncSession,
    participant: Participant,
    assignment: Assignment,
    *,
    submitted_at: datetime | None = None,
) -> Submission:
    submission = Submission(
        id=uuid.uuid4(),
        participant_id=participant.id,
        assignment_id=assignment.id,
        commit_sha="abc1234",
        submitted_at=submitted_at or utcnow(),
    )
    db.add(submission)
    await db.commit()
    return submission


def auth_headers(participant: Participant) -> dict[str, str]:
    token = create_access_token(participant.auth_user_id, participant.email)
    return {"Authorization": f"Bearer {token}"}


def hours_from_now(hours: float) -> datetime:
    return utcnow() + timedelta(hours=hours)
