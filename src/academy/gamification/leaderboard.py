"""Leaderboard aggregate maintenance.

``total_points`` is the sum of per-submission points plus the out-of-band
``bonus_points`` credited by peer reviews and achievements. Ranks are a
dense ordering by total points, then submission count.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import get_settings
from academy.db.models import Assignment, LeaderboardEntry, Submission
from academy.utils.time import as_utc, program_tz, utcnow


async def get_or_create_entry(db: AsyncSession, participant_id: uuid.UUID) -> LeaderboardEntry:
    entry = await db.get(LeaderboardEntry, participant_id)
    if entry is None:
        entry = LeaderboardEntry(participant_id=participant_id)
        db.add(entry)
        await db.flush()
    return entry


def compute_streak(days: Iterable[date], today: date) -> int:
    """Consecutive days with a submission ending at the latest one.

    A streak whose latest day is before yesterday has lapsed and counts 0.
    """
    unique = sorted(set(days), reverse=True)
    if not unique or unique[0] < today - timedelta(days=1):
        return 0
    streak = 1
    for prev, cur in zip(unique, unique[1:]):
        if prev - cur != timedelta(days=1):
            break
        streak += 1
    return streak


def _average(values: list[int]) -> float | None:
    if not values:
        return None
    return round(sum(values) / len(values), 2)


async def refresh_participant(db: AsyncSession, participant_id: uuid.UUID, now: datetime | None = None) -> LeaderboardEntry:
    """Recompute one participant's aggregate from their submissions, then re-rank."""
    now = now or utcnow()
    tz = program_tz(get_settings().program_timezone)
    rows = (
        await db.execute(
            select(Submission, Assignment.due_at)
            .join(Assignment, Submission.assignment_id == Assignment.id)
            .where(Submission.participant_id == participant_id)
        )
    ).all()

    entry = await get_or_create_entry(db, participant_id)
    submission_points = 0
    on_time = 0
    self_ratings: list[int] = []
    mentor_ratings: list[int] = []
    days: list[date] = []
    for submission, due_at in rows:
        submission_points += submission.points_earned + submission.bonus_points
        submitted_at = as_utc(submission.submitted_at)
        if due_at is None or submitted_at <= as_utc(due_at):
            on_time += 1
        if submission.self_rating is not None:
            self_ratings.append(submission.self_rating)
        if submission.mentor_rating is not None:
            mentor_ratings.append(submission.mentor_rating)
        days.append(submitted_at.astimezone(tz).date())

    entry.total_points = submission_points + entry.bonus_points
    entry.total_submissions = len(rows)
    entry.on_time_submissions = on_time
    entry.avg_self_rating = _average(self_ratings)
    entry.avg_mentor_rating = _average(mentor_ratings)
    entry.current_streak = compute_streak(days, now.astimezone(tz).date())
    entry.updated_at = now
    await db.flush()
    await recalculate_ranks(db)
    return entry


async def add_bonus_points(db: AsyncSession, participant_id: uuid.UUID, points: int, *, rerank: bool = True) -> None:
    """Credit bonus points outside of submission scoring."""
    if points == 0:
        return
    entry = await get_or_create_entry(db, participant_id)
    entry.bonus_points += points
    entry.total_points += points
    entry.updated_at = utcnow()
    await db.flush()
    if rerank:
        await recalculate_ranks(db)


async def recalculate_ranks(db: AsyncSession) -> None:
    entries = (await db.execute(select(LeaderboardEntry))).scalars().all()
    ordered = sorted(entries, key=lambda e: (-e.total_points, -e.total_submissions, str(e.participant_id)))
    for position, entry in enumerate(ordered, start=1):
        entry.rank = position
    await db.flush()


async def count_completed_days(db: AsyncSession, participant_id: uuid.UUID) -> int:
    """Distinct program days with at least one submission."""
    result = await db.execute(
        select(func.count(func.distinct(Assignment.day)))
        .select_from(Submission)
        .join(Assignment, Submission.assignment_id == Assignment.id)
        .where(Submission.participant_id == participant_id)
    )
    return int(result.scalar_one())
