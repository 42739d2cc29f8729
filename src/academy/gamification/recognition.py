"""Recognition scanner.

Each rule independently returns the set of participant IDs that currently
qualify. Rules never read each other's output, and re-running a pass is
harmless because awards go through the idempotency guard.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import get_settings
from academy.db.models import LeaderboardEntry, ParticipantMastery, RecognitionType, Submission
from academy.gamification.awards import award_recognition
from academy.utils.time import as_utc, program_tz, utcnow

logger = structlog.get_logger()

WINDOW = timedelta(hours=24)
EARLY_HOUR_BEFORE = 8
NIGHT_HOUR_FROM = 22
MOMENTUM_STREAK = 5
TEAM_SUPPORTER_ASSISTS = 3


@dataclass(frozen=True)
class ScanContext:
    now: datetime
    tz: tzinfo

    @property
    def window_start(self) -> datetime:
        return self.now - WINDOW


RuleFn = Callable[[AsyncSession, ScanContext], Awaitable[set[uuid.UUID]]]


def local_hours(submissions: Iterable[tuple[uuid.UUID, datetime]], tz: tzinfo) -> Iterable[tuple[uuid.UUID, int]]:
    for participant_id, submitted_at in submissions:
        yield participant_id, as_utc(submitted_at).astimezone(tz).hour


def early_risers(submissions: Iterable[tuple[uuid.UUID, datetime]], tz: tzinfo) -> set[uuid.UUID]:
    return {pid for pid, hour in local_hours(submissions, tz) if hour < EARLY_HOUR_BEFORE}


def night_scholars(submissions: Iterable[tuple[uuid.UUID, datetime]], tz: tzinfo) -> set[uuid.UUID]:
    return {pid for pid, hour in local_hours(submissions, tz) if hour >= NIGHT_HOUR_FROM}


async def _recent_submissions(db: AsyncSession, ctx: ScanContext) -> list[tuple[uuid.UUID, datetime]]:
    result = await db.execute(
        select(Submission.participant_id, Submission.submitted_at).where(
            Submission.submitted_at >= ctx.window_start,
            Submission.submitted_at <= ctx.now,
        )
    )
    return [(row.participant_id, row.submitted_at) for row in result]


async def find_early_risers(db: AsyncSession, ctx: ScanContext) -> set[uuid.UUID]:
    return early_risers(await _recent_submissions(db, ctx), ctx.tz)


async def find_night_scholars(db: AsyncSession, ctx: ScanContext) -> set[uuid.UUID]:
    return night_scholars(await _recent_submissions(db, ctx), ctx.tz)


async def find_momentum(db: AsyncSession, _ctx: ScanContext) -> set[uuid.UUID]:
    result = await db.execute(
        select(LeaderboardEntry.participant_id).where(LeaderboardEntry.current_streak >= MOMENTUM_STREAK)
    )
    return set(result.scalars())


async def find_team_supporters(db: AsyncSession, _ctx: ScanContext) -> set[uuid.UUID]:
    result = await db.execute(
        select(ParticipantMastery.participant_id).where(
            ParticipantMastery.peer_assists_given >= TEAM_SUPPORTER_ASSISTS
        )
    )
    return set(result.scalars())


# code -> (rule, award context)
RULES: dict[str, tuple[RuleFn, str]] = {
    "early_riser": (find_early_risers, "Submitted work before 8:00 AM"),
    "night_scholar": (find_night_scholars, "Submitted work after 10:00 PM"),
    "momentum": (find_momentum, "Maintained 5+ day submission streak"),
    "team_supporter": (find_team_supporters, "Helped 3+ peers with their work"),
}


async def run_recognitions(db: AsyncSession, now: datetime | None = None) -> dict:
    """Run every rule whose recognition type exists and award new recognitions.

    Returns per-rule ``{"found", "awarded"}`` plus ``total_awarded``.
    """
    ctx = ScanContext(now=now or utcnow(), tz=program_tz(get_settings().program_timezone))
    types = {
        rt.code: rt
        for rt in (await db.execute(select(RecognitionType).where(RecognitionType.code.in_(RULES)))).scalars()
    }

    results: dict[str, dict[str, int]] = {}
    total_awarded = 0
    for code, (rule, context) in RULES.items():
        recognition_type = types.get(code)
        if recognition_type is None:
            logger.warning("recognition_type_missing", code=code)
            continue
        candidates = await rule(db, ctx)
        awarded = 0
        for participant_id in sorted(candidates, key=str):
            if await award_recognition(db, participant_id, recognition_type.id, context):
                awarded += 1
                logger.info("recognition_awarded", code=code, participant_id=str(participant_id))
        results[code] = {"found": len(candidates), "awarded": awarded}
        total_awarded += awarded

    await db.commit()
    logger.info("recognitions_complete", total_awarded=total_awarded)
    return {"results": results, "total_awarded": total_awarded}
