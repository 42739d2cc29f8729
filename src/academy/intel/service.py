"""Intel drop release.

Program calendar: days 1-10 run on calendar offsets 0-9, offsets 10-16 are
a break that stays on day 10, and days 11-25 resume at offset 17.
"""

from __future__ import annotations

from datetime import date, datetime, time, tzinfo

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.activity import record_activity
from academy.config import get_settings
from academy.db.models import IntelDrop, Participant
from academy.email.dispatcher import NotificationDispatcher, get_dispatcher
from academy.utils.time import program_tz, utcnow

logger = structlog.get_logger()

BREAK_START_OFFSET = 10
BREAK_END_OFFSET = 17
BREAK_LENGTH = 6
LAST_DAY = 25


def current_program_day(today: date, start: date) -> int:
    """Program day for ``today``; 0 before the program starts."""
    offset = (today - start).days
    if offset < 0:
        return 0
    if offset < BREAK_START_OFFSET:
        return offset + 1
    if offset < BREAK_END_OFFSET:
        return BREAK_START_OFFSET
    return min(offset - BREAK_LENGTH, LAST_DAY)


def trigger_time_passed(trigger_time: time | None, now: datetime, tz: tzinfo) -> bool:
    """A drop without a trigger time is released immediately."""
    if trigger_time is None:
        return True
    return now.astimezone(tz).time() >= trigger_time


def drop_is_due(drop: IntelDrop, current_day: int, now: datetime, tz: tzinfo) -> bool:
    """Drops from earlier program days are overdue; today's wait for their trigger time."""
    if drop.day > current_day:
        return False
    if drop.day < current_day:
        return True
    return trigger_time_passed(drop.trigger_time, now, tz)


def drop_summary(drop: IntelDrop) -> dict:
    return {
        "id": drop.id,
        "day": drop.day,
        "title": drop.title,
        "classification": drop.classification,
        "affected_task_forces": drop.affected_task_forces,
    }


async def run_intel_release(
    db: AsyncSession,
    *,
    notifier: NotificationDispatcher | None = None,
    now: datetime | None = None,
) -> dict:
    """Release every unreleased drop that is due; returns ``{released, drops}``."""
    settings = get_settings()
    tz = program_tz(settings.program_timezone)
    now = now or utcnow()
    notifier = notifier or get_dispatcher()

    current_day = current_program_day(now.astimezone(tz).date(), settings.program_start_date)
    if current_day == 0:
        logger.info("intel_release_skipped", reason="program_not_started")
        return {"released": 0, "drops": [], "current_day": 0}

    pending = (
        await db.execute(
            select(IntelDrop)
            .where(IntelDrop.is_released.is_(False), IntelDrop.day <= current_day)
            .order_by(IntelDrop.day, IntelDrop.id)
        )
    ).scalars()
    due = [drop for drop in pending if drop_is_due(drop, current_day, now, tz)]
    if not due:
        return {"released": 0, "drops": [], "current_day": current_day}

    for drop in due:
        drop.is_released = True
        drop.released_at = now
    summaries = [drop_summary(drop) for drop in due]
    record_activity(db, "intel_release", None, {"current_day": current_day, "drops": summaries})
    await db.commit()

    recipients = (
        await db.execute(select(Participant).where(Participant.status == "approved").order_by(Participant.name))
    ).scalars().all()
    for drop in due:
        for participant in recipients:
            notifier.dispatch(
                participant.email,
                "intel_drop",
                {
                    "participant_name": participant.name,
                    "title": drop.title,
                    "classification": drop.classification,
                    "day": drop.day,
                    "content": drop.content,
                },
            )

    logger.info("intel_released", released=len(due), current_day=current_day)
    return {"released": len(due), "drops": summaries, "current_day": current_day}


async def released_drops(db: AsyncSession) -> list[IntelDrop]:
    result = await db.execute(
        select(IntelDrop).where(IntelDrop.is_released.is_(True)).order_by(IntelDrop.day.desc(), IntelDrop.id.desc())
    )
    return list(result.scalars())
