"""Mastery progression job."""

from __future__ import annotations

import uuid
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.activity import record_activity
from academy.db.models import Participant, ParticipantMastery
from academy.email.dispatcher import NotificationDispatcher, get_dispatcher
from academy.gamification.mastery import LevelUp, MasterySnapshot, evaluate
from academy.utils.time import utcnow

logger = structlog.get_logger()


def snapshot_of(mastery: ParticipantMastery) -> MasterySnapshot:
    return MasterySnapshot(
        days_completed=mastery.days_completed,
        artifacts_submitted=mastery.artifacts_submitted,
        peer_assists_given=mastery.peer_assists_given,
        ai_tutor_sessions=mastery.ai_tutor_sessions,
        mastery_level=mastery.mastery_level,
    )


async def run_mastery_update(
    db: AsyncSession,
    *,
    notifier: NotificationDispatcher | None = None,
    now: datetime | None = None,
) -> dict:
    """Level up every participant whose counters satisfy a higher tier.

    Only rows that level up are written. Levels never decrease.
    """
    now = now or utcnow()
    notifier = notifier or get_dispatcher()
    records = (await db.execute(select(ParticipantMastery))).scalars().all()

    updates: list[dict] = []
    leveled: list[tuple[uuid.UUID, LevelUp]] = []
    for mastery in records:
        level_up = evaluate(snapshot_of(mastery))
        if level_up is None:
            continue
        old_level = mastery.mastery_level
        mastery.mastery_level = level_up.new_level
        mastery.clearance = level_up.new_clearance
        mastery.updated_at = now
        record_activity(
            db,
            "mastery_level_up",
            mastery.participant_id,
            {"old_level": old_level, "new_level": level_up.new_level, "new_clearance": level_up.new_clearance},
        )
        updates.append(
            {
                "participant_id": str(mastery.participant_id),
                "old_level": old_level,
                "new_level": level_up.new_level,
                "new_clearance": level_up.new_clearance,
            }
        )
        leveled.append((mastery.participant_id, level_up))

    await db.commit()

    for participant_id, level_up in leveled:
        participant = await db.get(Participant, participant_id)
        if participant is None:
            continue
        notifier.dispatch(
            participant.email,
            "level_up",
            {
                "participant_name": participant.name,
                "new_level": level_up.new_level,
                "new_clearance": level_up.new_clearance,
            },
        )

    logger.info("mastery_update_complete", processed=len(records), updated=len(updates))
    return {"processed": len(records), "updated": len(updates), "updates": updates}
