"""Idempotent award paths for achievements and recognitions.

Both follow the same contract: existence check, insert the award row,
append an ActivityLog entry, return True. An existing row returns False
and writes nothing. A concurrent insert that loses the race on the unique
key is rolled back to a savepoint and also reported as False. The caller
owns the transaction and commits.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.activity import record_activity
from academy.db.models import (
    Achievement,
    Participant,
    ParticipantAchievement,
    ParticipantRecognition,
    RecognitionType,
)
from academy.email.dispatcher import NotificationDispatcher, get_dispatcher
from academy.gamification.leaderboard import add_bonus_points

logger = logging.getLogger(__name__)


async def get_achievement_by_code(db: AsyncSession, code: str) -> Achievement | None:
    result = await db.execute(select(Achievement).where(Achievement.code == code))
    return result.scalar_one_or_none()


async def has_achievement(db: AsyncSession, participant_id: uuid.UUID, achievement_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(ParticipantAchievement.achievement_id).where(
            ParticipantAchievement.participant_id == participant_id,
            ParticipantAchievement.achievement_id == achievement_id,
        )
    )
    return result.first() is not None


async def has_recognition(db: AsyncSession, participant_id: uuid.UUID, recognition_type_id: int) -> bool:
    result = await db.execute(
        select(ParticipantRecognition.id).where(
            ParticipantRecognition.participant_id == participant_id,
            ParticipantRecognition.recognition_type_id == recognition_type_id,
        )
    )
    return result.first() is not None


async def _insert_once(db: AsyncSession, row: object) -> bool:
    """Insert ``row`` inside a savepoint; False if the unique key already exists."""
    try:
        async with db.begin_nested():
            db.add(row)
    except IntegrityError:
        return False
    return True


async def award_achievement(
    db: AsyncSession,
    participant_id: uuid.UUID,
    code: str,
    *,
    notifier: NotificationDispatcher | None = None,
    details: dict | None = None,
) -> bool:
    """Award achievement ``code`` once.

    Returns True if newly awarded, False if already earned or the code is unknown.
    A new award credits ``points_bonus`` and fires a best-effort email.
    """
    achievement = await get_achievement_by_code(db, code)
    if achievement is None:
        logger.warning("Achievement not found: %s", code)
        return False

    if await has_achievement(db, participant_id, achievement.id):
        return False

    if not await _insert_once(db, ParticipantAchievement(participant_id=participant_id, achievement_id=achievement.id)):
        return False

    record_activity(
        db,
        "achievement",
        participant_id,
        {
            "achievement_code": achievement.code,
            "achievement_name": achievement.name,
            "points_bonus": achievement.points_bonus,
            **(details or {}),
        },
    )
    await add_bonus_points(db, participant_id, achievement.points_bonus)

    participant = await db.get(Participant, participant_id)
    if participant is not None:
        (notifier or get_dispatcher()).dispatch(
            participant.email,
            "achievement",
            {
                "participant_name": participant.name,
                "achievement_name": achievement.name,
                "achievement_icon": achievement.icon or "",
                "achievement_description": achievement.description,
                "bonus_points": achievement.points_bonus,
            },
        )
    return True


async def award_recognition(
    db: AsyncSession,
    participant_id: uuid.UUID,
    recognition_type_id: int,
    context: str | None = None,
) -> bool:
    """Award a recognition once. Returns True if newly awarded."""
    if await has_recognition(db, participant_id, recognition_type_id):
        return False

    row = ParticipantRecognition(
        participant_id=participant_id,
        recognition_type_id=recognition_type_id,
        context=context,
    )
    if not await _insert_once(db, row):
        return False

    recognition_type = await db.get(RecognitionType, recognition_type_id)
    record_activity(
        db,
        "recognition",
        participant_id,
        {
            "recognition_code": recognition_type.code if recognition_type else None,
            "recognition_name": recognition_type.name if recognition_type else None,
            "context": context,
        },
    )
    return True
