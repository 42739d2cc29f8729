"""Award idempotency guard tests."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from academy.db.models import (
    ActivityLog,
    LeaderboardEntry,
    ParticipantAchievement,
    ParticipantRecognition,
    RecognitionType,
)
from academy.email.dispatcher import get_dispatcher
from academy.gamification.awards import award_achievement, award_recognition, get_achievement_by_code
from helpers import make_participant


async def _count(db, model, *where):
    return (await db.execute(select(func.count()).select_from(model).where(*where))).scalar_one()


class TestAwardAchievement:
    @pytest.mark.asyncio
    async def test_awarding_twice_writes_once(self, db, outbox):
        participant = await make_participant(db)

        first = await award_achievement(db, participant.id, "first_blood")
        await db.commit()
        second = await award_achievement(db, participant.id, "first_blood")
        await db.commit()

        assert first is True
        assert second is False
        assert await _count(db, ParticipantAchievement, ParticipantAchievement.participant_id == participant.id) == 1
        assert (
            await _count(
                db, ActivityLog, ActivityLog.participant_id == participant.id, ActivityLog.action == "achievement"
            )
            == 1
        )

    @pytest.mark.asyncio
    async def test_credits_bonus_points(self, db, outbox):
        participant = await make_participant(db)
        achievement = await get_achievement_by_code(db, "mentor_favorite")

        await award_achievement(db, participant.id, "mentor_favorite")
        await db.commit()

        entry = await db.get(LeaderboardEntry, participant.id)
        assert entry.bonus_points == achievement.points_bonus
        assert entry.total_points == achievement.points_bonus

    @pytest.mark.asyncio
    async def test_sends_one_email(self, db, outbox):
        participant = await make_participant(db, email="winner@example.com")

        await award_achievement(db, participant.id, "first_blood")
        await award_achievement(db, participant.id, "first_blood")
        await db.commit()
        await get_dispatcher().drain()

        mails = outbox.to("winner@example.com")
        assert len(mails) == 1
        assert mails[0]["subject"] == "Achievement unlocked: First Blood!"

    @pytest.mark.asyncio
    async def test_unknown_code(self, db, outbox):
        participant = await make_participant(db)
        assert await award_achievement(db, participant.id, "does_not_exist") is False


class TestAwardRecognition:
    @pytest.mark.asyncio
    async def test_awarding_twice_writes_once(self, db):
        participant = await make_participant(db)
        momentum = (await db.execute(select(RecognitionType).where(RecognitionType.code == "momentum"))).scalar_one()

        assert await award_recognition(db, participant.id, momentum.id, "streak") is True
        assert await award_recognition(db, participant.id, momentum.id, "streak") is False
        await db.commit()

        assert await _count(db, ParticipantRecognition, ParticipantRecognition.participant_id == participant.id) == 1
        assert (
            await _count(
                db, ActivityLog, ActivityLog.participant_id == participant.id, ActivityLog.action == "recognition"
            )
            == 1
        )

    @pytest.mark.asyncio
    async def test_race_on_unique_key_reports_false(self, db, monkeypatch):
        """A row inserted between the existence check and the insert is treated as already awarded."""
        participant = await make_participant(db)
        momentum = (await db.execute(select(RecognitionType).where(RecognitionType.code == "momentum"))).scalar_one()
        db.add(ParticipantRecognition(participant_id=participant.id, recognition_type_id=momentum.id))
        await db.commit()

        async def _never_seen(*_args, **_kwargs):
            return False

        monkeypatch.setattr("academy.gamification.awards.has_recognition", _never_seen)
        assert await award_recognition(db, participant.id, momentum.id) is False
        await db.commit()
        assert await _count(db, ParticipantRecognition, ParticipantRecognition.participant_id == participant.id) == 1
        assert await _count(db, ActivityLog, ActivityLog.action == "recognition") == 0
