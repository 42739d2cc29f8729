from __future__ import annotations

import pytest
from sqlalchemy import select

from academy.db.models import ActivityLog, ParticipantMastery
from academy.email.dispatcher import get_dispatcher
from academy.gamification.jobs import run_mastery_update
from helpers import make_participant


async def _mastery(db, participant_id) -> ParticipantMastery:
    result = await db.execute(select(ParticipantMastery).where(ParticipantMastery.participant_id == participant_id))
    return result.scalar_one()


class TestRunMasteryUpdate:
    @pytest.mark.asyncio
    async def test_levels_up_qualifying_participants(self, db, outbox):
        trainee = await make_participant(db, name="Trainee")
        idle = await make_participant(db, name="Idle")
        mastery = await _mastery(db, trainee.id)
        mastery.days_completed = 3
        mastery.ai_tutor_sessions = 1
        await db.commit()

        result = await run_mastery_update(db)
        await get_dispatcher().drain()

        assert result["processed"] == 2
        assert result["updated"] == 1
        assert result["updates"] == [
            {"participant_id": str(trainee.id), "old_level": 1, "new_level": 2, "new_clearance": "FIELD_TRAINEE"}
        ]
        assert (await _mastery(db, trainee.id)).clearance == "FIELD_TRAINEE"
        assert (await _mastery(db, idle.id)).mastery_level == 1

        logs = (await db.execute(select(ActivityLog).where(ActivityLog.action == "mastery_level_up"))).scalars().all()
        assert len(logs) == 1
        assert logs[0].details["new_level"] == 2
        assert [m["subject"] for m in outbox.to(trainee.email)] == ["Clearance upgraded: Field Trainee"]

    @pytest.mark.asyncio
    async def test_second_run_is_a_noop(self, db, outbox):
        participant = await make_participant(db)
        mastery = await _mastery(db, participant.id)
        mastery.days_completed = 10
        mastery.artifacts_submitted = 1
        await db.commit()

        first = await run_mastery_update(db)
        second = await run_mastery_update(db)

        assert first["updated"] == 1
        assert first["updates"][0]["new_level"] == 3
        assert second["updated"] == 0

    @pytest.mark.asyncio
    async def test_never_lowers_a_level(self, db):
        participant = await make_participant(db)
        mastery = await _mastery(db, participant.id)
        mastery.mastery_level = 4
        mastery.clearance = "SPECIALIST"
        await db.commit()

        result = await run_mastery_update(db)

        assert result["updated"] == 0
        assert (await _mastery(db, participant.id)).mastery_level == 4
