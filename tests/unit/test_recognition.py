from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import func, select

from academy.db.models import ActivityLog, LeaderboardEntry, ParticipantMastery, ParticipantRecognition
from academy.gamification.recognition import early_risers, night_scholars, run_recognitions
from helpers import make_assignment, make_participant, make_submission

NOW = datetime(2026, 3, 12, 23, 30, tzinfo=UTC)


class TestHourRules:
    def test_early_and_night_split(self):
        a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        rows = [
            (a, datetime(2026, 3, 12, 7, 59, tzinfo=UTC)),
            (b, datetime(2026, 3, 12, 22, 0, tzinfo=UTC)),
            (c, datetime(2026, 3, 12, 8, 0, tzinfo=UTC)),
        ]
        assert early_risers(rows, UTC) == {a}
        assert night_scholars(rows, UTC) == {b}

    def test_uses_program_timezone(self):
        pid = uuid.uuid4()
        # 05:30 UTC is 22:30 the previous evening in Los Angeles
        rows = [(pid, datetime(2026, 3, 12, 5, 30, tzinfo=UTC))]
        assert early_risers(rows, UTC) == {pid}
        assert night_scholars(rows, ZoneInfo("America/Los_Angeles")) == {pid}
        assert early_risers(rows, ZoneInfo("America/Los_Angeles")) == set()

    def test_naive_values_are_utc(self):
        pid = uuid.uuid4()
        assert early_risers([(pid, datetime(2026, 3, 12, 6, 0))], UTC) == {pid}


class TestRunRecognitions:
    @pytest.mark.asyncio
    async def test_awards_each_rule(self, db):
        early = await make_participant(db, name="Early")
        night = await make_participant(db, name="Night")
        steady = await make_participant(db, name="Steady")
        helper = await make_participant(db, name="Helper")
        assignment = await make_assignment(db)
        await make_submission(db, early, assignment, submitted_at=NOW.replace(hour=6))
        await make_submission(db, night, assignment, submitted_at=NOW.replace(hour=22, minute=15))
        # Outside the 24h window
        await make_submission(db, helper, assignment, submitted_at=NOW - timedelta(days=2))
        (await db.get(LeaderboardEntry, steady.id)).current_streak = 5
        mastery = (
            await db.execute(select(ParticipantMastery).where(ParticipantMastery.participant_id == helper.id))
        ).scalar_one()
        mastery.peer_assists_given = 3
        await db.commit()

        result = await run_recognitions(db, now=NOW)

        assert result["total_awarded"] == 4
        assert result["results"]["early_riser"] == {"found": 1, "awarded": 1}
        assert result["results"]["night_scholar"] == {"found": 1, "awarded": 1}
        assert result["results"]["momentum"] == {"found": 1, "awarded": 1}
        assert result["results"]["team_supporter"] == {"found": 1, "awarded": 1}

        earned = {
            (row.participant_id, row.recognition_type.code)
            for row in (await db.execute(select(ParticipantRecognition))).scalars()
        }
        assert earned == {
            (early.id, "early_riser"),
            (night.id, "night_scholar"),
            (steady.id, "momentum"),
            (helper.id, "team_supporter"),
        }

    @pytest.mark.asyncio
    async def test_rerun_awards_nothing(self, db):
        participant = await make_participant(db)
        await make_submission(db, participant, await make_assignment(db), submitted_at=NOW.replace(hour=5))

        first = await run_recognitions(db, now=NOW)
        second = await run_recognitions(db, now=NOW)

        assert first["total_awarded"] == 1
        assert second["total_awarded"] == 0
        assert second["results"]["early_riser"] == {"found": 1, "awarded": 0}
        count = (
            await db.execute(select(func.count()).select_from(ActivityLog).where(ActivityLog.action == "recognition"))
        ).scalar_one()
        assert count == 1
