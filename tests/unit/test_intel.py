from __future__ import annotations

from datetime import UTC, date, datetime, time

import pytest
from sqlalchemy import select

from academy.config import get_settings
from academy.db.models import ActivityLog, IntelDrop
from academy.email.dispatcher import get_dispatcher
from academy.intel.service import (
    current_program_day,
    drop_is_due,
    released_drops,
    run_intel_release,
    trigger_time_passed,
)
from helpers import make_participant

START = date(2026, 2, 2)


class TestCurrentProgramDay:
    @pytest.mark.parametrize(
        ("offset", "expected"),
        [(-1, 0), (0, 1), (9, 10), (10, 10), (16, 10), (17, 11), (31, 25), (60, 25)],
    )
    def test_calendar(self, offset, expected):
        today = date.fromordinal(START.toordinal() + offset)
        assert current_program_day(today, START) == expected


class TestTriggerTime:
    def test_none_releases_immediately(self):
        assert trigger_time_passed(None, datetime(2026, 2, 2, 0, 0, tzinfo=UTC), UTC)

    def test_before_and_after(self):
        now = datetime(2026, 2, 2, 9, 30, tzinfo=UTC)
        assert trigger_time_passed(time(9, 0), now, UTC)
        assert trigger_time_passed(time(9, 30), now, UTC)
        assert not trigger_time_passed(time(10, 0), now, UTC)


def _drop(day: int, trigger: time | None = None, title: str | None = None) -> IntelDrop:
    return IntelDrop(day=day, trigger_time=trigger, title=title or f"Drop {day}", content="Briefing body")


class TestDropIsDue:
    def test_earlier_day_ignores_trigger_time(self):
        now = datetime(2026, 2, 8, 9, 0, tzinfo=UTC)
        assert drop_is_due(_drop(5, time(18, 0)), 7, now, UTC)

    def test_same_day_waits_for_trigger_time(self):
        now = datetime(2026, 2, 8, 9, 0, tzinfo=UTC)
        assert not drop_is_due(_drop(7, time(18, 0)), 7, now, UTC)
        assert drop_is_due(_drop(7, time(8, 0)), 7, now, UTC)

    def test_future_day_is_never_due(self):
        now = datetime(2026, 2, 8, 23, 0, tzinfo=UTC)
        assert not drop_is_due(_drop(8), 7, now, UTC)


class TestRunIntelRelease:
    @pytest.mark.asyncio
    async def test_before_program_start(self, db):
        db.add(_drop(1))
        await db.commit()

        result = await run_intel_release(db, now=datetime(2026, 1, 1, 12, 0, tzinfo=UTC))

        assert result == {"released": 0, "drops": [], "current_day": 0}

    @pytest.mark.asyncio
    async def test_releases_due_drops_once(self, db, outbox):
        assert get_settings().program_start_date == START
        agent = await make_participant(db, name="Agent")
        await make_participant(db, name="Applicant", status="pending")
        db.add_all([_drop(1), _drop(3, time(9, 0)), _drop(3, time(18, 0), "Evening"), _drop(4)])
        await db.commit()
        now = datetime(2026, 2, 4, 12, 0, tzinfo=UTC)  # day 3

        result = await run_intel_release(db, now=now)
        await get_dispatcher().drain()

        assert result["released"] == 2
        assert result["current_day"] == 3
        assert [d["title"] for d in result["drops"]] == ["Drop 1", "Drop 3"]
        assert len(outbox.to(agent.email)) == 2
        assert len(outbox.sent) == 2
        log = (await db.execute(select(ActivityLog).where(ActivityLog.action == "intel_release"))).scalar_one()
        assert log.participant_id is None

        again = await run_intel_release(db, now=now)
        assert again["released"] == 0

        titles = [d.title for d in await released_drops(db)]
        assert titles == ["Drop 3", "Drop 1"]

    @pytest.mark.asyncio
    async def test_missed_evening_drop_released_next_morning(self, db):
        db.add(_drop(5, time(18, 0), "Missed"))
        await db.commit()

        result = await run_intel_release(db, now=datetime(2026, 2, 8, 9, 0, tzinfo=UTC))  # day 7

        assert result["current_day"] == 7
        assert [d["title"] for d in result["drops"]] == ["Missed"]
