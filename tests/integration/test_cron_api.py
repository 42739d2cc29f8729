from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import select

from academy.config import get_settings
from academy.db.models import ParticipantMastery
from academy.email.dispatcher import get_dispatcher
from helpers import hours_from_now, make_assignment, make_participant, new_session

CRON = {"Authorization": "Bearer test-cron-secret"}


class TestCronAuth:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer wrong"}, {"Authorization": "test-cron-secret"}])
    async def test_rejects_bad_secret(self, client, headers):
        response = await client.get("/api/cron/mastery-update", headers=headers)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_fails_closed_without_secret(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "cron_secret", None)
        response = await client.get("/api/cron/mastery-update", headers=CRON)
        assert response.status_code == 500
        assert response.json() == {"detail": "Server configuration error"}

    @pytest.mark.asyncio
    async def test_timeout(self, client, monkeypatch):
        async def slow(_db):
            await asyncio.sleep(5)
            return {}

        monkeypatch.setattr("academy.cron.router.run_recognitions", slow)
        monkeypatch.setattr(get_settings(), "cron_job_timeout_seconds", 0)
        response = await client.get("/api/cron/recognitions", headers=CRON)
        assert response.status_code == 504


class TestCronJobs:
    @pytest.mark.asyncio
    async def test_mastery_update(self, client, db, outbox):
        participant = await make_participant(db)
        mastery = (
            await db.execute(select(ParticipantMastery).where(ParticipantMastery.participant_id == participant.id))
        ).scalar_one()
        mastery.days_completed = 3
        mastery.ai_tutor_sessions = 1
        await db.commit()

        response = await client.get("/api/cron/mastery-update", headers=CRON)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["updated"] == 1
        async with new_session() as s:
            stored = (
                await s.execute(select(ParticipantMastery).where(ParticipantMastery.participant_id == participant.id))
            ).scalar_one()
            assert stored.mastery_level == 2

    @pytest.mark.asyncio
    async def test_recognitions(self, client):
        response = await client.get("/api/cron/recognitions", headers=CRON)
        assert response.status_code == 200
        assert response.json()["total_awarded"] == 0

    @pytest.mark.asyncio
    async def test_intel_release(self, client):
        response = await client.get("/api/cron/intel-release", headers=CRON)
        assert response.status_code == 200
        assert response.json()["success"] is True

    @pytest.mark.asyncio
    async def test_deadline_reminders(self, client, db, outbox):
        participant = await make_participant(db)
        await make_assignment(db, due_at=hours_from_now(5))

        response = await client.get("/api/cron/deadline-reminders", headers=CRON)
        await get_dispatcher().drain()

        assert response.json() == {"success": True, "emails_sent": 1, "upcoming_deadlines": 1, "errors": []}
        assert len(outbox.to(participant.email)) == 1

    @pytest.mark.asyncio
    async def test_not_rate_limited(self, client):
        for _ in range(3):
            response = await client.get("/api/cron/recognitions", headers=CRON)
        assert "X-RateLimit-Limit" not in response.headers
