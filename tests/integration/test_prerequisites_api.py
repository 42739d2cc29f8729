from __future__ import annotations

import pytest
from sqlalchemy import select

from academy.auth.jwt import create_access_token
from academy.db.models import ActivityLog, ParticipantPrerequisite, PrerequisiteItem
from helpers import auth_headers, make_participant, new_session


async def _item_id(db, code: str) -> int:
    item_id = (await db.execute(select(PrerequisiteItem.id).where(PrerequisiteItem.code == code))).scalar_one()
    # End the read transaction: all sessions share one SQLite connection in tests.
    await db.commit()
    return item_id


class TestRead:
    @pytest.mark.asyncio
    async def test_requires_auth(self, client):
        assert (await client.get("/api/prerequisites")).status_code == 401

    @pytest.mark.asyncio
    async def test_items_view(self, client, db):
        participant = await make_participant(db)

        response = await client.get("/api/prerequisites", params={"view": "items"}, headers=auth_headers(participant))

        assert response.status_code == 200
        items = response.json()["items"]
        assert len(items) == 12
        assert items[0]["code"] == "git_installed"
        assert [i["display_order"] for i in items] == sorted(i["display_order"] for i in items)

    @pytest.mark.asyncio
    async def test_unregistered_user_gets_catalog(self, client):
        token = create_access_token("auth-newcomer", "newcomer@example.com")
        response = await client.get("/api/prerequisites", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert len(response.json()["items"]) == 12

    @pytest.mark.asyncio
    async def test_own_checklist_by_default(self, client, db):
        participant = await make_participant(db)

        response = await client.get("/api/prerequisites", headers=auth_headers(participant))

        assert response.status_code == 200
        body = response.json()
        assert body["participant_id"] == str(participant.id)
        assert len(body["prerequisites"]) == 12
        assert body["summary"] == {
            "required_total": 8,
            "required_completed": 0,
            "required_completion_pct": 0,
            "total_items": 12,
            "total_completed": 0,
            "total_completion_pct": 0,
            "is_ready": False,
        }

    @pytest.mark.asyncio
    async def test_participant_cannot_read_another(self, client, db):
        participant = await make_participant(db)
        other = await make_participant(db)
        response = await client.get(
            "/api/prerequisites", params={"participant_id": str(other.id)}, headers=auth_headers(participant)
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_mentor_reads_another(self, client, db):
        mentor = await make_participant(db, is_mentor=True)
        other = await make_participant(db)
        response = await client.get(
            "/api/prerequisites", params={"participant_id": str(other.id)}, headers=auth_headers(mentor)
        )
        assert response.status_code == 200
        assert response.json()["participant_id"] == str(other.id)


class TestStats:
    @pytest.mark.asyncio
    async def test_staff_only(self, client, db):
        participant = await make_participant(db)
        response = await client.get("/api/prerequisites", params={"view": "stats"}, headers=auth_headers(participant))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_overview(self, client, db):
        mentor = await make_participant(db, is_mentor=True)
        done = await make_participant(db, name="Done")
        await make_participant(db, name="Fresh")
        git = await _item_id(db, "git_installed")
        db.add(ParticipantPrerequisite(participant_id=done.id, prerequisite_id=git, is_completed=True))
        await db.commit()

        response = await client.get("/api/prerequisites", params={"view": "stats"}, headers=auth_headers(mentor))

        assert response.status_code == 200
        body = response.json()
        assert body["overview"] == {
            "total_participants": 2,
            "fully_ready": 0,
            "partially_ready": 1,
            "not_started": 1,
            "readiness_pct": 0,
        }
        assert [r["name"] for r in body["summary"]] == ["Done", "Fresh"]
        git_stat = next(s for s in body["stats"] if s["code"] == "git_installed")
        assert git_stat["completed_count"] == 1
        assert git_stat["completion_pct"] == 50


class TestUpdate:
    @pytest.mark.asyncio
    async def test_single(self, client, db):
        participant = await make_participant(db)
        git = await _item_id(db, "git_installed")

        response = await client.post(
            "/api/prerequisites",
            json={"prerequisite_id": git, "is_completed": True, "notes": "<b>git 2.44</b>"},
            headers=auth_headers(participant),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["updated"] == 1
        assert body["prerequisite"]["is_completed"] is True
        assert body["prerequisite"]["notes"] == "git 2.44"
        assert body["prerequisite"]["completed_at"] is not None

        listing = await client.get("/api/prerequisites", headers=auth_headers(participant))
        git_status = next(p for p in listing.json()["prerequisites"] if p["code"] == "git_installed")
        assert git_status["is_completed"] is True
        assert listing.json()["summary"]["required_completed"] == 1

        async with new_session() as session:
            entry = (
                await session.execute(select(ActivityLog).where(ActivityLog.action == "prerequisites_updated"))
            ).scalar_one()
            assert entry.participant_id == participant.id

    @pytest.mark.asyncio
    async def test_batch(self, client, db):
        participant = await make_participant(db)
        ids = [await _item_id(db, code) for code in ("git_installed", "github_account", "slack_joined")]

        response = await client.post(
            "/api/prerequisites",
            json={"type": "batch", "updates": [{"prerequisite_id": i, "is_completed": True} for i in ids]},
            headers=auth_headers(participant),
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "updated": 3, "prerequisite": None}
        async with new_session() as session:
            rows = (
                await session.execute(
                    select(ParticipantPrerequisite).where(ParticipantPrerequisite.participant_id == participant.id)
                )
            ).scalars().all()
            assert {r.prerequisite_id for r in rows} == set(ids)

    @pytest.mark.asyncio
    async def test_unknown_item_writes_nothing(self, client, db):
        participant = await make_participant(db)
        git = await _item_id(db, "git_installed")

        response = await client.post(
            "/api/prerequisites",
            json={
                "type": "batch",
                "updates": [{"prerequisite_id": git, "is_completed": True}, {"prerequisite_id": 9999, "is_completed": True}],
            },
            headers=auth_headers(participant),
        )

        assert response.status_code == 404
        async with new_session() as session:
            assert (await session.execute(select(ParticipantPrerequisite))).first() is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"prerequisite_id": 1},
            {"is_completed": True},
            {"type": "batch", "updates": []},
            {"prerequisite_id": 0, "is_completed": True},
            {"type": "other", "prerequisite_id": 1, "is_completed": True},
        ],
    )
    async def test_invalid_payload(self, client, db, payload):
        participant = await make_participant(db)
        response = await client.post("/api/prerequisites", json=payload, headers=auth_headers(participant))
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_mentor_cannot_update_another(self, client, db):
        mentor = await make_participant(db, is_mentor=True)
        other = await make_participant(db)
        git = await _item_id(db, "git_installed")
        response = await client.post(
            "/api/prerequisites",
            json={"participant_id": str(other.id), "prerequisite_id": git, "is_completed": True},
            headers=auth_headers(mentor),
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_updates_another(self, client, db):
        admin = await make_participant(db, is_admin=True)
        other = await make_participant(db)
        git = await _item_id(db, "git_installed")

        response = await client.post(
            "/api/prerequisites",
            json={"participant_id": str(other.id), "prerequisite_id": git, "is_completed": True},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert response.json()["prerequisite"]["participant_id"] == str(other.id)
