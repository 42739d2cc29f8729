from __future__ import annotations

import uuid

import pytest
from sqlalchemy import func, select

from academy.db.models import ActivityLog, LeaderboardEntry, ParticipantAchievement, ParticipantMastery, Submission
from academy.email.dispatcher import get_dispatcher
from helpers import auth_headers, make_assignment, make_participant, make_submission, new_session

SHA = "0123abcd"


class TestAssignments:
    @pytest.mark.asyncio
    async def test_list_by_day(self, client, db):
        await make_assignment(db, day=1)
        await make_assignment(db, day=2)
        response = await client.get("/api/assignments", params={"day": 2})
        assert [a["day"] for a in response.json()] == [2]

    @pytest.mark.asyncio
    async def test_day_out_of_range(self, client):
        response = await client.get("/api/assignments", params={"day": 26})
        assert response.status_code == 400


class TestCreateSubmission:
    @pytest.mark.asyncio
    async def test_first_submission(self, client, db, outbox):
        participant = await make_participant(db)
        assignment = await make_assignment(db)

        response = await client.post(
            "/api/submissions",
            json={"assignment_id": str(assignment.id), "commit_sha": SHA, "self_rating": 4},
            headers=auth_headers(participant),
        )
        await get_dispatcher().drain()

        assert response.status_code == 201
        assert response.json()["status"] == "submitted"
        async with new_session() as s:
            entry = await s.get(LeaderboardEntry, participant.id)
            assert entry.total_submissions == 1
            assert entry.current_streak == 1
            assert entry.avg_self_rating == 4
            mastery = (
                await s.execute(select(ParticipantMastery).where(ParticipantMastery.participant_id == participant.id))
            ).scalar_one()
            assert (mastery.artifacts_submitted, mastery.days_completed) == (1, 1)
            codes = [a.achievement.code for a in (await s.execute(select(ParticipantAchievement))).scalars()]
            assert codes == ["first_blood"]
            actions = set((await s.execute(select(ActivityLog.action))).scalars())
            assert {"submission", "achievement"} <= actions
        assert [m["subject"] for m in outbox.to(participant.email)] == ["Achievement unlocked: First Blood!"]

    @pytest.mark.asyncio
    async def test_duplicate(self, client, db):
        participant = await make_participant(db)
        assignment = await make_assignment(db)
        await make_submission(db, participant, assignment)

        response = await client.post(
            "/api/submissions",
            json={"assignment_id": str(assignment.id), "commit_sha": SHA},
            headers=auth_headers(participant),
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_pending_participant_cannot_submit(self, client, db):
        participant = await make_participant(db, status="pending")
        assignment = await make_assignment(db)
        response = await client.post(
            "/api/submissions",
            json={"assignment_id": str(assignment.id), "commit_sha": SHA},
            headers=auth_headers(participant),
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_role_targeted_assignment(self, client, db):
        participant = await make_participant(db, role="AI-PM")
        assignment = await make_assignment(db, target_roles=["FDE"])
        response = await client.post(
            "/api/submissions",
            json={"assignment_id": str(assignment.id), "commit_sha": SHA},
            headers=auth_headers(participant),
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_assignment(self, client, db):
        participant = await make_participant(db)
        response = await client.post(
            "/api/submissions",
            json={"assignment_id": str(uuid.uuid4()), "commit_sha": SHA},
            headers=auth_headers(participant),
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_bad_commit_sha(self, client, db):
        participant = await make_participant(db)
        assignment = await make_assignment(db)
        response = await client.post(
            "/api/submissions",
            json={"assignment_id": str(assignment.id), "commit_sha": "not-a-sha"},
            headers=auth_headers(participant),
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "commit_sha"


class TestListSubmissions:
    @pytest.mark.asyncio
    async def test_participant_sees_only_own(self, client, db):
        me = await make_participant(db)
        other = await make_participant(db)
        assignment = await make_assignment(db)
        await make_submission(db, me, assignment)
        await make_submission(db, other, assignment)

        response = await client.get("/api/submissions", headers=auth_headers(me))

        body = response.json()
        assert body["total"] == 1
        assert body["submissions"][0]["participant_id"] == str(me.id)

    @pytest.mark.asyncio
    async def test_mentor_sees_all(self, client, db):
        mentor = await make_participant(db, is_mentor=True)
        assignment = await make_assignment(db)
        for _ in range(2):
            await make_submission(db, await make_participant(db), assignment)
        response = await client.get("/api/submissions", headers=auth_headers(mentor))
        assert response.json()["total"] == 2


class TestReview:
    @pytest.mark.asyncio
    async def test_review_scores_and_notifies(self, client, db, outbox):
        mentor = await make_participant(db, is_mentor=True)
        participant = await make_participant(db)
        assignment = await make_assignment(db, max_points=15, title="Prompt drill")
        submission = await make_submission(db, participant, assignment)

        response = await client.post(
            "/api/review",
            json={"submission_id": str(submission.id), "mentor_rating": 4, "mentor_notes": "Solid <i>work</i>"},
            headers=auth_headers(mentor),
        )
        await get_dispatcher().drain()

        assert response.status_code == 200
        body = response.json()
        assert body["achievement_awarded"] is False
        assert body["submission"]["points_earned"] == 12
        assert body["submission"]["status"] == "reviewed"
        assert body["submission"]["mentor_notes"] == "Solid work"
        async with new_session() as s:
            assert (await s.get(LeaderboardEntry, participant.id)).total_points == 12
            assert (await s.get(Submission, submission.id)).mentor_id == mentor.id
        assert [m["subject"] for m in outbox.to(participant.email)] == ["Your submission was reviewed: Prompt drill"]

    @pytest.mark.asyncio
    async def test_perfect_rating_awards_mentor_favorite(self, client, db):
        mentor = await make_participant(db, is_admin=True)
        participant = await make_participant(db)
        submission = await make_submission(db, participant, await make_assignment(db, max_points=10))

        response = await client.post(
            "/api/review",
            json={"submission_id": str(submission.id), "mentor_rating": 5},
            headers=auth_headers(mentor),
        )

        assert response.json()["achievement_awarded"] is True
        async with new_session() as s:
            entry = await s.get(LeaderboardEntry, participant.id)
            assert entry.total_points == 10 + 10
            assert entry.bonus_points == 10

    @pytest.mark.asyncio
    async def test_points_are_rounded(self, client, db):
        mentor = await make_participant(db, is_mentor=True)
        submission = await make_submission(db, await make_participant(db), await make_assignment(db, max_points=7))
        response = await client.post(
            "/api/review",
            json={"submission_id": str(submission.id), "mentor_rating": 4},
            headers=auth_headers(mentor),
        )
        assert response.json()["submission"]["points_earned"] == 6

    @pytest.mark.asyncio
    async def test_participant_cannot_review(self, client, db):
        participant = await make_participant(db)
        submission = await make_submission(db, participant, await make_assignment(db))
        response = await client.post(
            "/api/review",
            json={"submission_id": str(submission.id), "mentor_rating": 5},
            headers=auth_headers(participant),
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_rating_out_of_range(self, client, db):
        mentor = await make_participant(db, is_mentor=True)
        response = await client.post(
            "/api/review",
            json={"submission_id": str(uuid.uuid4()), "mentor_rating": 6},
            headers=auth_headers(mentor),
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_submission(self, client, db):
        mentor = await make_participant(db, is_mentor=True)
        response = await client.post(
            "/api/review",
            json={"submission_id": str(uuid.uuid4()), "mentor_rating": 3},
            headers=auth_headers(mentor),
        )
        assert response.status_code == 404


class TestBulkReview:
    @pytest.mark.asyncio
    async def test_rates_every_submission(self, client, db):
        mentor = await make_participant(db, is_mentor=True)
        assignment = await make_assignment(db, max_points=10)
        first = await make_participant(db)
        second = await make_participant(db)
        subs = [await make_submission(db, first, assignment), await make_submission(db, second, assignment)]

        response = await client.post(
            "/api/bulk-review",
            json={"submission_ids": [str(s.id) for s in subs], "mentor_rating": 5},
            headers=auth_headers(mentor),
        )

        body = response.json()
        assert body["updated"] == 2
        assert body["achievements_awarded"] == 2
        assert {s["points_earned"] for s in body["submissions"]} == {10}
        async with new_session() as s:
            count = (
                await s.execute(
                    select(func.count()).select_from(ActivityLog).where(ActivityLog.action == "bulk_review")
                )
            ).scalar_one()
            assert count == 2

    @pytest.mark.asyncio
    async def test_status_only(self, client, db):
        mentor = await make_participant(db, is_mentor=True)
        submission = await make_submission(db, await make_participant(db), await make_assignment(db))

        response = await client.post(
            "/api/bulk-review",
            json={"submission_ids": [str(submission.id)], "status": "needs_revision"},
            headers=auth_headers(mentor),
        )

        (updated,) = response.json()["submissions"]
        assert updated["status"] == "needs_revision"
        assert updated["mentor_rating"] is None
        assert updated["points_earned"] == 0

    @pytest.mark.asyncio
    async def test_missing_ids_change_nothing(self, client, db):
        mentor = await make_participant(db, is_mentor=True)
        submission = await make_submission(db, await make_participant(db), await make_assignment(db))

        response = await client.post(
            "/api/bulk-review",
            json={"submission_ids": [str(submission.id), str(uuid.uuid4())], "mentor_rating": 4},
            headers=auth_headers(mentor),
        )

        assert response.status_code == 404
        async with new_session() as s:
            assert (await s.get(Submission, submission.id)).status == "submitted"

    @pytest.mark.asyncio
    async def test_needs_rating_or_status(self, client, db):
        mentor = await make_participant(db, is_mentor=True)
        response = await client.post(
            "/api/bulk-review", json={"submission_ids": [str(uuid.uuid4())]}, headers=auth_headers(mentor)
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Validation failed"
