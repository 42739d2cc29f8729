from __future__ import annotations

import csv
import io

import pytest

from academy.activity import record_activity
from academy.db.models import LeaderboardEntry
from academy.gamification.awards import award_achievement
from academy.gamification.leaderboard import recalculate_ranks, refresh_participant
from academy.utils.time import utcnow
from helpers import auth_headers, make_assignment, make_participant, make_submission


async def _scored(db, name: str, team: str, points: int, **kwargs):
    participant = await make_participant(db, name=name, team=team, **kwargs)
    entry = await db.get(LeaderboardEntry, participant.id)
    entry.total_points = points
    await db.commit()
    return participant


class TestLeaderboard:
    @pytest.mark.asyncio
    async def test_ranked_and_approved_only(self, client, db):
        low = await _scored(db, "Low", "Alpha", 5)
        high = await _scored(db, "High", "Beta", 50)
        await _scored(db, "Hidden", "Alpha", 99, status="pending")
        await recalculate_ranks(db)
        await db.commit()

        response = await client.get("/api/leaderboard")

        body = response.json()
        assert body["total"] == 2
        assert [(r["participant_id"], r["rank"]) for r in body["leaderboard"]] == [(str(high.id), 2), (str(low.id), 3)]

    @pytest.mark.asyncio
    async def test_team_filter_and_limit(self, client, db):
        await _scored(db, "A", "Alpha", 10)
        await _scored(db, "B", "Alpha", 20)
        await _scored(db, "C", "Beta", 30)
        await recalculate_ranks(db)
        await db.commit()

        alpha = (await client.get("/api/leaderboard", params={"team": "Alpha"})).json()
        top = (await client.get("/api/leaderboard", params={"limit": 1})).json()

        assert [r["name"] for r in alpha["leaderboard"]] == ["B", "A"]
        assert [r["name"] for r in top["leaderboard"]] == ["C"]

    @pytest.mark.asyncio
    async def test_team_progress(self, client, db):
        await _scored(db, "A", "Alpha", 10)
        await _scored(db, "B", "Alpha", 20)
        await _scored(db, "C", "Beta", 25)

        response = await client.get("/api/leaderboard/teams")

        teams = response.json()
        assert [(t["team"], t["team_points"], t["members"]) for t in teams] == [("Alpha", 30, 2), ("Beta", 25, 1)]


class TestActivityAndAchievements:
    @pytest.mark.asyncio
    async def test_activity_feed(self, client, db):
        participant = await make_participant(db, name="Doer")
        record_activity(db, "submission", participant.id, {"day": 1})
        record_activity(db, "intel_release", None, {"current_day": 1})
        await db.commit()

        response = await client.get("/api/activity", params={"limit": 10})

        entries = {e["action"]: e for e in response.json()["activity"]}
        assert entries["submission"]["participant"]["name"] == "Doer"
        assert entries["intel_release"]["participant"] is None

    @pytest.mark.asyncio
    async def test_achievement_catalog(self, client):
        response = await client.get("/api/achievements")
        codes = {a["code"] for a in response.json()}
        assert {"first_blood", "team_player", "mentor_favorite"} <= codes


class TestMyProgress:
    @pytest.mark.asyncio
    async def test_progress(self, client, db):
        participant = await make_participant(db)
        await make_submission(db, participant, await make_assignment(db))
        await refresh_participant(db, participant.id)
        await award_achievement(db, participant.id, "first_blood")
        await db.commit()

        response = await client.get("/api/me/progress", headers=auth_headers(participant))

        body = response.json()
        assert body["leaderboard"]["total_submissions"] == 1
        assert body["leaderboard"]["total_points"] == 5
        assert body["mastery"]["clearance"] == "RECRUIT"
        assert [a["code"] for a in body["achievements"]] == ["first_blood"]
        assert body["recognitions"] == []

    @pytest.mark.asyncio
    async def test_requires_auth(self, client):
        assert (await client.get("/api/me/progress")).status_code == 401


class TestAnalytics:
    @pytest.mark.asyncio
    async def test_snapshot_for_staff(self, client, db):
        mentor = await make_participant(db, name="Mentor", role="FDE", is_mentor=True)
        participant = await make_participant(db, name="Student", role="AI-SE")
        await make_participant(db, name="Peer", role="AI-SE")
        assignment = await make_assignment(db, day=1)
        await make_submission(db, participant, assignment)

        response = await client.get("/api/analytics", headers=auth_headers(mentor))

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {
            "participants",
            "assignments",
            "submissions",
            "leaderboard",
            "team_progress",
            "progress_matrix",
            "activity_log",
        }
        assert len(body["participants"]) == 3
        assert all("email" not in p for p in body["participants"])
        cell = next(c for c in body["progress_matrix"] if c["role"] == "AI-SE")
        assert (cell["submitted"], cell["total"], cell["completion_pct"]) == (1, 2, 50)
        assert body["submissions"][0]["participant"]["name"] == "Student"

    @pytest.mark.asyncio
    async def test_participants_are_forbidden(self, client, db):
        participant = await make_participant(db)
        assert (await client.get("/api/analytics", headers=auth_headers(participant))).status_code == 403
        assert (await client.get("/api/analytics/export", headers=auth_headers(participant))).status_code == 403

    @pytest.mark.asyncio
    async def test_csv_export(self, client, db):
        admin = await make_participant(db, name="Admin", is_admin=True)
        participant = await make_participant(db, name="Student", github_username="student")
        await make_submission(db, participant, await make_assignment(db))
        await refresh_participant(db, participant.id)
        await db.commit()

        response = await client.get("/api/analytics/export", headers=auth_headers(admin))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        today = utcnow().date().isoformat()
        assert response.headers["content-disposition"] == f'attachment; filename="ai-academy-analytics-{today}.csv"'
        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0] == ["Name", "GitHub", "Team", "Role", "Points", "Submissions", "Rank", "Last Submission"]
        student = next(r for r in rows[1:] if r[0] == "Student")
        assert student[1] == "student"
        assert student[5] == "1"
        assert student[7] == today
