"""Staff analytics snapshot and CSV export."""

from __future__ import annotations

import csv
import io
from collections import defaultdict
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.db.models import ActivityLog, Assignment, Participant, Submission
from academy.gamification import views
from academy.gamification.schemas import LeaderboardRow
from academy.participants.schemas import PublicParticipant
from academy.submissions.schemas import AssignmentResponse
from academy.utils.time import as_utc

EXPORT_HEADERS = ["Name", "GitHub", "Team", "Role", "Points", "Submissions", "Rank", "Last Submission"]


def submission_summary(submission: Submission) -> dict:
    participant = submission.participant
    assignment = submission.assignment
    return {
        "id": str(submission.id),
        "participant_id": str(submission.participant_id),
        "assignment_id": str(submission.assignment_id),
        "points_earned": submission.points_earned,
        "mentor_rating": submission.mentor_rating,
        "status": submission.status,
        "submitted_at": as_utc(submission.submitted_at).isoformat(),
        "participant": {
            "name": participant.name,
            "github_username": participant.github_username,
            "team": participant.team,
            "role": participant.role,
        }
        if participant
        else None,
        "assignment": {"title": assignment.title, "day": assignment.day, "type": assignment.type}
        if assignment
        else None,
    }


def progress_matrix(
    participants: list[Participant], assignments: list[Assignment], submissions: list[Submission]
) -> list[dict]:
    """Completion per (role, day, type) across approved participants."""
    role_sizes: dict[str | None, int] = defaultdict(int)
    role_of = {}
    for p in participants:
        role_sizes[p.role] += 1
        role_of[p.id] = p.role

    submitted: dict[tuple[str | None, object], int] = defaultdict(int)
    for s in submissions:
        if s.participant_id in role_of:
            submitted[(role_of[s.participant_id], s.assignment_id)] += 1

    rows = []
    for role, size in sorted(role_sizes.items(), key=lambda kv: kv[0] or ""):
        for a in assignments:
            if a.target_roles and role not in a.target_roles:
                continue
            count = submitted[(role, a.id)]
            rows.append(
                {
                    "role": role,
                    "day": a.day,
                    "type": a.type,
                    "submitted": count,
                    "total": size,
                    "completion_pct": round(count / size * 100) if size else 0,
                }
            )
    return rows


async def _approved_participants(db: AsyncSession) -> list[Participant]:
    return list(
        (
            await db.execute(select(Participant).where(Participant.status == "approved").order_by(Participant.name))
        ).scalars()
    )


async def snapshot(db: AsyncSession) -> dict:
    participants = await _approved_participants(db)
    assignments = list((await db.execute(select(Assignment).order_by(Assignment.day, Assignment.type))).scalars())
    submissions = list((await db.execute(select(Submission).order_by(Submission.submitted_at))).scalars())
    leaderboard = await views.leaderboard(db)
    activity = (
        await db.execute(
            select(ActivityLog.id, ActivityLog.participant_id, ActivityLog.action, ActivityLog.created_at).order_by(
                ActivityLog.created_at
            )
        )
    ).all()

    points = {row.participant_id: row.total_points for row in leaderboard}
    return {
        "participants": [
            {**PublicParticipant.model_validate(p).model_dump(mode="json"), "total_points": points.get(p.id, 0)}
            for p in participants
        ],
        "assignments": [AssignmentResponse.model_validate(a).model_dump(mode="json") for a in assignments],
        "submissions": [submission_summary(s) for s in submissions],
        "leaderboard": [row.model_dump(mode="json") for row in leaderboard],
        "team_progress": [t.model_dump(mode="json") for t in views.team_progress(leaderboard)],
        "progress_matrix": progress_matrix(participants, assignments, submissions),
        "activity_log": [
            {
                "id": str(a.id),
                "participant_id": str(a.participant_id) if a.participant_id else None,
                "action": a.action,
                "created_at": as_utc(a.created_at).isoformat(),
            }
            for a in activity
        ],
    }


def render_csv(leaderboard: list[LeaderboardRow], last_submissions: dict) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_HEADERS)
    for row in leaderboard:
        last = last_submissions.get(row.participant_id)
        writer.writerow(
            [
                row.name,
                row.github_username or "",
                row.team or "",
                row.role or "",
                row.total_points,
                row.total_submissions,
                row.rank if row.rank is not None else "",
                last.date().isoformat() if last else "",
            ]
        )
    return buffer.getvalue()


async def export_csv(db: AsyncSession) -> str:
    leaderboard = await views.leaderboard(db)
    last_submissions = {}
    for participant_id, submitted_at in await db.execute(select(Submission.participant_id, Submission.submitted_at)):
        submitted_at = as_utc(submitted_at)
        if participant_id not in last_submissions or submitted_at > last_submissions[participant_id]:
            last_submissions[participant_id] = submitted_at
    return render_csv(leaderboard, last_submissions)


def export_filename(today: date) -> str:
    return f"ai-academy-analytics-{today.isoformat()}.csv"
