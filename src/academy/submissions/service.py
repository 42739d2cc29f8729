"""Submission intake and listing."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.activity import record_activity
from academy.auth.capabilities import AuthUser
from academy.db.models import Assignment, Participant, ParticipantMastery, Submission
from academy.email.dispatcher import NotificationDispatcher
from academy.errors import ConflictError, ForbiddenError, NotFoundError
from academy.gamification.awards import award_achievement
from academy.gamification.leaderboard import count_completed_days, refresh_participant
from academy.submissions.schemas import SubmissionCreate

logger = structlog.get_logger()


async def list_assignments(db: AsyncSession, day: int | None = None) -> list[Assignment]:
    query = select(Assignment).order_by(Assignment.day, Assignment.type)
    if day is not None:
        query = query.where(Assignment.day == day)
    return list((await db.execute(query)).scalars())


async def create_submission(
    db: AsyncSession,
    participant: Participant,
    body: SubmissionCreate,
    *,
    notifier: NotificationDispatcher | None = None,
) -> Submission:
    """Record one submission per (participant, assignment) and update progression."""
    assignment = await db.get(Assignment, body.assignment_id)
    if assignment is None:
        msg = "Assignment not found"
        raise NotFoundError(msg)
    if assignment.target_roles and participant.role not in assignment.target_roles:
        msg = "Assignment is not available for your role"
        raise ForbiddenError(msg)

    existing = await db.execute(
        select(Submission.id).where(
            Submission.participant_id == participant.id,
            Submission.assignment_id == assignment.id,
        )
    )
    if existing.first() is not None:
        msg = "Assignment already submitted"
        raise ConflictError(msg)

    submission = Submission(
        participant_id=participant.id,
        assignment_id=assignment.id,
        commit_sha=body.commit_sha.lower(),
        commit_message=body.commit_message,
        commit_url=str(body.commit_url) if body.commit_url else None,
        readme_content=body.readme_content,
        self_rating=body.self_rating,
        status="submitted",
    )
    db.add(submission)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        msg = "Assignment already submitted"
        raise ConflictError(msg) from None

    record_activity(
        db,
        "submission",
        participant.id,
        {
            "submission_id": str(submission.id),
            "assignment_id": str(assignment.id),
            "assignment_title": assignment.title,
            "day": assignment.day,
            "commit_sha": submission.commit_sha,
            "status": submission.status,
        },
    )

    mastery = (
        await db.execute(select(ParticipantMastery).where(ParticipantMastery.participant_id == participant.id))
    ).scalar_one_or_none()
    if mastery is not None:
        mastery.artifacts_submitted += 1
        mastery.days_completed = max(mastery.days_completed, await count_completed_days(db, participant.id))

    await refresh_participant(db, participant.id)
    await award_achievement(db, participant.id, "first_blood", notifier=notifier)
    await db.commit()
    logger.info("submission_created", submission_id=str(submission.id), participant_id=str(participant.id))
    return submission


async def list_submissions(
    db: AsyncSession,
    viewer: AuthUser,
    *,
    participant_id: uuid.UUID | None = None,
    assignment_id: uuid.UUID | None = None,
    status: str | None = None,
) -> list[Submission]:
    """The caller's own submissions, or everyone's for admins and mentors."""
    query = select(Submission).order_by(Submission.submitted_at.desc())
    if viewer.is_staff:
        if participant_id is not None:
            query = query.where(Submission.participant_id == participant_id)
    else:
        query = query.where(Submission.participant_id == viewer.participant.id)
    if assignment_id is not None:
        query = query.where(Submission.assignment_id == assignment_id)
    if status is not None:
        query = query.where(Submission.status == status)
    return list((await db.execute(query)).scalars())
