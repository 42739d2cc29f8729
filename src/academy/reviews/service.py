"""Mentor review of submissions."""

from __future__ import annotations

import uuid
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.activity import record_activity
from academy.auth.capabilities import AuthUser
from academy.db.models import Submission
from academy.email.dispatcher import NotificationDispatcher, get_dispatcher
from academy.errors import NotFoundError
from academy.gamification.awards import award_achievement
from academy.gamification.leaderboard import refresh_participant
from academy.reviews.schemas import BulkReviewRequest, ReviewRequest
from academy.utils.time import utcnow

logger = structlog.get_logger()

PERFECT_RATING = 5


def points_for(max_points: int, rating: int) -> int:
    """Scale ``max_points`` by rating/5, rounding half up."""
    return int(max_points * rating / 5 + 0.5)


def _notify_review(notifier: NotificationDispatcher, submission: Submission) -> None:
    notifier.dispatch(
        submission.participant.email,
        "review",
        {
            "participant_name": submission.participant.name,
            "assignment_title": submission.assignment.title,
            "mentor_rating": submission.mentor_rating,
            "mentor_notes": submission.mentor_notes,
        },
    )


def _apply_rating(submission: Submission, rating: int, notes: str | None, mentor_id: uuid.UUID, now: datetime) -> None:
    submission.mentor_rating = rating
    submission.mentor_notes = notes
    submission.mentor_id = mentor_id
    submission.points_earned = points_for(submission.assignment.max_points, rating)
    submission.reviewed_at = now


async def review_submission(
    db: AsyncSession,
    reviewer: AuthUser,
    body: ReviewRequest,
    *,
    notifier: NotificationDispatcher | None = None,
) -> tuple[Submission, bool]:
    """Rate one submission. Returns the submission and whether mentor_favorite was newly awarded."""
    notifier = notifier or get_dispatcher()
    submission = await db.get(Submission, body.submission_id)
    if submission is None:
        msg = "Submission not found"
        raise NotFoundError(msg)

    now = utcnow()
    _apply_rating(submission, body.mentor_rating, body.mentor_notes, reviewer.participant.id, now)
    submission.status = "reviewed"
    record_activity(
        db,
        "review",
        submission.participant_id,
        {
            "submission_id": str(submission.id),
            "assignment_title": submission.assignment.title,
            "mentor_rating": body.mentor_rating,
            "points_earned": submission.points_earned,
        },
    )
    await db.flush()
    await refresh_participant(db, submission.participant_id)

    awarded = False
    if body.mentor_rating == PERFECT_RATING:
        awarded = await award_achievement(db, submission.participant_id, "mentor_favorite", notifier=notifier)

    await db.commit()
    _notify_review(notifier, submission)
    logger.info("submission_reviewed", submission_id=str(submission.id), rating=body.mentor_rating)
    return submission, awarded


async def bulk_review(
    db: AsyncSession,
    reviewer: AuthUser,
    body: BulkReviewRequest,
    *,
    notifier: NotificationDispatcher | None = None,
) -> tuple[list[Submission], int]:
    """Apply a rating and/or status to many submissions at once.

    All IDs must exist; nothing is written otherwise.
    """
    notifier = notifier or get_dispatcher()
    submissions = list(
        (await db.execute(select(Submission).where(Submission.id.in_(body.submission_ids)))).scalars()
    )
    found = {s.id for s in submissions}
    missing = [str(sid) for sid in body.submission_ids if sid not in found]
    if missing:
        msg = f"Submissions not found: {', '.join(missing)}"
        raise NotFoundError(msg)

    now = utcnow()
    for submission in submissions:
        if body.mentor_rating is not None:
            _apply_rating(submission, body.mentor_rating, body.mentor_notes, reviewer.participant.id, now)
            submission.status = body.status or "reviewed"
        else:
            submission.status = body.status
            if body.mentor_notes is not None:
                submission.mentor_notes = body.mentor_notes
        record_activity(
            db,
            "bulk_review",
            submission.participant_id,
            {
                "submission_id": str(submission.id),
                "mentor_rating": body.mentor_rating,
                "status": submission.status,
            },
        )
    await db.flush()

    for participant_id in sorted({s.participant_id for s in submissions}, key=str):
        await refresh_participant(db, participant_id)

    awarded = 0
    if body.mentor_rating == PERFECT_RATING:
        for participant_id in sorted({s.participant_id for s in submissions}, key=str):
            if await award_achievement(db, participant_id, "mentor_favorite", notifier=notifier):
                awarded += 1

    await db.commit()
    if body.mentor_rating is not None:
        for submission in submissions:
            _notify_review(notifier, submission)
    logger.info("bulk_review_complete", updated=len(submissions), achievements_awarded=awarded)
    return submissions, awarded
