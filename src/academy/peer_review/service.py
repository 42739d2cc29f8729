"""Peer-review assignment and status machine.

States: ``pending`` then ``completed`` or ``skipped`` (both terminal).
Reviewer sampling is uniform without replacement from a seedable
``random.Random`` applied to the candidate list in a stable (sorted) order,
so a fixed seed reproduces the same assignment.
"""

from __future__ import annotations

import random
import uuid
from collections.abc import Sequence
from datetime import datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.activity import record_activity
from academy.auth.capabilities import AuthUser
from academy.db.models import Participant, ParticipantMastery, PeerReview, Submission
from academy.email.dispatcher import NotificationDispatcher
from academy.errors import (
    ForbiddenError,
    InvalidRatingError,
    InvalidStateError,
    NoAvailableReviewersError,
    NotFoundError,
)
from academy.gamification.awards import award_achievement
from academy.gamification.leaderboard import add_bonus_points
from academy.utils.text import sanitize_text
from academy.utils.time import utcnow

logger = structlog.get_logger()

BONUS_POINTS_PER_REVIEW = 2
DEFAULT_REVIEWER_COUNT = 2
TEAM_PLAYER_REVIEWS = 5

PENDING = "pending"
COMPLETED = "completed"
SKIPPED = "skipped"

VALID_TRANSITIONS: dict[str, list[str]] = {
    PENDING: [COMPLETED, SKIPPED],
    COMPLETED: [],
    SKIPPED: [],
}


def validate_transition(current: str, target: str) -> None:
    """Raise InvalidStateError if ``current -> target`` is not allowed."""
    allowed = VALID_TRANSITIONS.get(current, [])
    if target not in allowed:
        msg = f"Invalid transition: {current} -> {target}"
        raise InvalidStateError(msg)


def validate_rating(rating: object) -> int:
    """Ratings are integers in [1, 5]."""
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        msg = "Rating must be an integer between 1 and 5"
        raise InvalidRatingError(msg)
    return rating


def select_reviewers(candidates: Sequence[uuid.UUID], count: int, rng: random.Random) -> list[uuid.UUID]:
    """Pick ``min(count, len(candidates))`` distinct reviewers uniformly at random."""
    ordered = sorted(set(candidates), key=str)
    return rng.sample(ordered, k=min(count, len(ordered)))


async def _get_submission(db: AsyncSession, submission_id: uuid.UUID) -> Submission:
    submission = await db.get(Submission, submission_id)
    if submission is None:
        msg = "Submission not found"
        raise NotFoundError(msg)
    return submission


async def _get_review(db: AsyncSession, review_id: uuid.UUID) -> PeerReview:
    review = await db.get(PeerReview, review_id)
    if review is None:
        msg = "Peer review not found"
        raise NotFoundError(msg)
    return review


async def assign(
    db: AsyncSession,
    submission_id: uuid.UUID,
    count: int = DEFAULT_REVIEWER_COUNT,
    rng: random.Random | None = None,
) -> list[PeerReview]:
    """Create ``count`` pending reviews for a submission.

    The author and participants already assigned to this submission are
    never candidates. Raises NoAvailableReviewersError on an empty pool.
    """
    submission = await _get_submission(db, submission_id)

    already_assigned = set(
        (await db.execute(select(PeerReview.reviewer_id).where(PeerReview.submission_id == submission_id))).scalars()
    )
    participants = (
        await db.execute(
            select(Participant.id).where(
                Participant.id != submission.participant_id,
                Participant.status == "approved",
            )
        )
    ).scalars()
    candidates = [pid for pid in participants if pid not in already_assigned]
    if not candidates:
        msg = "No available reviewers for this submission"
        raise NoAvailableReviewersError(msg)

    chosen = select_reviewers(candidates, count, rng or random.Random())
    reviews = [
        PeerReview(
            submission_id=submission_id,
            reviewer_id=reviewer_id,
            is_anonymous=True,
            status=PENDING,
            bonus_points_earned=0,
        )
        for reviewer_id in chosen
    ]
    db.add_all(reviews)
    record_activity(
        db,
        "peer_reviews_assigned",
        submission.participant_id,
        {"submission_id": str(submission_id), "reviewer_count": len(reviews)},
    )
    await db.commit()
    logger.info("peer_reviews_assigned", submission_id=str(submission_id), assigned=len(reviews))
    return reviews


async def completed_review_count(db: AsyncSession, reviewer_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(PeerReview)
        .where(PeerReview.reviewer_id == reviewer_id, PeerReview.status == COMPLETED)
    )
    return int(result.scalar_one())


async def submit(
    db: AsyncSession,
    review_id: uuid.UUID,
    reviewer_id: uuid.UUID,
    rating: object,
    feedback: str | None = None,
    *,
    notifier: NotificationDispatcher | None = None,
    now: datetime | None = None,
) -> PeerReview:
    """Complete a pending review and credit the reviewer."""
    rating = validate_rating(rating)
    review = await _get_review(db, review_id)
    if review.reviewer_id != reviewer_id:
        msg = "Not authorized to submit this review"
        raise ForbiddenError(msg)
    validate_transition(review.status, COMPLETED)

    review.rating = rating
    review.feedback = sanitize_text(feedback) or None
    review.status = COMPLETED
    review.completed_at = now or utcnow()
    review.bonus_points_earned = BONUS_POINTS_PER_REVIEW

    await add_bonus_points(db, reviewer_id, BONUS_POINTS_PER_REVIEW)
    mastery = (
        await db.execute(select(ParticipantMastery).where(ParticipantMastery.participant_id == reviewer_id))
    ).scalar_one_or_none()
    if mastery is not None:
        mastery.peer_assists_given += 1
    record_activity(
        db,
        "peer_review",
        reviewer_id,
        {"peer_review_id": str(review.id), "rating": rating, "bonus_points": BONUS_POINTS_PER_REVIEW},
    )
    await db.flush()

    if await completed_review_count(db, reviewer_id) >= TEAM_PLAYER_REVIEWS:
        await award_achievement(db, reviewer_id, "team_player", notifier=notifier)

    await db.commit()
    return review


async def skip(db: AsyncSession, review_id: uuid.UUID, reviewer_id: uuid.UUID) -> PeerReview:
    """Decline a pending review. No bonus is granted."""
    review = await _get_review(db, review_id)
    if review.reviewer_id != reviewer_id:
        msg = "Not authorized to skip this review"
        raise ForbiddenError(msg)
    validate_transition(review.status, SKIPPED)

    review.status = SKIPPED
    review.completed_at = utcnow()
    review.bonus_points_earned = 0
    record_activity(db, "peer_review_skipped", reviewer_id, {"peer_review_id": str(review.id)})
    await db.commit()
    return review


async def list_reviews(
    db: AsyncSession,
    viewer: AuthUser,
    reviewer_id: uuid.UUID | None = None,
    submission_id: uuid.UUID | None = None,
    status: str | None = None,
) -> list[PeerReview]:
    """Non-admins only ever see their own assignments; admins may filter by reviewer."""
    if viewer.participant is None:
        msg = "Participant profile not found"
        raise ForbiddenError(msg)
    if reviewer_id is not None and reviewer_id != viewer.participant.id and not viewer.is_admin:
        msg = "Cannot view other users' peer reviews"
        raise ForbiddenError(msg)

    query = select(PeerReview).order_by(PeerReview.assigned_at.desc())
    if not viewer.is_admin:
        query = query.where(PeerReview.reviewer_id == viewer.participant.id)
    elif reviewer_id is not None:
        query = query.where(PeerReview.reviewer_id == reviewer_id)
    if submission_id is not None:
        query = query.where(PeerReview.submission_id == submission_id)
    if status is not None:
        query = query.where(PeerReview.status == status)
    return list((await db.execute(query)).scalars())
