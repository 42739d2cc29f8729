"""Peer review endpoints."""

from __future__ import annotations

import random
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.capabilities import AuthUser
from academy.auth.dependencies import require_participant
from academy.database import get_session
from academy.db.models import PeerReview
from academy.peer_review import service
from academy.peer_review.schemas import (
    PeerReviewAction,
    PeerReviewActionResponse,
    PeerReviewListResponse,
    PeerReviewResponse,
    PeerReviewStatus,
    ReviewedSubmission,
)

router = APIRouter(prefix="/api", tags=["Peer Review"])


def to_response(review: PeerReview, viewer: AuthUser) -> PeerReviewResponse:
    """Project a review for ``viewer``; the author stays hidden on anonymous reviews unless the viewer is an admin."""
    submission = review.submission
    reviewed = None
    if submission is not None:
        hide_author = review.is_anonymous and not viewer.is_admin
        reviewed = ReviewedSubmission(
            id=submission.id,
            assignment_id=submission.assignment_id,
            assignment_title=submission.assignment.title if submission.assignment else None,
            commit_sha=submission.commit_sha,
            commit_url=submission.commit_url,
            readme_content=submission.readme_content,
            participant_id=None if hide_author else submission.participant_id,
        )
    return PeerReviewResponse(
        id=review.id,
        submission_id=review.submission_id,
        reviewer_id=review.reviewer_id,
        rating=review.rating,
        feedback=review.feedback,
        is_anonymous=review.is_anonymous,
        status=review.status,
        bonus_points_earned=review.bonus_points_earned,
        assigned_at=review.assigned_at,
        completed_at=review.completed_at,
        submission=reviewed,
    )


@router.get("/peer-review", response_model=PeerReviewListResponse)
async def list_peer_reviews(
    reviewer_id: uuid.UUID | None = Query(default=None),
    submission_id: uuid.UUID | None = Query(default=None),
    status: PeerReviewStatus | None = Query(default=None),
    user: AuthUser = Depends(require_participant),
    db: AsyncSession = Depends(get_session),
):
    reviews = await service.list_reviews(db, user, reviewer_id=reviewer_id, submission_id=submission_id, status=status)
    items = [to_response(r, user) for r in reviews]
    return PeerReviewListResponse(reviews=items, total=len(items))


@router.post("/peer-review", response_model=PeerReviewActionResponse)
async def peer_review_action(
    body: PeerReviewAction,
    user: AuthUser = Depends(require_participant),
    db: AsyncSession = Depends(get_session),
):
    if body.action == "assign":
        if not user.is_admin:
            raise HTTPException(status_code=403, detail="Admin access required")
        if body.submission_id is None:
            raise HTTPException(status_code=400, detail="submission_id is required")
        rng = random.Random(body.seed) if body.seed is not None else None
        reviews = await service.assign(db, body.submission_id, count=body.count, rng=rng)
        for review in reviews:
            await db.refresh(review, ["submission"])
        return PeerReviewActionResponse(reviews=[to_response(r, user) for r in reviews])

    if body.peer_review_id is None:
        raise HTTPException(status_code=400, detail="peer_review_id is required")
    if body.action == "submit":
        review = await service.submit(db, body.peer_review_id, user.participant.id, body.rating, body.feedback)
    else:
        review = await service.skip(db, body.peer_review_id, user.participant.id)
    return PeerReviewActionResponse(reviews=[to_response(review, user)])
