"""Mentor review endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.capabilities import AuthUser
from academy.auth.dependencies import require_admin_or_mentor
from academy.database import get_session
from academy.reviews import service
from academy.reviews.schemas import BulkReviewRequest, BulkReviewResponse, ReviewRequest, ReviewResponse
from academy.submissions.schemas import SubmissionResponse

router = APIRouter(prefix="/api", tags=["Reviews"])


@router.post("/review", response_model=ReviewResponse)
async def review(
    body: ReviewRequest,
    user: AuthUser = Depends(require_admin_or_mentor),
    db: AsyncSession = Depends(get_session),
):
    submission, awarded = await service.review_submission(db, user, body)
    return ReviewResponse(submission=SubmissionResponse.model_validate(submission), achievement_awarded=awarded)


@router.post("/bulk-review", response_model=BulkReviewResponse)
async def bulk_review(
    body: BulkReviewRequest,
    user: AuthUser = Depends(require_admin_or_mentor),
    db: AsyncSession = Depends(get_session),
):
    submissions, awarded = await service.bulk_review(db, user, body)
    return BulkReviewResponse(
        updated=len(submissions),
        submissions=[SubmissionResponse.model_validate(s) for s in submissions],
        achievements_awarded=awarded,
    )
