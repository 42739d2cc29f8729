"""Assignment and submission endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.capabilities import AuthUser
from academy.auth.dependencies import require_approved_participant, require_participant
from academy.database import get_session
from academy.submissions import service
from academy.submissions.schemas import (
    AssignmentResponse,
    SubmissionCreate,
    SubmissionListResponse,
    SubmissionResponse,
    SubmissionStatus,
)

router = APIRouter(prefix="/api", tags=["Submissions"])


@router.get("/assignments", response_model=list[AssignmentResponse])
async def list_assignments(
    day: int | None = Query(default=None, ge=1, le=25),
    db: AsyncSession = Depends(get_session),
):
    assignments = await service.list_assignments(db, day)
    return [AssignmentResponse.model_validate(a) for a in assignments]


@router.post("/submissions", response_model=SubmissionResponse, status_code=201)
async def create_submission(
    body: SubmissionCreate,
    user: AuthUser = Depends(require_approved_participant),
    db: AsyncSession = Depends(get_session),
):
    submission = await service.create_submission(db, user.participant, body)
    return SubmissionResponse.model_validate(submission)


@router.get("/submissions", response_model=SubmissionListResponse)
async def list_submissions(
    participant_id: uuid.UUID | None = Query(default=None),
    assignment_id: uuid.UUID | None = Query(default=None),
    status: SubmissionStatus | None = Query(default=None),
    user: AuthUser = Depends(require_participant),
    db: AsyncSession = Depends(get_session),
):
    submissions = await service.list_submissions(
        db, user, participant_id=participant_id, assignment_id=assignment_id, status=status
    )
    items = [SubmissionResponse.model_validate(s) for s in submissions]
    return SubmissionListResponse(submissions=items, total=len(items))
