"""Onboarding prerequisite endpoints."""

from __future__ import annotations

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.capabilities import AuthUser
from academy.auth.dependencies import require_participant, require_user
from academy.database import get_session
from academy.errors import ForbiddenError
from academy.prerequisites import service
from academy.prerequisites.schemas import (
    BatchItem,
    ParticipantPrerequisitesResponse,
    PrerequisiteItemResponse,
    PrerequisiteItemsResponse,
    PrerequisiteRecord,
    PrerequisiteStatsResponse,
    PrerequisiteUpdate,
    PrerequisiteUpdateResponse,
)

router = APIRouter(prefix="/api", tags=["Prerequisites"])


@router.get(
    "/prerequisites",
    response_model=PrerequisiteItemsResponse | PrerequisiteStatsResponse | ParticipantPrerequisitesResponse,
)
async def get_prerequisites(
    view: Literal["items", "status", "stats"] | None = Query(default=None),
    participant_id: uuid.UUID | None = Query(default=None),
    user: AuthUser = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Catalog (``view=items``), cohort readiness (``view=stats``, staff only),
    or one participant's checklist (default; the caller unless ``participant_id``).
    """
    if view == "items" or (view is None and participant_id is None and user.participant is None):
        items = await service.list_items(db)
        return PrerequisiteItemsResponse(items=[PrerequisiteItemResponse.model_validate(i) for i in items])

    if view == "stats":
        if not user.is_staff:
            msg = "Admin or mentor access required"
            raise ForbiddenError(msg)
        stats, summary, overview = await service.readiness_stats(db)
        return PrerequisiteStatsResponse(stats=stats, summary=summary, overview=overview)

    target = service.resolve_target(user, participant_id)
    statuses, summary = await service.participant_status(db, target)
    return ParticipantPrerequisitesResponse(participant_id=target, prerequisites=statuses, summary=summary)


@router.post("/prerequisites", response_model=PrerequisiteUpdateResponse)
async def update_prerequisites(
    body: PrerequisiteUpdate,
    user: AuthUser = Depends(require_participant),
    db: AsyncSession = Depends(get_session),
):
    target = service.resolve_target(user, body.participant_id, write=True)
    if body.type == "batch":
        rows = await service.update_prerequisites(db, target, body.updates)
        return PrerequisiteUpdateResponse(updated=len(rows))

    update = BatchItem(prerequisite_id=body.prerequisite_id, is_completed=body.is_completed)
    (row,) = await service.update_prerequisites(db, target, [update], notes={update.prerequisite_id: body.notes})
    return PrerequisiteUpdateResponse(updated=1, prerequisite=PrerequisiteRecord.model_validate(row))
