"""Registration and participant endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.capabilities import AuthUser
from academy.auth.dependencies import require_admin, require_participant, require_user
from academy.database import get_session
from academy.participants import service
from academy.participants.schemas import (
    AdminParticipantUpdate,
    MasteryCountersUpdate,
    ParticipantListResponse,
    ParticipantResponse,
    ProfileUpdateRequest,
    PublicParticipant,
    RegisterRequest,
    RegisterResponse,
)

router = APIRouter(prefix="/api", tags=["Participants"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    body: RegisterRequest,
    user: AuthUser = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Register the authenticated caller as a participant (pending approval)."""
    participant = await service.register(db, user, body)
    return RegisterResponse(participant=ParticipantResponse.model_validate(participant))


@router.get("/participants", response_model=ParticipantListResponse)
async def list_participants(
    team: str | None = Query(default=None),
    role: str | None = Query(default=None),
    db: AsyncSession = Depends(get_session),
):
    """Approved participants, public projection."""
    participants = await service.list_participants(db, team=team, role=role)
    items = [PublicParticipant.model_validate(p) for p in participants]
    return ParticipantListResponse(participants=items, total=len(items))


@router.get("/participants/{github_username}", response_model=PublicParticipant)
async def get_participant(github_username: str, db: AsyncSession = Depends(get_session)):
    participant = await service.get_by_github_username(db, github_username)
    return PublicParticipant.model_validate(participant)


@router.get("/me", response_model=ParticipantResponse)
async def get_me(user: AuthUser = Depends(require_participant)):
    return ParticipantResponse.model_validate(user.participant)


@router.patch("/me", response_model=ParticipantResponse)
async def update_me(
    body: ProfileUpdateRequest,
    user: AuthUser = Depends(require_participant),
    db: AsyncSession = Depends(get_session),
):
    participant = await service.update_profile(db, user.participant, body)
    return ParticipantResponse.model_validate(participant)


@router.patch("/admin/participants/{participant_id}", response_model=ParticipantResponse)
async def admin_update_participant(
    participant_id: uuid.UUID,
    body: AdminParticipantUpdate,
    user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Approve/reject a participant or change their admin/mentor flags."""
    participant = await service.admin_update(db, participant_id, body, user)
    return ParticipantResponse.model_validate(participant)


@router.patch("/admin/participants/{participant_id}/mastery")
async def admin_update_mastery(
    participant_id: uuid.UUID,
    body: MasteryCountersUpdate,
    _user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    mastery = await service.update_mastery_counters(db, participant_id, body)
    return {
        "participant_id": str(mastery.participant_id),
        "mastery_level": mastery.mastery_level,
        "clearance": mastery.clearance,
        "days_completed": mastery.days_completed,
        "ai_tutor_sessions": mastery.ai_tutor_sessions,
        "artifacts_submitted": mastery.artifacts_submitted,
        "peer_assists_given": mastery.peer_assists_given,
    }
