"""Live session endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.capabilities import AuthUser
from academy.auth.dependencies import require_admin, require_participant, require_user
from academy.database import get_session
from academy.db.models import LiveSessionParticipant
from academy.live_sessions import service
from academy.live_sessions.schemas import (
    Attendee,
    AttendeeListResponse,
    Instructor,
    JoinResponse,
    LiveSessionControl,
    LiveSessionControlResponse,
    LiveSessionCreate,
    LiveSessionCreated,
    LiveSessionPosition,
    LiveSessionState,
    LiveSessionStateResponse,
    LiveSessionSummary,
    MissionDayBrief,
)

router = APIRouter(prefix="/api/live-session", tags=["Live Sessions"])


def to_attendee(row: LiveSessionParticipant) -> Attendee:
    return Attendee(
        id=row.id,
        participant_id=row.participant_id,
        name=row.participant.name if row.participant else "Unknown",
        avatar_url=row.participant.avatar_url if row.participant else None,
        role=row.participant.role if row.participant else None,
        joined_at=row.joined_at,
        is_active=row.is_active,
    )


@router.post("", response_model=LiveSessionCreated)
async def start_session(
    body: LiveSessionCreate,
    user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    session = await service.start_session(db, user.participant, body.mission_day_id)
    return LiveSessionCreated(session=LiveSessionSummary.model_validate(session))


@router.get("/{code}", response_model=LiveSessionStateResponse)
async def get_session_state(
    code: str,
    _user: AuthUser = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    session = await service.get_by_code(db, code)
    count = await service.active_attendee_count(db, session)
    return LiveSessionStateResponse(
        session=LiveSessionState(
            id=session.id,
            join_code=session.join_code,
            current_step=session.current_step,
            current_section=session.current_section,
            is_active=session.is_active,
            started_at=session.started_at,
            ended_at=session.ended_at,
            mission_day=MissionDayBrief.model_validate(session.mission_day) if session.mission_day else None,
            instructor=Instructor.model_validate(session.instructor) if session.instructor else None,
            participant_count=count,
        )
    )


@router.patch("/{code}", response_model=LiveSessionControlResponse)
async def control_session(
    code: str,
    body: LiveSessionControl,
    user: AuthUser = Depends(require_participant),
    db: AsyncSession = Depends(get_session),
):
    session = await service.control(db, user.participant, code, body)
    return LiveSessionControlResponse(
        session=LiveSessionPosition(current_step=session.current_step, current_section=session.current_section)
    )


@router.delete("/{code}")
async def end_session(
    code: str,
    user: AuthUser = Depends(require_participant),
    db: AsyncSession = Depends(get_session),
):
    await service.end_session(db, user.participant, code)
    return {"success": True}


@router.get("/{code}/participants", response_model=AttendeeListResponse)
async def list_attendees(
    code: str,
    _user: AuthUser = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    rows = await service.list_attendees(db, code)
    return AttendeeListResponse(participants=[to_attendee(r) for r in rows])


@router.post("/{code}/participants", response_model=JoinResponse)
async def join_session(
    code: str,
    user: AuthUser = Depends(require_participant),
    db: AsyncSession = Depends(get_session),
):
    joined = await service.join(db, user.participant, code)
    return JoinResponse(message=None if joined else "Already joined")


@router.delete("/{code}/participants")
async def leave_session(
    code: str,
    user: AuthUser = Depends(require_participant),
    db: AsyncSession = Depends(get_session),
):
    await service.leave(db, user.participant, code)
    return {"success": True}
