"""Mission content endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.capabilities import AuthUser
from academy.auth.dependencies import get_optional_user
from academy.content.schemas import DayContentResponse, RoleContentResponse
from academy.content.service import get_content_service
from academy.database import get_session

router = APIRouter(prefix="/api/content", tags=["Content"])


@router.get("/day/{day}", response_model=DayContentResponse)
async def day_content(
    day: int,
    user: AuthUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Briefing for one program day. Mentor notes are only included for admins and mentors."""
    include_notes = bool(user and user.is_staff)
    role = user.participant.role if user and user.participant else None
    return await get_content_service().day_content(db, day, include_notes=include_notes, role=role)


@router.get("/role/{role}/day/{day}", response_model=RoleContentResponse)
async def role_content(role: str, day: int):
    return await get_content_service().role_content(role, day)
