"""Intel drop feed."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.capabilities import AuthUser
from academy.auth.dependencies import require_user
from academy.database import get_session
from academy.intel import service
from academy.intel.schemas import IntelDropResponse, IntelListResponse

router = APIRouter(prefix="/api", tags=["Intel"])


@router.get("/intel", response_model=IntelListResponse)
async def list_intel(
    _user: AuthUser = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Released drops, newest program day first."""
    drops = [IntelDropResponse.model_validate(d) for d in await service.released_drops(db)]
    return IntelListResponse(drops=drops, total=len(drops))
