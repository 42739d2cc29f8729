"""Staff analytics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from academy.analytics import service
from academy.auth.capabilities import AuthUser
from academy.auth.dependencies import require_admin_or_mentor
from academy.database import get_session
from academy.utils.time import utcnow

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


@router.get("")
async def get_analytics(
    _user: AuthUser = Depends(require_admin_or_mentor),
    db: AsyncSession = Depends(get_session),
):
    """Everything the mentor dashboard needs in one payload."""
    return await service.snapshot(db)


@router.get("/export")
async def export_analytics(
    _user: AuthUser = Depends(require_admin_or_mentor),
    db: AsyncSession = Depends(get_session),
):
    body = await service.export_csv(db)
    filename = service.export_filename(utcnow().date())
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
