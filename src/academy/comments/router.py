"""Comment endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.capabilities import AuthUser
from academy.auth.dependencies import require_participant
from academy.comments import service
from academy.comments.schemas import CommentCreate, CommentResponse, CommentThreadResponse, CommentUpdate
from academy.database import get_session

router = APIRouter(prefix="/api", tags=["Comments"])


@router.get("/comments", response_model=CommentThreadResponse)
async def list_comments(
    submission_id: uuid.UUID = Query(...),
    _user: AuthUser = Depends(require_participant),
    db: AsyncSession = Depends(get_session),
):
    comments, total = await service.list_thread(db, submission_id)
    return CommentThreadResponse(comments=comments, total_count=total)


@router.post("/comments", response_model=CommentResponse, status_code=201)
async def create_comment(
    body: CommentCreate,
    user: AuthUser = Depends(require_participant),
    db: AsyncSession = Depends(get_session),
):
    comment = await service.create_comment(db, user.participant, body)
    return service.build_tree([comment])[0]


@router.patch("/comments", response_model=CommentResponse)
async def update_comment(
    body: CommentUpdate,
    user: AuthUser = Depends(require_participant),
    db: AsyncSession = Depends(get_session),
):
    comment = await service.update_comment(db, user.participant, body)
    return service.build_tree([comment])[0]


@router.delete("/comments")
async def delete_comment(
    comment_id: uuid.UUID = Query(...),
    user: AuthUser = Depends(require_participant),
    db: AsyncSession = Depends(get_session),
):
    removed = await service.delete_comment(db, user.participant, comment_id)
    return {"success": True, "deleted": removed}
