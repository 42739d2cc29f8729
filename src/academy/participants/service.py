"""Registration and participant profile operations."""

from __future__ import annotations

import uuid

import httpx
import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.activity import record_activity
from academy.auth.capabilities import AuthUser
from academy.db.models import LeaderboardEntry, Participant, ParticipantMastery
from academy.errors import ConflictError, NotFoundError
from academy.participants.schemas import (
    AdminParticipantUpdate,
    MasteryCountersUpdate,
    ProfileUpdateRequest,
    RegisterRequest,
)
from academy.utils.time import utcnow

logger = structlog.get_logger()

GITHUB_API_URL = "https://api.github.com"
REPO_NAME = "ai-academy-2026"


async def fetch_github_avatar(username: str, client: httpx.AsyncClient | None = None) -> str | None:
    """Best-effort avatar lookup. Any failure returns None."""
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=5.0) as own_client:
                response = await own_client.get(f"{GITHUB_API_URL}/users/{username}")
        else:
            response = await client.get(f"{GITHUB_API_URL}/users/{username}")
        if response.status_code != 200:
            return None
        avatar = response.json().get("avatar_url")
        return avatar if isinstance(avatar, str) else None
    except (httpx.HTTPError, ValueError):
        logger.warning("github_avatar_fetch_failed", username=username, exc_info=True)
        return None


def repo_url_for(github_username: str | None) -> str | None:
    return f"https://github.com/{github_username}/{REPO_NAME}" if github_username else None


async def register(db: AsyncSession, user: AuthUser, body: RegisterRequest) -> Participant:
    """Create the caller's participant record (status ``pending``).

    Rejects duplicates on auth subject, email and GitHub username with 409.
    """
    if user.participant is not None:
        msg = "Already registered"
        raise ConflictError(msg)

    email = str(body.email).lower()
    clauses = [Participant.email == email, Participant.auth_user_id == user.sub]
    if body.github_username:
        clauses.append(Participant.github_username == body.github_username)
    existing = (await db.execute(select(Participant).where(or_(*clauses)))).scalars().first()
    if existing is not None:
        msg = "A participant with this email, GitHub username or account already exists"
        raise ConflictError(msg)

    avatar_url = str(body.avatar_url) if body.avatar_url else None
    if avatar_url is None and body.github_username:
        avatar_url = await fetch_github_avatar(body.github_username)

    participant = Participant(
        id=uuid.uuid4(),
        auth_user_id=user.sub,
        github_username=body.github_username,
        name=body.name,
        nickname=body.nickname,
        email=email,
        role=body.role,
        team=body.team,
        stream=body.stream,
        avatar_url=avatar_url,
        repo_url=repo_url_for(body.github_username),
        status="pending",
    )
    db.add(participant)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        msg = "A participant with this email, GitHub username or account already exists"
        raise ConflictError(msg) from None
    db.add(LeaderboardEntry(participant_id=participant.id))
    db.add(ParticipantMastery(participant_id=participant.id))
    record_activity(
        db,
        "registration",
        participant.id,
        {"name": participant.name, "role": participant.role, "team": participant.team},
    )
    await db.commit()
    logger.info("participant_registered", participant_id=str(participant.id))
    return participant


async def list_participants(
    db: AsyncSession,
    *,
    team: str | None = None,
    role: str | None = None,
    include_unapproved: bool = False,
) -> list[Participant]:
    query = select(Participant).order_by(Participant.name)
    if not include_unapproved:
        query = query.where(Participant.status == "approved")
    if team:
        query = query.where(Participant.team == team)
    if role:
        query = query.where(Participant.role == role)
    return list((await db.execute(query)).scalars())


async def get_by_github_username(db: AsyncSession, github_username: str) -> Participant:
    result = await db.execute(select(Participant).where(Participant.github_username == github_username))
    participant = result.scalar_one_or_none()
    if participant is None:
        msg = "Participant not found"
        raise NotFoundError(msg)
    return participant


async def update_profile(db: AsyncSession, participant: Participant, body: ProfileUpdateRequest) -> Participant:
    changes = body.model_dump(exclude_unset=True)
    new_username = changes.get("github_username")
    if new_username and new_username != participant.github_username:
        clash = await db.execute(
            select(Participant.id).where(Participant.github_username == new_username, Participant.id != participant.id)
        )
        if clash.first() is not None:
            msg = "GitHub username already taken"
            raise ConflictError(msg)
        participant.repo_url = repo_url_for(new_username)
        if "avatar_url" not in changes and not participant.avatar_url:
            participant.avatar_url = await fetch_github_avatar(new_username)

    for field, value in changes.items():
        if field == "avatar_url" and value is not None:
            value = str(value)
        setattr(participant, field, value)
    participant.updated_at = utcnow()
    record_activity(db, "profile_update", participant.id, {"fields": sorted(changes)})
    await db.commit()
    return participant


async def admin_update(
    db: AsyncSession,
    participant_id: uuid.UUID,
    body: AdminParticipantUpdate,
    actor: AuthUser,
) -> Participant:
    participant = await db.get(Participant, participant_id)
    if participant is None:
        msg = "Participant not found"
        raise NotFoundError(msg)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(participant, field, value)
    participant.updated_at = utcnow()
    record_activity(
        db,
        "admin_participant_update",
        participant.id,
        {"changes": changes, "actor_id": str(actor.participant.id) if actor.participant else None},
    )
    await db.commit()
    return participant


async def update_mastery_counters(
    db: AsyncSession, participant_id: uuid.UUID, body: MasteryCountersUpdate
) -> ParticipantMastery:
    """Set externally tracked counters. The level itself moves only via the mastery job."""
    mastery = (
        await db.execute(select(ParticipantMastery).where(ParticipantMastery.participant_id == participant_id))
    ).scalar_one_or_none()
    if mastery is None:
        msg = "Mastery record not found"
        raise NotFoundError(msg)
    for field, value in body.model_dump(exclude_none=True).items():
        setattr(mastery, field, value)
    mastery.updated_at = utcnow()
    await db.commit()
    return mastery
