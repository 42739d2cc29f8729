"""Onboarding prerequisites: catalog, per-participant completion, readiness stats.

Completion rows are upserted on ``(participant_id, prerequisite_id)``; an
item with no row counts as not completed.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.activity import record_activity
from academy.auth.capabilities import AuthUser
from academy.db.models import Participant, ParticipantPrerequisite, PrerequisiteItem
from academy.errors import ForbiddenError, NotFoundError
from academy.prerequisites.schemas import (
    BatchItem,
    ItemStat,
    ParticipantReadiness,
    PrerequisiteItemResponse,
    PrerequisiteStatus,
    PrerequisiteSummary,
    ReadinessOverview,
)
from academy.utils.time import utcnow

logger = structlog.get_logger()


def completion_pct(done: int, total: int) -> int:
    """Whole percent, rounded half up; 0 for an empty total."""
    if total <= 0:
        return 0
    return (done * 100 + total // 2) // total


def summarize(statuses: Sequence[PrerequisiteStatus]) -> PrerequisiteSummary:
    required = [s for s in statuses if s.is_required]
    required_done = sum(1 for s in required if s.is_completed)
    total_done = sum(1 for s in statuses if s.is_completed)
    return PrerequisiteSummary(
        required_total=len(required),
        required_completed=required_done,
        required_completion_pct=completion_pct(required_done, len(required)),
        total_items=len(statuses),
        total_completed=total_done,
        total_completion_pct=completion_pct(total_done, len(statuses)),
        is_ready=required_done == len(required),
    )


async def list_items(db: AsyncSession) -> list[PrerequisiteItem]:
    result = await db.execute(select(PrerequisiteItem).order_by(PrerequisiteItem.display_order, PrerequisiteItem.id))
    return list(result.scalars())


def resolve_target(user: AuthUser, participant_id: uuid.UUID | None, *, write: bool = False) -> uuid.UUID:
    """The participant a request acts on. Others' records need staff to read and admin to write."""
    own_id = user.participant.id if user.participant is not None else None
    target = participant_id or own_id
    if target is None:
        msg = "Participant profile not found"
        raise ForbiddenError(msg)
    if target != own_id:
        allowed = user.is_admin if write else user.is_staff
        if not allowed:
            msg = "Cannot access another participant's prerequisites"
            raise ForbiddenError(msg)
    return target


async def _require_participant(db: AsyncSession, participant_id: uuid.UUID) -> Participant:
    participant = await db.get(Participant, participant_id)
    if participant is None:
        msg = "Participant not found"
        raise NotFoundError(msg)
    return participant


async def _completions(db: AsyncSession, participant_id: uuid.UUID) -> dict[int, ParticipantPrerequisite]:
    rows = await db.execute(
        select(ParticipantPrerequisite).where(ParticipantPrerequisite.participant_id == participant_id)
    )
    return {row.prerequisite_id: row for row in rows.scalars()}


async def participant_status(
    db: AsyncSession, participant_id: uuid.UUID
) -> tuple[list[PrerequisiteStatus], PrerequisiteSummary]:
    await _require_participant(db, participant_id)
    completions = await _completions(db, participant_id)
    statuses = []
    for item in await list_items(db):
        row = completions.get(item.id)
        statuses.append(
            PrerequisiteStatus(
                **PrerequisiteItemResponse.model_validate(item).model_dump(),
                is_completed=row.is_completed if row else False,
                completed_at=row.completed_at if row else None,
                notes=row.notes if row else None,
            )
        )
    return statuses, summarize(statuses)


async def readiness_stats(
    db: AsyncSession,
) -> tuple[list[ItemStat], list[ParticipantReadiness], ReadinessOverview]:
    """Per-item completion across the cohort, per-participant readiness, and totals.

    Rejected participants and staff are not part of the cohort.
    """
    items = await list_items(db)
    participants = list(
        (
            await db.execute(
                select(Participant)
                .where(
                    Participant.status != "rejected",
                    Participant.is_admin.is_(False),
                    Participant.is_mentor.is_(False),
                )
                .order_by(Participant.name)
            )
        ).scalars()
    )
    completed = set(
        (
            await db.execute(
                select(ParticipantPrerequisite.participant_id, ParticipantPrerequisite.prerequisite_id).where(
                    ParticipantPrerequisite.is_completed.is_(True)
                )
            )
        ).tuples()
    )
    cohort = {p.id for p in participants}
    required_ids = {item.id for item in items if item.is_required}

    stats = []
    for item in items:
        count = sum(1 for pid, item_id in completed if item_id == item.id and pid in cohort)
        stats.append(
            ItemStat(
                id=item.id,
                code=item.code,
                name=item.name,
                category=item.category,
                is_required=item.is_required,
                completed_count=count,
                total_participants=len(participants),
                completion_pct=completion_pct(count, len(participants)),
            )
        )

    summary = []
    for participant in participants:
        done = {item_id for pid, item_id in completed if pid == participant.id}
        required_done = len(done & required_ids)
        summary.append(
            ParticipantReadiness(
                participant_id=participant.id,
                name=participant.name,
                email=participant.email,
                role=participant.role,
                team=participant.team,
                required_total=len(required_ids),
                required_completed=required_done,
                required_completion_pct=completion_pct(required_done, len(required_ids)),
                total_items=len(items),
                completed_count=len(done & {item.id for item in items}),
            )
        )

    fully_ready = sum(1 for r in summary if r.required_total and r.required_completed == r.required_total)
    not_started = sum(1 for r in summary if r.required_completed == 0)
    overview = ReadinessOverview(
        total_participants=len(summary),
        fully_ready=fully_ready,
        partially_ready=len(summary) - fully_ready - not_started,
        not_started=not_started,
        readiness_pct=completion_pct(fully_ready, len(summary)),
    )
    return stats, summary, overview


async def _upsert(
    db: AsyncSession,
    participant_id: uuid.UUID,
    updates: Iterable[BatchItem],
    notes: dict[int, str | None],
    now: datetime,
) -> list[ParticipantPrerequisite]:
    updates = list(updates)
    known = set(
        (
            await db.execute(
                select(PrerequisiteItem.id).where(PrerequisiteItem.id.in_([u.prerequisite_id for u in updates]))
            )
        ).scalars()
    )
    missing = sorted({u.prerequisite_id for u in updates} - known)
    if missing:
        msg = f"Prerequisite not found: {', '.join(str(m) for m in missing)}"
        raise NotFoundError(msg)

    existing = await _completions(db, participant_id)
    rows = []
    for update in updates:
        row = existing.get(update.prerequisite_id)
        if row is None:
            row = ParticipantPrerequisite(participant_id=participant_id, prerequisite_id=update.prerequisite_id)
            db.add(row)
            existing[update.prerequisite_id] = row
        row.is_completed = update.is_completed
        row.completed_at = now if update.is_completed else None
        if update.prerequisite_id in notes:
            row.notes = notes[update.prerequisite_id]
        row.updated_at = now
        rows.append(row)
    return rows


async def update_prerequisites(
    db: AsyncSession,
    participant_id: uuid.UUID,
    updates: Sequence[BatchItem],
    *,
    notes: dict[int, str | None] | None = None,
    now: datetime | None = None,
) -> list[ParticipantPrerequisite]:
    """Set completion for one or more items. Unknown item ids reject the whole request."""
    await _require_participant(db, participant_id)
    rows = await _upsert(db, participant_id, updates, notes or {}, now or utcnow())
    record_activity(
        db,
        "prerequisites_updated",
        participant_id,
        {"updates": [{"prerequisite_id": u.prerequisite_id, "is_completed": u.is_completed} for u in updates]},
    )
    await db.commit()
    logger.info("prerequisites_updated", participant_id=str(participant_id), updated=len(rows))
    return rows
