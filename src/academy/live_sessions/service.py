"""Live sessions: an instructor walks a mission day step by step while
participants follow along under a short join code.

Sessions and attendance rows are never deleted. Ending a session or leaving
it flips ``is_active`` and stamps the end time.
"""

from __future__ import annotations

import secrets

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from academy.activity import record_activity
from academy.db.models import LiveSession, LiveSessionParticipant, MissionDay, Participant
from academy.errors import AcademyError, ConflictError, ForbiddenError, NotFoundError
from academy.live_sessions.schemas import LiveSessionControl
from academy.utils.time import utcnow

logger = structlog.get_logger()

JOIN_CODE_BYTES = 4
JOIN_CODE_ATTEMPTS = 5
FIRST_STEP = 1


def new_join_code() -> str:
    """Eight uppercase hex characters from a CSPRNG."""
    return secrets.token_hex(JOIN_CODE_BYTES).upper()


async def get_by_code(db: AsyncSession, code: str) -> LiveSession:
    session = (
        await db.execute(select(LiveSession).where(LiveSession.join_code == code.upper()))
    ).scalar_one_or_none()
    if session is None:
        msg = "Session not found"
        raise NotFoundError(msg)
    return session


async def _unused_join_code(db: AsyncSession) -> str:
    for _ in range(JOIN_CODE_ATTEMPTS):
        code = new_join_code()
        taken = (await db.execute(select(LiveSession.id).where(LiveSession.join_code == code))).first()
        if taken is None:
            return code
    msg = "Could not allocate a join code"
    raise ConflictError(msg)


async def start_session(db: AsyncSession, instructor: Participant, mission_day_id: int) -> LiveSession:
    if await db.get(MissionDay, mission_day_id) is None:
        msg = "Invalid mission_day_id - mission day not found"
        raise AcademyError(msg)

    session = LiveSession(
        instructor_id=instructor.id,
        mission_day_id=mission_day_id,
        join_code=await _unused_join_code(db),
        current_step=FIRST_STEP,
        current_section="briefing",
        is_active=True,
    )
    db.add(session)
    await db.flush()
    record_activity(
        db,
        "live_session_started",
        instructor.id,
        {"session_id": str(session.id), "mission_day_id": mission_day_id, "join_code": session.join_code},
    )
    await db.commit()
    logger.info("live_session_started", session_id=str(session.id), join_code=session.join_code)
    return session


async def active_attendee_count(db: AsyncSession, session: LiveSession) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(LiveSessionParticipant)
        .where(LiveSessionParticipant.session_id == session.id, LiveSessionParticipant.is_active.is_(True))
    )
    return int(result.scalar_one())


def _require_instructor(session: LiveSession, participant: Participant, action: str) -> None:
    if session.instructor_id != participant.id:
        msg = f"Only the instructor can {action} the session"
        raise ForbiddenError(msg)


def _require_active(session: LiveSession) -> None:
    if not session.is_active:
        msg = "Session has ended"
        raise AcademyError(msg)


async def control(db: AsyncSession, participant: Participant, code: str, body: LiveSessionControl) -> LiveSession:
    """Move the session to a step and/or section."""
    session = await get_by_code(db, code)
    _require_instructor(session, participant, "control")
    _require_active(session)
    if body.step is None and body.section is None and body.action is None:
        msg = "No updates provided"
        raise AcademyError(msg)

    if body.step is not None:
        session.current_step = body.step
    if body.section is not None:
        session.current_section = body.section
    if body.action == "next_step":
        session.current_step += 1
    elif body.action == "prev_step":
        session.current_step = max(FIRST_STEP, session.current_step - 1)

    await db.commit()
    return session


async def end_session(db: AsyncSession, participant: Participant, code: str) -> LiveSession:
    """End the session and check everyone out. Ending twice is a no-op."""
    session = await get_by_code(db, code)
    _require_instructor(session, participant, "end")
    if not session.is_active:
        return session

    now = utcnow()
    session.is_active = False
    session.ended_at = now
    await db.execute(
        update(LiveSessionParticipant)
        .where(LiveSessionParticipant.session_id == session.id, LiveSessionParticipant.is_active.is_(True))
        .values(is_active=False, left_at=now)
    )
    record_activity(db, "live_session_ended", participant.id, {"session_id": str(session.id)})
    await db.commit()
    logger.info("live_session_ended", session_id=str(session.id))
    return session


async def list_attendees(db: AsyncSession, code: str) -> list[LiveSessionParticipant]:
    session = await get_by_code(db, code)
    result = await db.execute(
        select(LiveSessionParticipant)
        .where(LiveSessionParticipant.session_id == session.id, LiveSessionParticipant.is_active.is_(True))
        .order_by(LiveSessionParticipant.joined_at, LiveSessionParticipant.id)
    )
    return list(result.scalars())


async def _attendance(db: AsyncSession, session: LiveSession, participant: Participant) -> LiveSessionParticipant | None:
    return (
        await db.execute(
            select(LiveSessionParticipant).where(
                LiveSessionParticipant.session_id == session.id,
                LiveSessionParticipant.participant_id == participant.id,
            )
        )
    ).scalar_one_or_none()


async def join(db: AsyncSession, participant: Participant, code: str) -> bool:
    """Join or rejoin an active session. Returns False if already attending."""
    session = await get_by_code(db, code)
    _require_active(session)

    existing = await _attendance(db, session, participant)
    if existing is not None:
        if existing.is_active:
            return False
        existing.is_active = True
        existing.left_at = None
    else:
        db.add(LiveSessionParticipant(session_id=session.id, participant_id=participant.id, is_active=True))
    await db.commit()
    return True


async def leave(db: AsyncSession, participant: Participant, code: str) -> None:
    session = await get_by_code(db, code)
    existing = await _attendance(db, session, participant)
    if existing is None or not existing.is_active:
        return
    existing.is_active = False
    existing.left_at = utcnow()
    await db.commit()
