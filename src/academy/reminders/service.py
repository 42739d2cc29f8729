"""Deadline reminder digest."""

from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.activity import record_activity
from academy.db.models import Assignment, Participant, Submission
from academy.email.dispatcher import NotificationDispatcher, get_dispatcher
from academy.utils.time import as_utc, utcnow

logger = structlog.get_logger()

REMINDER_HORIZON_HOURS = 72


def hours_until(due_at: datetime, now: datetime) -> int:
    """Whole hours remaining, truncated toward zero."""
    return int((as_utc(due_at) - now).total_seconds() / 3600)


def upcoming(assignments: list[Assignment], now: datetime) -> list[tuple[Assignment, int]]:
    """Assignments due within (0, 72] whole hours."""
    result = []
    for assignment in assignments:
        if assignment.due_at is None:
            continue
        hours = hours_until(assignment.due_at, now)
        if 0 < hours <= REMINDER_HORIZON_HOURS:
            result.append((assignment, hours))
    return result


async def run_deadline_reminders(
    db: AsyncSession,
    *,
    notifier: NotificationDispatcher | None = None,
    now: datetime | None = None,
) -> dict:
    """Email each participant the upcoming assignments they have not submitted.

    Sends are awaited one at a time so the result can report how many went out.
    """
    now = now or utcnow()
    notifier = notifier or get_dispatcher()

    assignments = list((await db.execute(select(Assignment).where(Assignment.due_at.is_not(None)))).scalars())
    due_soon = upcoming(assignments, now)
    if not due_soon:
        return {"emails_sent": 0, "upcoming_deadlines": 0, "errors": []}

    submitted: dict = {}
    for participant_id, assignment_id in await db.execute(select(Submission.participant_id, Submission.assignment_id)):
        submitted.setdefault(participant_id, set()).add(assignment_id)

    participants = (await db.execute(select(Participant).order_by(Participant.name))).scalars().all()
    emails_sent = 0
    errors: list[str] = []
    for participant in participants:
        if not participant.email:
            continue
        done = submitted.get(participant.id, set())
        missing = sorted(
            (
                {"title": a.title, "day": a.day, "type": a.type, "hours_remaining": hours}
                for a, hours in due_soon
                if a.id not in done
            ),
            key=lambda item: item["hours_remaining"],
        )
        if not missing:
            continue
        sent = await notifier.send_now(
            participant.email,
            "deadline_reminder",
            {"participant_name": participant.name, "assignments": missing},
        )
        if sent:
            emails_sent += 1
        else:
            errors.append(f"Failed to send to {participant.email}")

    record_activity(
        db,
        "cron_deadline_reminders",
        None,
        {"emails_sent": emails_sent, "upcoming_deadlines": len(due_soon), "errors": errors or None},
    )
    await db.commit()
    logger.info("deadline_reminders_complete", emails_sent=emails_sent, upcoming=len(due_soon), errors=len(errors))
    return {"emails_sent": emails_sent, "upcoming_deadlines": len(due_soon), "errors": errors}
