"""Append-only activity log writes."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from academy.db.models import ActivityLog


def record_activity(
    db: AsyncSession,
    action: str,
    participant_id: uuid.UUID | None = None,
    details: dict[str, Any] | None = None,
) -> ActivityLog:
    """Stage an activity entry on the session; the caller commits."""
    entry = ActivityLog(participant_id=participant_id, action=action, details=details or {})
    db.add(entry)
    return entry
