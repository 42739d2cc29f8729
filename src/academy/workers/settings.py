"""arq worker settings module.

Runs the scheduled jobs in-process on a cron schedule, as an alternative to
an external scheduler hitting ``/api/cron/*``.

Import path for arq CLI: arq academy.workers.settings.WorkerSettings
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings

from academy.config import get_settings
from academy.database import close_db, get_session_factory, init_db
from academy.email.dispatcher import get_dispatcher
from academy.gamification.jobs import run_mastery_update
from academy.gamification.recognition import run_recognitions
from academy.intel.service import run_intel_release
from academy.reminders.service import run_deadline_reminders

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    settings = get_settings()
    await init_db(settings.database_url)
    logger.info("Scheduled job worker started")


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    await get_dispatcher().drain()
    await close_db()
    logger.info("Scheduled job worker shut down")


async def mastery_update(ctx: dict) -> dict:  # type: ignore[type-arg]
    async with get_session_factory()() as db:
        return await run_mastery_update(db)


async def recognitions(ctx: dict) -> dict:  # type: ignore[type-arg]
    async with get_session_factory()() as db:
        return await run_recognitions(db)


async def intel_release(ctx: dict) -> dict:  # type: ignore[type-arg]
    async with get_session_factory()() as db:
        return await run_intel_release(db)


async def deadline_reminders(ctx: dict) -> dict:  # type: ignore[type-arg]
    async with get_session_factory()() as db:
        return await run_deadline_reminders(db)


def _redis_settings() -> RedisSettings:
    url = get_settings().redis_url or "redis://localhost:6379/0"
    return RedisSettings.from_dsn(url)


class WorkerSettings:
    """arq worker settings for the scheduled progression jobs."""

    functions = [mastery_update, recognitions, intel_release, deadline_reminders]
    cron_jobs = [
        cron(mastery_update, minute=0),
        cron(recognitions, hour={0, 6, 12, 18}, minute=5),
        cron(intel_release, minute={0, 15, 30, 45}),
        cron(deadline_reminders, hour=8, minute=0),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = _redis_settings()
    max_jobs = 4
    job_timeout = get_settings().cron_job_timeout_seconds
