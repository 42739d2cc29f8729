"""Scheduled-job endpoints, triggered by an external scheduler with a bearer secret."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.cron import verify_cron_secret
from academy.config import get_settings
from academy.database import get_session
from academy.gamification.jobs import run_mastery_update
from academy.gamification.recognition import run_recognitions
from academy.intel.service import run_intel_release
from academy.reminders.service import run_deadline_reminders

logger = structlog.get_logger()

router = APIRouter(prefix="/api/cron", tags=["Cron"], dependencies=[Depends(verify_cron_secret)])


async def run_job(name: str, job: Callable[[], Awaitable[dict[str, Any]]]) -> dict[str, Any] | JSONResponse:
    """Run ``job`` within the configured processing budget; 504 when it overruns."""
    timeout = get_settings().cron_job_timeout_seconds
    try:
        async with asyncio.timeout(timeout):
            result = await job()
    except TimeoutError:
        logger.error("cron_job_timeout", job=name, timeout_seconds=timeout)
        return JSONResponse(status_code=504, content={"detail": f"Job {name} exceeded {timeout}s"})
    logger.info("cron_job_complete", job=name)
    return {"success": True, **result}


@router.get("/mastery-update")
async def mastery_update(db: AsyncSession = Depends(get_session)):
    return await run_job("mastery-update", lambda: run_mastery_update(db))


@router.get("/recognitions")
async def recognitions(db: AsyncSession = Depends(get_session)):
    return await run_job("recognitions", lambda: run_recognitions(db))


@router.get("/intel-release")
async def intel_release(db: AsyncSession = Depends(get_session)):
    return await run_job("intel-release", lambda: run_intel_release(db))


@router.get("/deadline-reminders")
async def deadline_reminders(db: AsyncSession = Depends(get_session)):
    return await run_job("deadline-reminders", lambda: run_deadline_reminders(db))
