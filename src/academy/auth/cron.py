"""Bearer-secret guard for scheduled-job endpoints."""

import hmac

import structlog
from fastapi import HTTPException, Request

from academy.config import get_settings

logger = structlog.get_logger()


def verify_cron_secret(request: Request) -> None:
    """Fail closed: an unset secret is a server error, a mismatch is 401."""
    secret = get_settings().cron_secret
    if not secret:
        logger.error("cron_secret_not_configured", path=request.url.path)
        raise HTTPException(status_code=500, detail="Server configuration error")

    header = request.headers.get("Authorization", "")
    expected = f"Bearer {secret}"
    if not hmac.compare_digest(header.encode(), expected.encode()):
        logger.warning("cron_unauthorized", path=request.url.path)
        raise HTTPException(status_code=401, detail="Unauthorized")
