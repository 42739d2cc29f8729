"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from academy.analytics.router import router as analytics_router
from academy.comments.router import router as comments_router
from academy.config import get_settings
from academy.content.router import router as content_router
from academy.cron.router import router as cron_router
from academy.database import close_db, get_session_factory, init_db
from academy.email.dispatcher import get_dispatcher
from academy.gamification.router import router as gamification_router
from academy.gamification.seed import seed_catalog
from academy.health.router import router as health_router
from academy.intel.router import router as intel_router
from academy.live_sessions.router import router as live_sessions_router
from academy.middleware import setup_middleware
from academy.participants.router import router as participants_router
from academy.peer_review.router import router as peer_review_router
from academy.prerequisites.router import router as prerequisites_router
from academy.redis_client import close_redis, init_redis
from academy.reviews.router import router as reviews_router
from academy.submissions.router import router as submissions_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.redis_url:
        await init_redis(settings.redis_url)

    # Seed achievement and recognition catalogs (idempotent)
    try:
        async with get_session_factory()() as db:
            await seed_catalog(db)
    except SQLAlchemyError:
        logger.warning("Catalog seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await get_dispatcher().drain()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="AI Academy API",
        description="Backend API for the AI Academy cohort dashboard",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(participants_router)
    app.include_router(submissions_router)
    app.include_router(reviews_router)
    app.include_router(peer_review_router)
    app.include_router(comments_router)
    app.include_router(gamification_router)
    app.include_router(analytics_router)
    app.include_router(content_router)
    app.include_router(intel_router)
    app.include_router(prerequisites_router)
    app.include_router(live_sessions_router)
    app.include_router(cron_router)

    return app


app = create_app()
