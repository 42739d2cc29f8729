"""Shared test fixtures.

Tests run against an in-memory SQLite database (one fresh database per
test) and the process-local rate limiter; no PostgreSQL or Redis needed.
"""

from __future__ import annotations

import os

os.environ["ACADEMY_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ACADEMY_REDIS_URL"] = ""
os.environ["ACADEMY_JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["ACADEMY_CRON_SECRET"] = "test-cron-secret"
os.environ["ACADEMY_EMAIL_PROVIDER"] = "none"
os.environ["ACADEMY_LOG_FORMAT"] = "console"
os.environ["ACADEMY_CORS_ORIGINS"] = '["http://localhost:3000"]'

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import get_settings
from academy.content.service import reset_content_service
from academy.database import close_db, get_engine, get_session_factory, init_db
from academy.db.base import Base
from academy.email.dispatcher import get_dispatcher, reset_dispatcher
from academy.email.service import BaseEmailProvider, EmailService, reset_email_service, set_email_service
from academy.gamification.seed import seed_catalog
from academy.main import create_app

get_settings.cache_clear()


class RecordingProvider(BaseEmailProvider):
    """Captures outgoing mail instead of delivering it."""

    name = "recording"

    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []
        self.fail_for: set[str] = set()

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        if to_email in self.fail_for:
            return False
        self.sent.append({"to": to_email, "subject": subject, "html": html_body, "text": text_body})
        return True

    def to(self, address: str) -> list[dict[str, str]]:
        return [m for m in self.sent if m["to"] == address]


@pytest.fixture(autouse=True)
def _no_github(monkeypatch):
    """Avatar lookups never leave the process."""

    async def _no_avatar(username, client=None):
        return None

    monkeypatch.setattr("academy.participants.service.fetch_github_avatar", _no_avatar)


@pytest.fixture
def outbox() -> RecordingProvider:
    provider = RecordingProvider()
    set_email_service(EmailService(provider))
    reset_dispatcher()
    yield provider
    reset_dispatcher()
    reset_email_service()


@pytest_asyncio.fixture
async def db(outbox) -> AsyncGenerator[AsyncSession, None]:
    """A fresh schema with the catalogs seeded."""
    get_settings.cache_clear()
    reset_content_service()
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with get_session_factory()() as session:
        await seed_catalog(session)
        yield session
        await get_dispatcher().drain()
    await close_db()


@pytest_asyncio.fixture
async def client(db) -> AsyncGenerator[AsyncClient, None]:
    app = create_app()
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await get_dispatcher().drain()
