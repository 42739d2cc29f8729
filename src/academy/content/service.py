"""
Mission content lookup.

Day content comes from the first source that has a situation file: a local
checkout of the content repository, then the GitHub contents API (only when
a token is configured), then the ``mission_days`` table. Results are kept in
a short-lived, size-bounded ``cachetools.TTLCache`` local to this process.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

import httpx
import structlog
from cachetools import TTLCache
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import get_settings
from academy.content.schemas import DayContentResponse, Phase, RoleContentResponse
from academy.db.models import ROLES, MissionDay
from academy.errors import AcademyError, NotFoundError

logger = structlog.get_logger()

FIRST_DAY = 1
LAST_DAY = 25
DEFAULT_ROLE = "FDE"
GITHUB_API_URL = "https://api.github.com"

COMMON_FOUNDATION_FOLDERS = {
    1: "Day-01-AI-Landscape",
    2: "Day-02-Prompt-Engineering",
    3: "Day-03-Agentic-Patterns",
}

LAB_FOLDERS = {
    11: "Lab-01-First-Chatbot",
    12: "Lab-01-First-Chatbot",
    13: "Lab-02-RAG-Pipeline",
    14: "Lab-02-RAG-Pipeline",
    15: "Lab-03-Multi-Agent",
    16: "Lab-03-Multi-Agent",
    17: "Lab-04-Deployment",
    18: "Lab-04-Deployment",
    19: "Lab-05-Evaluation",
    20: "Lab-05-Evaluation",
    21: "Lab-06-Security",
    22: "Lab-06-Security",
    23: "Lab-07-Dashboard",
    24: "Lab-08-UI-Prototype",
    25: "Lab-08-UI-Prototype",
}



@dataclass(frozen=True)
class ContentLayout:
    """Repository-relative paths for one day's files."""

    phase: Phase
    base: str
    situation: str
    resources: str
    mentor_notes: str

    def path(self, name: str) -> str:
        return f"{self.base}/{name}"


def phase_for_day(day: int) -> Phase:
    if day <= 3:
        return "common"
    if day <= 10:
        return "role-specific"
    return "team-project"


def week_for_day(day: int) -> int:
    if 4 <= day <= 5:
        return 1
    if 6 <= day <= 10:
        return 2
    return 0


def validate_day(day: int) -> int:
    if not FIRST_DAY <= day <= LAST_DAY:
        msg = "Invalid day. Must be between 1 and 25."
        raise AcademyError(msg)
    return day


def normalize_role(role: str) -> str:
    normalized = role.upper()
    if normalized not in ROLES:
        msg = f"Invalid role. Must be one of: {', '.join(ROLES)}"
        raise AcademyError(msg)
    return normalized


def layout_for(day: int, role: str | None = None) -> ContentLayout:
    phase = phase_for_day(day)
    if phase == "common":
        return ContentLayout(
            phase, f"01-Common-Foundations/{COMMON_FOUNDATION_FOLDERS[day]}", "SITUATION.md", "RESOURCES.md", "MENTOR-NOTES.md"
        )
    if phase == "role-specific":
        safe_role = role if role in ROLES else DEFAULT_ROLE
        base = f"02-Role-Tracks/{safe_role}/Week-{week_for_day(day):02d}/Day-{day:02d}"
        return ContentLayout(phase, base, "SITUATION.md", "RESOURCES.md", "MENTOR-NOTES.md")
    lab = LAB_FOLDERS.get(day, LAB_FOLDERS[11])
    return ContentLayout(phase, f"03-Labs/{lab}", "README.md", "INSTRUCTIONS.md", "MENTOR-NOTES.md")


class LocalSource:
    """Reads from a checkout of the content repository."""

    name = "local"

    def __init__(self, root: str) -> None:
        self.root = Path(root) if root else None

    async def read(self, relative_path: str) -> str | None:
        if self.root is None:
            return None
        path = self.root / relative_path
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None


class GitHubSource:
    """Fetches raw files through the GitHub contents API."""

    name = "github"

    def __init__(
        self,
        owner: str,
        repo: str,
        branch: str,
        token: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.token = token
        self._client = client
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.owner and self.repo)

    async def read(self, relative_path: str) -> str | None:
        if not self.enabled:
            return None
        url = f"{GITHUB_API_URL}/repos/{self.owner}/{self.repo}/contents/{relative_path}"
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github.v3.raw",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        try:
            if self._client is not None:
                response = await self._client.get(url, params={"ref": self.branch}, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, params={"ref": self.branch}, headers=headers)
        except httpx.HTTPError:
            logger.warning("github_content_fetch_failed", path=relative_path, exc_info=True)
            return None
        if response.status_code != 200:
            return None
        return response.text


class ContentService:
    def __init__(
        self,
        local: LocalSource,
        github: GitHubSource,
        cache: TTLCache,
    ) -> None:
        self.local = local
        self.github = github
        self.cache = cache

    async def _from_files(
        self, source: LocalSource | GitHubSource, day: int, layout: ContentLayout, include_notes: bool
    ) -> DayContentResponse | None:
        situation = await source.read(layout.path(layout.situation))
        if not situation:
            return None
        resources = await source.read(layout.path(layout.resources))
        mentor_notes = await source.read(layout.path(layout.mentor_notes)) if include_notes else None
        return DayContentResponse(
            day=day,
            situation=situation,
            resources=resources,
            mentor_notes=mentor_notes,
            source=source.name,
            phase=layout.phase,
        )

    async def _from_database(self, db: AsyncSession, day: int) -> DayContentResponse | None:
        mission = (await db.execute(select(MissionDay).where(MissionDay.day == day))).scalar_one_or_none()
        if mission is None:
            return None
        return DayContentResponse(
            day=day,
            situation=mission.briefing_content,
            resources=mission.resources_content,
            mentor_notes=None,
            source="database",
            phase=phase_for_day(day),
        )

    async def day_content(
        self, db: AsyncSession, day: int, *, include_notes: bool = False, role: str | None = None
    ) -> DayContentResponse:
        validate_day(day)
        key = f"day-{day}-notes-{include_notes}-role-{role or 'none'}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached.model_copy(update={"cached": True})

        layout = layout_for(day, role)
        content = await self._from_files(self.local, day, layout, include_notes)
        if content is None:
            content = await self._from_files(self.github, day, layout, include_notes)
        if content is None:
            content = await self._from_database(db, day)
        if content is None:
            msg = "Content not found for this day."
            raise NotFoundError(msg)

        self.cache[key] = content
        logger.info("content_loaded", day=day, source=content.source)
        return content

    async def _role_file(self, source: LocalSource | GitHubSource, day: int, role: str) -> tuple[str | None, bool]:
        """Role brief, or the common situation file as a fallback. Returns (content, is_fallback)."""
        day_folder = f"Day-{day:02d}"
        content = await source.read(f"02-Role-Specific/{role}/{day_folder}/ROLE-SPECIFIC.md")
        if content:
            return content, False
        return await source.read(f"01-Common-Foundations/{day_folder}/SITUATION.md"), True

    async def role_content(self, role: str, day: int) -> RoleContentResponse:
        role = normalize_role(role)
        validate_day(day)
        key = f"role-{role}-day-{day}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached.model_copy(update={"cached": True})

        content, fallback = await self._role_file(self.local, day, role)
        source = "local"
        if content is None or fallback:
            gh_content, gh_fallback = await self._role_file(self.github, day, role)
            if gh_content and (not gh_fallback or content is None):
                content, fallback, source = gh_content, gh_fallback, "github"
        if not content:
            msg = "Content not found for this role and day."
            raise NotFoundError(msg)

        response = RoleContentResponse(
            day=day,
            role=role,
            content=content,
            source="fallback" if fallback else source,
            has_fallback=fallback,
        )
        self.cache[key] = response
        return response


_content_service: ContentService | None = None


def get_content_service() -> ContentService:
    """Get or create the content service singleton."""
    global _content_service  # noqa: PLW0603
    if _content_service is None:
        settings = get_settings()
        _content_service = ContentService(
            local=LocalSource(settings.local_content_path),
            github=GitHubSource(
                owner=settings.github_content_owner,
                repo=settings.github_content_repo,
                branch=settings.github_content_branch,
                token=settings.github_token,
            ),
            cache=TTLCache(maxsize=settings.content_cache_max_entries, ttl=settings.content_cache_ttl_seconds),
        )
    return _content_service


def reset_content_service() -> None:
    global _content_service  # noqa: PLW0603
    _content_service = None
