"""Catalog seed data: achievements, recognition types and onboarding prerequisites."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from academy.db.models import Achievement, PrerequisiteItem, RecognitionType

logger = logging.getLogger(__name__)

ACHIEVEMENT_SEED_DATA: list[dict[str, Any]] = [
    {"code": "first_blood", "name": "First Blood", "description": "First submission in the academy", "icon": "🩸", "points_bonus": 5},
    {"code": "early_bird", "name": "Early Bird", "description": "Submitted before 9:00", "icon": "🐦", "points_bonus": 3},
    {"code": "night_owl", "name": "Night Owl", "description": "Submitted after 22:00", "icon": "🦉", "points_bonus": 3},
    {"code": "perfect_day", "name": "Perfect Day", "description": "In-class and homework on the same day", "icon": "⭐", "points_bonus": 5},
    {"code": "streak_3", "name": "On Fire", "description": "3 days in a row with a submission", "icon": "🔥", "points_bonus": 10},
    {"code": "streak_5", "name": "Unstoppable", "description": "5 days in a row with a submission", "icon": "💪", "points_bonus": 20},
    {"code": "team_player", "name": "Team Player", "description": "Completed 5 peer reviews", "icon": "🤝", "points_bonus": 5},
    {"code": "mentor_favorite", "name": "Mentor Favorite", "description": "5/5 rating from a mentor", "icon": "🌟", "points_bonus": 10},
    {"code": "completionist", "name": "Completionist", "description": "Every assignment submitted", "icon": "🏆", "points_bonus": 25},
]

RECOGNITION_SEED_DATA: list[dict[str, Any]] = [
    {"code": "early_riser", "name": "Early Riser", "icon": "🌅", "description": "Consistent morning engagement before sessions"},
    {"code": "night_scholar", "name": "Night Scholar", "icon": "🌙", "description": "Dedication to after-hours learning"},
    {"code": "steady_progress", "name": "Steady Progress", "icon": "📈", "description": "Consistent daily advancement"},
    {"code": "momentum", "name": "Momentum", "icon": "🔥", "description": "5+ consecutive days with submissions"},
    {"code": "team_supporter", "name": "Team Supporter", "icon": "🤝", "description": "Helping teammates overcome blockers"},
    {"code": "problem_solver", "name": "Problem Solver", "icon": "💡", "description": "Creative solutions to challenging situations"},
    {"code": "thorough", "name": "Thorough", "icon": "📝", "description": "High-quality documentation and artifacts"},
    {"code": "precision", "name": "Precision", "icon": "🎯", "description": "Accurate, well-tested implementations"},
    {"code": "security_mindset", "name": "Security Mindset", "icon": "🛡️", "description": "Proactive security considerations"},
    {"code": "mentor_spirit", "name": "Mentor Spirit", "icon": "🎓", "description": "Going above to help others learn"},
]

PREREQUISITE_SEED_DATA: list[dict[str, Any]] = [
    {"code": "git_installed", "category": "development", "name": "Git installed", "description": "git --version prints 2.40 or newer", "help_url": "https://git-scm.com/downloads", "is_required": True, "display_order": 1},
    {"code": "github_account", "category": "development", "name": "GitHub account", "description": "Account with 2FA enabled", "help_url": "https://github.com/signup", "is_required": True, "display_order": 2},
    {"code": "ide_setup", "category": "development", "name": "IDE ready", "description": "VS Code or Cursor with Python and Markdown extensions", "help_url": "https://code.visualstudio.com/", "is_required": True, "display_order": 3},
    {"code": "python_installed", "category": "development", "name": "Python 3.11+", "description": "python --version prints 3.11 or newer", "help_url": "https://www.python.org/downloads/", "is_required": False, "display_order": 4},
    {"code": "claude_access", "category": "ai_platforms", "name": "Claude access", "description": "Signed in to claude.ai with the academy workspace", "help_url": "https://claude.ai", "is_required": True, "display_order": 10},
    {"code": "chatgpt_access", "category": "ai_platforms", "name": "ChatGPT access", "description": "Personal or team account", "help_url": "https://chat.openai.com", "is_required": False, "display_order": 11},
    {"code": "google_account", "category": "google", "name": "Google account", "description": "Used for shared drives and AI Studio", "help_url": "https://accounts.google.com", "is_required": True, "display_order": 20},
    {"code": "ai_studio_access", "category": "google", "name": "Google AI Studio", "description": "Able to create an API key", "help_url": "https://aistudio.google.com", "is_required": False, "display_order": 21},
    {"code": "slack_joined", "category": "collaboration", "name": "Slack workspace joined", "description": "Member of the cohort channel", "help_url": None, "is_required": True, "display_order": 30},
    {"code": "calendar_invites", "category": "collaboration", "name": "Calendar invites accepted", "description": "Daily sessions are on your calendar", "help_url": None, "is_required": False, "display_order": 31},
    {"code": "network_check", "category": "technical", "name": "Network check", "description": "github.com and the AI platforms are reachable from your machine", "help_url": None, "is_required": True, "display_order": 40},
    {"code": "code_of_conduct", "category": "confirmation", "name": "Code of conduct accepted", "description": "Read and accepted the academy code of conduct", "help_url": None, "is_required": True, "display_order": 50},
]


def _insert_for(db: AsyncSession):  # type: ignore[no-untyped-def]
    return pg_insert if db.get_bind().dialect.name == "postgresql" else sqlite_insert


async def _upsert(db: AsyncSession, model: type, rows: list[dict[str, Any]]) -> int:
    insert = _insert_for(db)
    for row in rows:
        stmt = insert(model).values(**row)
        stmt = stmt.on_conflict_do_update(
            index_elements=["code"],
            set_={key: stmt.excluded[key] for key in row if key != "code"},
        )
        await db.execute(stmt)
    return len(rows)


async def seed_catalog(db: AsyncSession) -> int:
    """Upsert every catalog. Returns rows seeded."""
    seeded = await _upsert(db, Achievement, ACHIEVEMENT_SEED_DATA)
    seeded += await _upsert(db, RecognitionType, RECOGNITION_SEED_DATA)
    seeded += await _upsert(db, PrerequisiteItem, PREREQUISITE_SEED_DATA)
    await db.commit()
    logger.info("Seeded %d catalog entries", seeded)
    return seeded
