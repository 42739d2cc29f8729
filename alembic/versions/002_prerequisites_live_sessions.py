"""Onboarding prerequisites and live sessions.

Revision ID: 002_prerequisites_live_sessions
Revises: 001_initial_schema
Create Date: 2026-02-01
"""

from collections.abc import Sequence

from alembic import op

revision: str = "002_prerequisites_live_sessions"
down_revision: str | None = "001_initial_schema"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Prerequisites ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS prerequisite_items (
            id SERIAL PRIMARY KEY,
            code VARCHAR(64) UNIQUE NOT NULL,
            category VARCHAR(32) NOT NULL,
            name TEXT NOT NULL,
            description TEXT,
            help_url TEXT,
            is_required BOOLEAN NOT NULL DEFAULT true,
            display_order INTEGER NOT NULL DEFAULT 0
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS participant_prerequisites (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            participant_id UUID NOT NULL REFERENCES participants(id) ON DELETE CASCADE,
            prerequisite_id INTEGER NOT NULL REFERENCES prerequisite_items(id) ON DELETE CASCADE,
            is_completed BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ,
            notes TEXT,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT participant_prerequisites_participant_item_key UNIQUE (participant_id, prerequisite_id)
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_participant_prerequisites_participant_id "
        "ON participant_prerequisites(participant_id)"
    )

    # --- Live sessions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS live_sessions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            instructor_id UUID NOT NULL REFERENCES participants(id) ON DELETE CASCADE,
            mission_day_id INTEGER NOT NULL REFERENCES mission_days(id),
            join_code VARCHAR(16) UNIQUE NOT NULL,
            current_step INTEGER NOT NULL DEFAULT 1,
            current_section VARCHAR(16) NOT NULL DEFAULT 'briefing',
            is_active BOOLEAN NOT NULL DEFAULT true,
            started_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            ended_at TIMESTAMPTZ
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_live_sessions_active ON live_sessions(is_active) WHERE is_active")
    op.execute("""
        CREATE TABLE IF NOT EXISTS live_session_participants (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            session_id UUID NOT NULL REFERENCES live_sessions(id) ON DELETE CASCADE,
            participant_id UUID NOT NULL REFERENCES participants(id) ON DELETE CASCADE,
            is_active BOOLEAN NOT NULL DEFAULT true,
            joined_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            left_at TIMESTAMPTZ,
            CONSTRAINT live_session_participants_session_participant_key UNIQUE (session_id, participant_id)
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_live_session_participants_session_id "
        "ON live_session_participants(session_id)"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS live_session_participants CASCADE")
    op.execute("DROP TABLE IF EXISTS live_sessions CASCADE")
    op.execute("DROP TABLE IF EXISTS participant_prerequisites CASCADE")
    op.execute("DROP TABLE IF EXISTS prerequisite_items CASCADE")
