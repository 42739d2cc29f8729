"""Initial schema.

Creates participants, curriculum (assignments, mission_days, intel_drops),
submissions with mentor and peer review, comments, the leaderboard
aggregate, the activity log, and the achievement/mastery/recognition
tables. Every award path is backed by a unique constraint.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-01-26
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # --- Participants ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS participants (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            auth_user_id VARCHAR(128) UNIQUE,
            github_username VARCHAR(39) UNIQUE,
            name VARCHAR(100) NOT NULL,
            nickname VARCHAR(30),
            email VARCHAR(320) UNIQUE NOT NULL,
            role VARCHAR(16),
            team VARCHAR(16),
            stream VARCHAR(16),
            avatar_url TEXT,
            repo_url TEXT,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            is_admin BOOLEAN NOT NULL DEFAULT false,
            is_mentor BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_participants_status ON participants(status)")

    # --- Curriculum ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS assignments (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            day INTEGER NOT NULL CONSTRAINT assignments_day_range CHECK (day BETWEEN 1 AND 25),
            type VARCHAR(16) NOT NULL,
            title TEXT NOT NULL,
            description TEXT,
            situation TEXT,
            target_roles JSONB,
            max_points INTEGER NOT NULL DEFAULT 15,
            due_at TIMESTAMPTZ,
            folder_name TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_assignments_due ON assignments(due_at)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS mission_days (
            id SERIAL PRIMARY KEY,
            day INTEGER UNIQUE NOT NULL,
            title TEXT NOT NULL,
            codename TEXT,
            subtitle TEXT,
            briefing_content TEXT,
            resources_content TEXT,
            tech_skills_focus JSONB,
            target_roles JSONB,
            unlock_date DATE,
            is_visible BOOLEAN NOT NULL DEFAULT false
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS intel_drops (
            id SERIAL PRIMARY KEY,
            day INTEGER NOT NULL,
            trigger_time TIME,
            title TEXT NOT NULL,
            classification VARCHAR(16) NOT NULL DEFAULT 'BRIEFING',
            content TEXT NOT NULL,
            affected_task_forces JSONB,
            is_released BOOLEAN NOT NULL DEFAULT false,
            released_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_intel_drops_day ON intel_drops(day)")

    # --- Submissions & reviews ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS submissions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            participant_id UUID NOT NULL REFERENCES participants(id) ON DELETE CASCADE,
            assignment_id UUID NOT NULL REFERENCES assignments(id) ON DELETE CASCADE,
            commit_sha VARCHAR(64) NOT NULL,
            commit_message TEXT,
            commit_url TEXT,
            readme_content TEXT,
            self_rating INTEGER,
            mentor_rating INTEGER,
            mentor_notes TEXT,
            mentor_id UUID REFERENCES participants(id),
            points_earned INTEGER NOT NULL DEFAULT 0,
            bonus_points INTEGER NOT NULL DEFAULT 0,
            status VARCHAR(16) NOT NULL DEFAULT 'submitted',
            submitted_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            reviewed_at TIMESTAMPTZ,
            CONSTRAINT submissions_participant_assignment_key UNIQUE (participant_id, assignment_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_submissions_participant_id ON submissions(participant_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_submissions_assignment_id ON submissions(assignment_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_submissions_submitted_at ON submissions(submitted_at)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS peer_reviews (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            submission_id UUID NOT NULL REFERENCES submissions(id) ON DELETE CASCADE,
            reviewer_id UUID NOT NULL REFERENCES participants(id) ON DELETE CASCADE,
            rating INTEGER CONSTRAINT peer_reviews_rating_range CHECK (rating IS NULL OR (rating BETWEEN 1 AND 5)),
            feedback TEXT,
            is_anonymous BOOLEAN NOT NULL DEFAULT true,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            bonus_points_earned INTEGER NOT NULL DEFAULT 0,
            assigned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            completed_at TIMESTAMPTZ,
            CONSTRAINT peer_reviews_submission_reviewer_key UNIQUE (submission_id, reviewer_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_peer_reviews_submission_id ON peer_reviews(submission_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_peer_reviews_reviewer_id ON peer_reviews(reviewer_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS comments (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            submission_id UUID NOT NULL REFERENCES submissions(id) ON DELETE CASCADE,
            author_id UUID NOT NULL REFERENCES participants(id) ON DELETE CASCADE,
            parent_id UUID REFERENCES comments(id) ON DELETE CASCADE,
            content TEXT NOT NULL,
            is_edited BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_comments_submission_id ON comments(submission_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_comments_author_id ON comments(author_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_comments_parent_id ON comments(parent_id)")

    # --- Leaderboard & activity ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS leaderboard (
            participant_id UUID PRIMARY KEY REFERENCES participants(id) ON DELETE CASCADE,
            total_points INTEGER NOT NULL DEFAULT 0,
            bonus_points INTEGER NOT NULL DEFAULT 0,
            total_submissions INTEGER NOT NULL DEFAULT 0,
            on_time_submissions INTEGER NOT NULL DEFAULT 0,
            avg_self_rating NUMERIC(3, 2),
            avg_mentor_rating NUMERIC(3, 2),
            current_streak INTEGER NOT NULL DEFAULT 0,
            rank INTEGER,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_leaderboard_rank ON leaderboard(rank)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS activity_log (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            participant_id UUID REFERENCES participants(id) ON DELETE CASCADE,
            action VARCHAR(64) NOT NULL,
            details JSONB,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_activity_log_participant_id ON activity_log(participant_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_activity_log_created_at ON activity_log(created_at)")

    # --- Achievements, mastery & recognitions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            code VARCHAR(64) UNIQUE NOT NULL,
            name TEXT NOT NULL,
            description TEXT,
            icon VARCHAR(16),
            points_bonus INTEGER NOT NULL DEFAULT 0
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS participant_achievements (
            participant_id UUID NOT NULL REFERENCES participants(id) ON DELETE CASCADE,
            achievement_id UUID NOT NULL REFERENCES achievements(id) ON DELETE CASCADE,
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (participant_id, achievement_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS participant_mastery (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            participant_id UUID NOT NULL REFERENCES participants(id) ON DELETE CASCADE,
            clearance VARCHAR(16) NOT NULL DEFAULT 'RECRUIT',
            mastery_level INTEGER NOT NULL DEFAULT 1
                CONSTRAINT participant_mastery_level_range CHECK (mastery_level BETWEEN 1 AND 4),
            days_completed INTEGER NOT NULL DEFAULT 0,
            artifacts_submitted INTEGER NOT NULL DEFAULT 0,
            ai_tutor_sessions INTEGER NOT NULL DEFAULT 0,
            peer_assists_given INTEGER NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT participant_mastery_participant_key UNIQUE (participant_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS recognition_types (
            id SERIAL PRIMARY KEY,
            code VARCHAR(64) UNIQUE NOT NULL,
            name TEXT NOT NULL,
            icon VARCHAR(16) NOT NULL,
            description TEXT NOT NULL
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS participant_recognitions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            participant_id UUID NOT NULL REFERENCES participants(id) ON DELETE CASCADE,
            recognition_type_id INTEGER NOT NULL REFERENCES recognition_types(id) ON DELETE CASCADE,
            context TEXT,
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT participant_recognitions_participant_type_key UNIQUE (participant_id, recognition_type_id)
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_participant_recognitions_participant_id "
        "ON participant_recognitions(participant_id)"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS participant_recognitions CASCADE")
    op.execute("DROP TABLE IF EXISTS recognition_types CASCADE")
    op.execute("DROP TABLE IF EXISTS participant_mastery CASCADE")
    op.execute("DROP TABLE IF EXISTS participant_achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS activity_log CASCADE")
    op.execute("DROP TABLE IF EXISTS leaderboard CASCADE")
    op.execute("DROP TABLE IF EXISTS comments CASCADE")
    op.execute("DROP TABLE IF EXISTS peer_reviews CASCADE")
    op.execute("DROP TABLE IF EXISTS submissions CASCADE")
    op.execute("DROP TABLE IF EXISTS intel_drops CASCADE")
    op.execute("DROP TABLE IF EXISTS mission_days CASCADE")
    op.execute("DROP TABLE IF EXISTS assignments CASCADE")
    op.execute("DROP TABLE IF EXISTS participants CASCADE")
