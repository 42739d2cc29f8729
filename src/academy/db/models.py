"""ORM models for the academy schema.

Column types stay portable (Uuid, JSON with a JSONB variant) so the same
metadata creates the test schema on SQLite and matches the Alembic
migration on PostgreSQL.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from academy.db.base import Base
from academy.utils.time import utcnow

JSONType = JSON().with_variant(JSONB(), "postgresql")

ROLES = ("FDE", "AI-SE", "AI-PM", "AI-DA", "AI-DS", "AI-SEC", "AI-FE")
TEAMS = ("Alpha", "Beta", "Gamma", "Delta", "Epsilon", "Zeta", "Eta", "Theta")
STREAMS = ("Tech", "Business")
ASSIGNMENT_TYPES = ("in_class", "homework")
SUBMISSION_STATUSES = ("submitted", "reviewed", "needs_revision", "approved")
PARTICIPANT_STATUSES = ("pending", "approved", "rejected")
PEER_REVIEW_STATUSES = ("pending", "completed", "skipped")


# ---------------------------------------------------------------------------
# Participants
# ---------------------------------------------------------------------------


class Participant(Base):
    """A cohort member. Never hard-deleted; ``status`` carries the lifecycle."""

    __tablename__ = "participants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    auth_user_id: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True, index=True)
    github_username: Mapped[str | None] = mapped_column(String(39), unique=True, nullable=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    nickname: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    role: Mapped[str | None] = mapped_column(String(16), nullable=True)
    team: Mapped[str | None] = mapped_column(String(16), nullable=True)
    stream: Mapped[str | None] = mapped_column(String(16), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    repo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    is_mentor: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Curriculum
# ---------------------------------------------------------------------------


class Assignment(Base):
    """A gradable unit of work tied to a program day."""

    __tablename__ = "assignments"
    __table_args__ = (CheckConstraint("day BETWEEN 1 AND 25", name="assignments_day_range"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    day: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    situation: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_roles: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    max_points: Mapped[int] = mapped_column(Integer, nullable=False, default=15, server_default="15")
    due_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    folder_name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


class MissionDay(Base):
    """Narrative briefing for one program day (content fallback source)."""

    __tablename__ = "mission_days"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    day: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    codename: Mapped[str | None] = mapped_column(Text, nullable=True)
    subtitle: Mapped[str | None] = mapped_column(Text, nullable=True)
    briefing_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    resources_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    tech_skills_focus: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    target_roles: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    unlock_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")


class IntelDrop(Base):
    """Scheduled content release unlocked by program day and trigger time."""

    __tablename__ = "intel_drops"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    day: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    trigger_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    classification: Mapped[str] = mapped_column(
        String(16), nullable=False, default="BRIEFING", server_default="BRIEFING"
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    affected_task_forces: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    is_released: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Submissions & reviews
# ---------------------------------------------------------------------------


class Submission(Base):
    """One participant's attempt at one assignment."""

    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("participant_id", "assignment_id", name="submissions_participant_assignment_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    participant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assignment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    commit_sha: Mapped[str] = mapped_column(String(64), nullable=False)
    commit_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    commit_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    readme_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    self_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mentor_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mentor_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    mentor_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("participants.id"), nullable=True)
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    bonus_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="submitted", server_default="submitted")
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    participant: Mapped[Participant] = relationship("Participant", foreign_keys=[participant_id], lazy="joined")
    assignment: Mapped[Assignment] = relationship("Assignment", lazy="joined")


class PeerReview(Base):
    """A (submission, reviewer) assignment: pending, then completed or skipped."""

    __tablename__ = "peer_reviews"
    __table_args__ = (
        UniqueConstraint("submission_id", "reviewer_id", name="peer_reviews_submission_reviewer_key"),
        CheckConstraint("rating IS NULL OR (rating BETWEEN 1 AND 5)", name="peer_reviews_rating_range"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reviewer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")
    bonus_points_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    submission: Mapped[Submission] = relationship("Submission", lazy="joined")


class Comment(Base):
    """Threaded discussion on a submission."""

    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    author: Mapped[Participant] = relationship("Participant", lazy="joined")


# ---------------------------------------------------------------------------
# Leaderboard & activity
# ---------------------------------------------------------------------------


class LeaderboardEntry(Base):
    """Per-participant score aggregate, refreshed after each submission change."""

    __tablename__ = "leaderboard"

    participant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("participants.id", ondelete="CASCADE"), primary_key=True
    )
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    bonus_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_submissions: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    on_time_submissions: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    avg_self_rating: Mapped[float | None] = mapped_column(Numeric(3, 2, asdecimal=False), nullable=True)
    avg_mentor_rating: Mapped[float | None] = mapped_column(Numeric(3, 2, asdecimal=False), nullable=True)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    rank: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    participant: Mapped[Participant] = relationship("Participant", lazy="joined")


class ActivityLog(Base):
    """Append-only audit trail. Rows are never updated or deleted."""

    __tablename__ = "activity_log"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    participant_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("participants.id", ondelete="CASCADE"), nullable=True, index=True
    )
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True
    )


# ---------------------------------------------------------------------------
# Achievements, mastery & recognitions
# ---------------------------------------------------------------------------


class Achievement(Base):
    """Catalog entry for an awardable achievement."""

    __tablename__ = "achievements"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str | None] = mapped_column(String(16), nullable=True)
    points_bonus: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")


class ParticipantAchievement(Base):
    """Award row; the composite key makes awarding idempotent."""

    __tablename__ = "participant_achievements"

    participant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("participants.id", ondelete="CASCADE"), primary_key=True
    )
    achievement_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("achievements.id", ondelete="CASCADE"), primary_key=True
    )
    earned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    achievement: Mapped[Achievement] = relationship("Achievement", lazy="joined")


class ParticipantMastery(Base):
    """Mastery level (1-4) and progress counters; the level only moves up."""

    __tablename__ = "participant_mastery"
    __table_args__ = (
        UniqueConstraint("participant_id", name="participant_mastery_participant_key"),
        CheckConstraint("mastery_level BETWEEN 1 AND 4", name="participant_mastery_level_range"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    participant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False
    )
    clearance: Mapped[str] = mapped_column(String(16), nullable=False, default="RECRUIT", server_default="RECRUIT")
    mastery_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    days_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    artifacts_submitted: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    ai_tutor_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    peer_assists_given: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


class RecognitionType(Base):
    """Behavioral badge catalog (early riser, momentum, ...)."""

    __tablename__ = "recognition_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(16), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)


class ParticipantRecognition(Base):
    """Recognition award row; UNIQUE(participant_id, recognition_type_id)."""

    __tablename__ = "participant_recognitions"
    __table_args__ = (
        UniqueConstraint(
            "participant_id", "recognition_type_id", name="participant_recognitions_participant_type_key"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    participant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    recognition_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recognition_types.id", ondelete="CASCADE"), nullable=False
    )
    context: Mapped[str | None] = mapped_column(Text, nullable=True)
    earned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    recognition_type: Mapped[RecognitionType] = relationship("RecognitionType", lazy="joined")


# ---------------------------------------------------------------------------
# Onboarding prerequisites
# ---------------------------------------------------------------------------


class PrerequisiteItem(Base):
    """Setup step a participant completes before the program starts."""

    __tablename__ = "prerequisite_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    help_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")


class ParticipantPrerequisite(Base):
    """Completion state of one prerequisite for one participant."""

    __tablename__ = "participant_prerequisites"
    __table_args__ = (
        UniqueConstraint("participant_id", "prerequisite_id", name="participant_prerequisites_participant_item_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    participant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    prerequisite_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("prerequisite_items.id", ondelete="CASCADE"), nullable=False
    )
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Live sessions
# ---------------------------------------------------------------------------

LIVE_SESSION_SECTIONS = ("briefing", "resources", "lab", "debrief")


class LiveSession(Base):
    """Instructor-driven walkthrough of a mission day, joined by code."""

    __tablename__ = "live_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    instructor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False
    )
    mission_day_id: Mapped[int] = mapped_column(Integer, ForeignKey("mission_days.id"), nullable=False)
    join_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    current_section: Mapped[str] = mapped_column(
        String(16), nullable=False, default="briefing", server_default="briefing"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    instructor: Mapped[Participant] = relationship("Participant", lazy="joined")
    mission_day: Mapped[MissionDay] = relationship("MissionDay", lazy="joined")


class LiveSessionParticipant(Base):
    """Attendance row; leaving flips ``is_active`` rather than deleting."""

    __tablename__ = "live_session_participants"
    __table_args__ = (
        UniqueConstraint("session_id", "participant_id", name="live_session_participants_session_participant_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("live_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    participant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    left_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    participant: Mapped[Participant] = relationship("Participant", lazy="joined")
