"""Mastery level thresholds and the level-up evaluator.

Pure functions: no I/O. A tier's predicate is a conjunction of
"counter >= constant" checks. Tiers are tried from the highest down so a
participant that qualifies for several jumps straight to the top one.
"""

from __future__ import annotations

from dataclasses import dataclass

MIN_LEVEL = 1
MAX_LEVEL = 4

CLEARANCE_BY_LEVEL: dict[int, str] = {
    1: "RECRUIT",
    2: "FIELD_TRAINEE",
    3: "FIELD_READY",
    4: "SPECIALIST",
}


@dataclass(frozen=True)
class MasterySnapshot:
    days_completed: int = 0
    artifacts_submitted: int = 0
    peer_assists_given: int = 0
    ai_tutor_sessions: int = 0
    mastery_level: int = MIN_LEVEL


@dataclass(frozen=True)
class LevelUp:
    new_level: int
    new_clearance: str


@dataclass(frozen=True)
class Tier:
    level: int
    days_completed: int
    artifacts_submitted: int = 0
    peer_assists_given: int = 0
    ai_tutor_sessions: int = 0

    def satisfied_by(self, snapshot: MasterySnapshot) -> bool:
        return (
            snapshot.days_completed >= self.days_completed
            and snapshot.artifacts_submitted >= self.artifacts_submitted
            and snapshot.peer_assists_given >= self.peer_assists_given
            and snapshot.ai_tutor_sessions >= self.ai_tutor_sessions
        )


# Highest first.
TIERS: tuple[Tier, ...] = (
    Tier(level=4, days_completed=20, artifacts_submitted=3, peer_assists_given=2),
    Tier(level=3, days_completed=10, artifacts_submitted=1),
    Tier(level=2, days_completed=3, ai_tutor_sessions=1),
)


def clearance_for_level(level: int) -> str:
    """Clearance label for ``level`` (clamped to 1..4)."""
    return CLEARANCE_BY_LEVEL[max(MIN_LEVEL, min(MAX_LEVEL, level))]


def evaluate(snapshot: MasterySnapshot) -> LevelUp | None:
    """Return the highest newly satisfied tier above the current level, if any."""
    for tier in TIERS:
        if tier.level <= snapshot.mastery_level:
            continue
        if tier.satisfied_by(snapshot):
            return LevelUp(new_level=tier.level, new_clearance=clearance_for_level(tier.level))
    return None
