"""Authorization capability checks.

Role and status branching is resolved in one place: ``check_capability``
returns ``Authorized`` or ``Unauthorized`` and the route dependencies turn
the latter into an HTTP error.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.db.models import Participant


class Requirement(StrEnum):
    USER = "user"
    PARTICIPANT = "participant"
    APPROVED_PARTICIPANT = "approved_participant"
    ADMIN_OR_MENTOR = "admin_or_mentor"
    ADMIN = "admin"


@dataclass(frozen=True)
class AuthUser:
    """A verified token subject plus its participant record, if registered."""

    sub: str
    email: str | None
    participant: Participant | None = None

    @property
    def is_admin(self) -> bool:
        return bool(self.participant and self.participant.is_admin)

    @property
    def is_mentor(self) -> bool:
        return bool(self.participant and self.participant.is_mentor)

    @property
    def is_staff(self) -> bool:
        return self.is_admin or self.is_mentor


@dataclass(frozen=True)
class Authorized:
    user: AuthUser


@dataclass(frozen=True)
class Unauthorized:
    reason: str
    status_code: int = 403


Capability = Authorized | Unauthorized


def check_capability(user: AuthUser | None, requirement: Requirement) -> Capability:
    """Decide whether ``user`` satisfies ``requirement``."""
    if user is None:
        return Unauthorized("Authentication required", 401)
    if requirement is Requirement.USER:
        return Authorized(user)

    participant = user.participant
    if participant is None:
        return Unauthorized("Participant profile not found", 403)
    if requirement is Requirement.PARTICIPANT:
        return Authorized(user)
    if requirement is Requirement.APPROVED_PARTICIPANT:
        if participant.status != "approved" and not user.is_staff:
            return Unauthorized("Participant is not approved", 403)
        return Authorized(user)
    if requirement is Requirement.ADMIN_OR_MENTOR:
        if not user.is_staff:
            return Unauthorized("Admin or mentor access required", 403)
        return Authorized(user)
    if not user.is_admin:
        return Unauthorized("Admin access required", 403)
    return Authorized(user)


async def load_user(db: AsyncSession, sub: str, email: str | None) -> AuthUser:
    """Resolve token claims to an ``AuthUser``.

    Participants are matched by auth subject first. A participant created
    before the subject was known is matched by email once and linked.
    """
    result = await db.execute(select(Participant).where(Participant.auth_user_id == sub))
    participant = result.scalar_one_or_none()
    if participant is None and email:
        result = await db.execute(
            select(Participant).where(Participant.email == email.lower(), Participant.auth_user_id.is_(None))
        )
        participant = result.scalar_one_or_none()
        if participant is not None:
            participant.auth_user_id = sub
            await db.commit()
    return AuthUser(sub=sub, email=email, participant=participant)
