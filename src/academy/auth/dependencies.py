"""FastAPI authentication dependencies."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.capabilities import AuthUser, Authorized, Requirement, check_capability, load_user
from academy.auth.jwt import verify_token
from academy.database import get_session

_bearer = HTTPBearer(auto_error=False)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> AuthUser | None:
    """Return the caller if a bearer token is present; 401 if it is present but invalid."""
    if credentials is None:
        return None
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    return await load_user(db, payload["sub"], payload.get("email"))


def _require(requirement: Requirement) -> Callable[..., Awaitable[AuthUser]]:
    async def dependency(user: AuthUser | None = Depends(get_optional_user)) -> AuthUser:
        capability = check_capability(user, requirement)
        if isinstance(capability, Authorized):
            return capability.user
        headers = {"WWW-Authenticate": "Bearer"} if capability.status_code == 401 else None
        raise HTTPException(status_code=capability.status_code, detail=capability.reason, headers=headers)

    dependency.__name__ = f"require_{requirement.value}"
    return dependency


require_user = _require(Requirement.USER)
require_participant = _require(Requirement.PARTICIPANT)
require_approved_participant = _require(Requirement.APPROVED_PARTICIPANT)
require_admin_or_mentor = _require(Requirement.ADMIN_OR_MENTOR)
require_admin = _require(Requirement.ADMIN)
