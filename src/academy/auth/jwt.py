"""
Bearer token verification.

Sessions are issued by the external auth provider; this service only
verifies them. Tokens are HS256 by default with a shared secret and carry
``sub`` (the provider's user id) and ``email``.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from academy.config import get_settings


def create_access_token(sub: str, email: str | None = None, expires_minutes: int = 60) -> str:
    """
    Mint a token the way the auth provider does.

    Only used by local tooling and tests; production tokens come from the provider.
    """
    settings = get_settings()
    if not settings.jwt_secret:
        msg = "jwt_secret is not configured"
        raise RuntimeError(msg)
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": sub,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    if email:
        payload["email"] = email
    if settings.jwt_issuer:
        payload["iss"] = settings.jwt_issuer
    if settings.jwt_audience:
        payload["aud"] = settings.jwt_audience
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode a bearer token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or auth is not configured.
    """
    settings = get_settings()
    if not settings.jwt_secret:
        msg = "Authentication is not configured"
        raise jwt.InvalidTokenError(msg)
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if not isinstance(payload.get("sub"), str) or not payload["sub"]:
        msg = "Token subject is missing"
        raise jwt.InvalidTokenError(msg)
    return payload
