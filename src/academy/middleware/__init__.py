"""Middleware registration."""

from fastapi import FastAPI

from academy.config import Settings
from academy.middleware.cors import setup_cors
from academy.middleware.error_handler import setup_error_handlers
from academy.middleware.logging import setup_logging
from academy.middleware.rate_limit import RateLimitMiddleware
from academy.middleware.request_id import RequestIdMiddleware
from academy.middleware.security_headers import SecurityHeadersMiddleware


def rate_limit_paths(settings: Settings) -> dict[str, int]:
    """Per-path overrides of the default request budget."""
    return {
        "/api/register": settings.rate_limit_register,
        "/api/review": settings.rate_limit_review,
        "/api/bulk-review": settings.rate_limit_bulk_review,
        "/api/content": settings.rate_limit_content,
    }


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    FastAPI/Starlette executes middleware in reverse-add order (last added = outermost).
    CORS must be outermost so it wraps error responses from inner middleware (e.g. 429).
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
        path_limits=rate_limit_paths(settings),
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)  # added last → outermost → wraps 429 responses
