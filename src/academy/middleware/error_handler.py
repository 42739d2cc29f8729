"""Global error handlers: consistent JSON error responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from academy.errors import AcademyError

logger = structlog.get_logger()


def _request_id(request: Request) -> str | None:
    request_id = getattr(request.state, "request_id", None)
    if request_id is None:
        request_id = structlog.contextvars.get_contextvars().get("request_id")
    return request_id


def _field_name(loc: tuple[str | int, ...]) -> str:
    # Drop the leading "body"/"query"/"path" segment FastAPI adds
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions with consistent JSON format."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(AcademyError)
    async def academy_error_handler(_request: Request, exc: AcademyError) -> JSONResponse:
        """Map domain errors to their status codes."""
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Report malformed input as 400 with field-level detail."""
        errors = [{"field": _field_name(tuple(err.get("loc", ()))), "message": err.get("msg", "")} for err in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={"detail": "Validation failed", "errors": errors},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions: log with the request ID, never leak internals."""
        request_id = _request_id(request)
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            request_id=request_id,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "request_id": request_id},
        )
