"""
Error-handling middleware - maps ops-layer errors to RFC 7807 responses.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tally.api.schemas.common import ErrorDetail, ProblemDetail
from tally.core.logging import get_logger

logger = get_logger(__name__)

NOT_FOUND_ROUTE_MESSAGE = "Could not find this route!"

# ── Error code → HTTP status mapping ─────────────────────────────────────

ERROR_CODE_TO_STATUS: dict[str, int] = {
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "VALIDATION_FAILED": 422,
    "STORAGE": 500,
    "CONFIG": 500,
    "INTERNAL": 500,
}


def status_for_error_code(code: str) -> int:
    """Resolve an ops error code to HTTP status, defaulting to 500."""
    return ERROR_CODE_TO_STATUS.get(code, 500)


def problem_response(
    *,
    status: int,
    title: str,
    detail: str = "",
    instance: str = "",
    errors: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(
        title=title,
        status=status,
        detail=detail,
        instance=instance,
    )
    if errors:
        body.errors = [ErrorDetail(**e) for e in errors]
    return JSONResponse(
        status_code=status,
        content=body.model_dump(),
        media_type="application/problem+json",
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions - returns 500 with ProblemDetail."""
    logger.exception("unhandled_exception", path=request.url.path, error=str(exc))
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail=str(exc) if request.app.state.settings.debug else "An unexpected error occurred.",
        instance=request.url.path,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies (e.g. invalid JSON) - 422 ProblemDetail."""
    errors = [
        {
            "code": str(err.get("type", "INVALID")).upper(),
            "message": str(err.get("msg", "")),
            "field": ".".join(str(part) for part in err.get("loc", ())) or None,
        }
        for err in exc.errors()
    ]
    return problem_response(
        status=422,
        title="Invalid data!",
        instance=request.url.path,
        errors=errors,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Router-level HTTP errors; unknown routes get a 404 ProblemDetail."""
    title = NOT_FOUND_ROUTE_MESSAGE if exc.status_code == 404 else str(exc.detail)
    response = problem_response(
        status=exc.status_code,
        title=title,
        instance=request.url.path,
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response
