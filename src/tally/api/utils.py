"""
Shared API router utilities.

- ``_handle_error()`` - convert a failed OperationResult to a ``problem_response``
- ``remote_address()`` - read the client addresses the identity dimension uses

Tags:
    tally, api, utils, shared

Doc-Types: API_INFRASTRUCTURE
"""

from __future__ import annotations

from fastapi import Request

from tally.api.middleware.errors import problem_response, status_for_error_code
from tally.core.identity import RemoteAddress


def _handle_error(result, request: Request | None = None):
    """Convert a failed ``OperationResult`` into a Problem Details response.

    Uses the error code from the result to determine the HTTP status code,
    and the error message as the problem title. Field issues from
    validation failures become the ``errors`` list.
    """
    code = result.error.code if result.error else "INTERNAL"
    issues = result.error.details.get("issues") if result.error else None
    return problem_response(
        status=status_for_error_code(code),
        title=result.error.message if result.error else "Operation failed",
        instance=request.url.path if request is not None else "",
        errors=issues,
    )


def remote_address(request: Request) -> RemoteAddress:
    """Forwarded-for header plus the direct peer address of *request*."""
    return RemoteAddress(
        forwarded_for=request.headers.get("x-forwarded-for"),
        peer=request.client.host if request.client else None,
    )
