"""
Common API schemas - RFC 7807 errors.

Every non-2xx response is a :class:`ProblemDetail`. Validation failures
list each rejected field in ``errors``.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Structured error detail for field-level errors."""

    code: str = Field(description="Machine-readable error code (e.g., 'NOT_POSITIVE', 'RESERVED_KEY')")
    message: str = Field(description="Human-readable error description")
    field: str | None = Field(default=None, description="Field path if error is field-specific")


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs».

    Error Codes:
        - ``VALIDATION_FAILED`` (422): Submission rejected
        - ``NOT_FOUND`` (404): No record for the site / unknown route
        - ``CONFLICT`` (409): Concurrent create could not be resolved
        - ``STORAGE`` (500): Backing store failure (generic message)
        - ``INTERNAL`` (500): Unexpected server error

    Example:
        {
            "type": "about:blank",
            "title": "Invalid data!",
            "status": 422,
            "detail": "",
            "instance": "/api/items",
            "errors": [
                {"code": "NOT_POSITIVE", "message": "value must be greater than 0", "field": "data.views"}
            ]
        }
    """

    type: str = Field(default="about:blank", description="Error type URI (usually 'about:blank')")
    title: str = Field(description="Short human-readable error summary")
    status: int = Field(description="HTTP status code (e.g., 404, 422, 500)")
    detail: str = Field(default="", description="Human-readable explanation of the error")
    instance: str = Field(default="", description="URI of the failing request")
    errors: list[ErrorDetail] = Field(
        default_factory=list,
        description="List of field-level error details",
    )
