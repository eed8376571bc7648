"""
Error types raised inside tally.

Each :class:`TallyError` subclass stands for one :class:`ErrorCategory`. The
merge engine turns categories into operation error codes; the API turns codes
into HTTP statuses. Driver exceptions never leave the repositories unwrapped:
they are chained into a :class:`StorageError` as ``cause``.

    >>> err = ValidationError("value must be positive", field="data.views", value=0)
    >>> err.category
    <ErrorCategory.VALIDATION: 'VALIDATION'>
    >>> err.issues
    [FieldIssue(field='data.views', message='value must be positive', code='INVALID')]
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    STORAGE = "STORAGE"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass(frozen=True, slots=True)
class FieldIssue:
    """One violation found while validating a submission."""

    field: str
    message: str
    code: str = "INVALID"

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "message": self.message, "code": self.code}


class TallyError(Exception):
    """Base class; subclasses pick their ``category``."""

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Fields for a structured log event."""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result


class ValidationError(TallyError):
    """
    A submission was rejected.

    ``issues`` lists every violation; one is enough to reject the whole
    submission. Passing only ``field`` records a single issue for it.
    """

    category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        issues: list[FieldIssue] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.issues: list[FieldIssue] = list(issues or [])
        if not self.issues and field:
            self.issues.append(FieldIssue(field=field, message=message))

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.value is not None:
            result["value"] = repr(self.value)
        result["issues"] = [i.to_dict() for i in self.issues]
        return result


class NotFoundError(TallyError):
    """No counter record exists for the requested site."""

    category = ErrorCategory.NOT_FOUND


class ConflictError(TallyError):
    """A record for the site was created concurrently."""

    category = ErrorCategory.CONFLICT


class StorageError(TallyError):
    """Backing store failure on read, create, or merge."""

    category = ErrorCategory.STORAGE


class ConfigError(TallyError):
    """Invalid configuration (unknown database URL, bad setting)."""

    category = ErrorCategory.CONFIG


__all__ = [
    "ErrorCategory",
    "FieldIssue",
    "TallyError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "StorageError",
    "ConfigError",
]
