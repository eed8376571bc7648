"""
Operation result envelope.

Every operation returns an :class:`OperationResult` instead of raising for
domain errors. Transports (API, CLI) look at ``success`` and the error
``code``, so one table decides HTTP statuses and exit codes.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class OperationError:
    """Why an operation failed.

    Attributes:
        code: Machine-readable code (``NOT_FOUND``, ``VALIDATION_FAILED``, ...).
        message: Safe to show to callers; never carries driver detail.
        details: Extra context such as per-field ``issues``.
    """

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class OperationResult[T]:
    """Success with ``data``, or failure with ``error``.

    Build one through :meth:`ok` or :meth:`fail`.
    """

    success: bool
    data: T | None = None
    error: OperationError | None = None

    @classmethod
    def ok(cls, data: T) -> OperationResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        *,
        details: dict[str, Any] | None = None,
    ) -> OperationResult[T]:
        return cls(
            success=False,
            error=OperationError(code=code, message=message, details=details or {}),
        )


class _Timer:
    __slots__ = ("_start",)

    def __init__(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return round((time.perf_counter() - self._start) * 1000, 2)


def start_timer() -> _Timer:
    """Stopwatch for the ``elapsed_ms`` field of operation log events."""
    return _Timer()
