"""
Typed response objects for operations.

Responses carry domain data only - no HTTP status codes, no CLI
formatting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from tally.core.models.counters import CounterRecord


class SubmitOutcome(str, Enum):
    """Whether a submission created a record or merged into one."""

    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True, slots=True)
class SubmitResult:
    """Result payload for :meth:`tally.ops.counters.MergeEngine.submit`."""

    outcome: SubmitOutcome
    record: CounterRecord

    @property
    def created(self) -> bool:
        return self.outcome is SubmitOutcome.CREATED


@dataclass(frozen=True, slots=True)
class DatabaseInitResult:
    """Result of ``initialize_database``."""

    schema_files: list[str] = field(default_factory=list)
    tables: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class DatabaseHealth:
    """Result of ``check_database_health``."""

    connected: bool = False
    missing_tables: list[str] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return self.connected and not self.missing_tables
