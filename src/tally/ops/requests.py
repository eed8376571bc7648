"""
Typed request objects for operations.

Each dataclass is the *input* contract of one operation. Requests carry
transport-agnostic data; the raw ``site``/``data`` values are validated by
the operation itself so every transport gets identical rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tally.core.identity import RemoteAddress


@dataclass(frozen=True, slots=True)
class SubmitCountersRequest:
    """Request for :meth:`tally.ops.counters.MergeEngine.submit`."""

    site: Any = None
    data: Any = None
    remote: RemoteAddress = field(default_factory=RemoteAddress)
