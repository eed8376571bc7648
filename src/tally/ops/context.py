"""
Request-scoped context for operations.

Every operation receives an :class:`OperationContext`. It carries the
caller identity and a request id that is bound into the structured log
context for the duration of the operation.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field


@dataclass
class OperationContext:
    """Context passed to every operation.

    Attributes:
        request_id: Unique ID for this operation invocation (auto-generated).
        caller: Origin of the request - ``"api"``, ``"cli"`` or ``"sdk"``.
    """

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caller: str = "sdk"

