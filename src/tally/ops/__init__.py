"""
Operations layer - business logic for tally.

The ops package provides typed request/response operations shared by every
transport:

- All operations accept ``OperationContext`` as first argument
- All operations return ``OperationResult[T]`` (never raise)
- All operations are transport-agnostic (no HTTP, no CLI knowledge)

Usage::

    from tally.core.repositories import InMemoryCounterRepository
    from tally.ops import MergeEngine, OperationContext, SubmitCountersRequest

    engine = MergeEngine(InMemoryCounterRepository())
    result = engine.submit(OperationContext(), SubmitCountersRequest("blog", {"views": 1}))
    assert result.data.created
"""

from tally.ops.context import OperationContext
from tally.ops.counters import MergeEngine
from tally.ops.requests import SubmitCountersRequest
from tally.ops.responses import SubmitOutcome, SubmitResult
from tally.ops.result import OperationError, OperationResult
from tally.ops.sqlite_conn import SqliteConnection

__all__ = [
    "MergeEngine",
    "OperationContext",
    "OperationError",
    "OperationResult",
    "SqliteConnection",
    "SubmitCountersRequest",
    "SubmitOutcome",
    "SubmitResult",
]
