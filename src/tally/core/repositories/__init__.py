"""Repositories for the counter store.

Architecture::

    ┌────────────────────────────────────────────────────────────────┐
    │  tally.ops.counters  (MergeEngine - business orchestration)    │
    └────────────────────────────┬───────────────────────────────────┘
                                 │ depends on CounterRepository
                                 ▼
    ┌────────────────────────────────────────────────────────────────┐
    │  tally.core.repositories  (this package)                       │
    │                                                                │
    │  counters.py  - CounterRepository (protocol),                  │
    │                 SqlCounterRepository                           │
    │  memory.py    - InMemoryCounterRepository                      │
    └────────────────────────────────────────────────────────────────┘

Tags:
    repository, sql, counters, tally
"""

from tally.core.repositories.counters import CounterRepository, SqlCounterRepository
from tally.core.repositories.memory import InMemoryCounterRepository

__all__ = [
    "CounterRepository",
    "InMemoryCounterRepository",
    "SqlCounterRepository",
]
