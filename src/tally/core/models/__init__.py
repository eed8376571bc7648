"""Dataclass models for the counter store tables.

Field names match SQL column names so repositories can build models
straight from query rows.

Modules
-------
counters
    Tables from ``00_counters.sql`` -- sites and their counter values.
"""

from tally.core.models.counters import (
    CounterMap,
    CounterRecord,
    Number,
    RESERVED_PREFIX,
    normalize_site,
)

__all__ = [
    "CounterMap",
    "CounterRecord",
    "Number",
    "RESERVED_PREFIX",
    "normalize_site",
]
