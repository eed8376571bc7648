"""Counter table models (00_counters.sql).

A :class:`CounterRecord` is the single accumulator kept per site: the
``tally_sites`` row plus every ``tally_counters`` row for that site.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

type Number = int | float
type CounterMap = dict[str, Number]

# Prefix of system-injected dimension keys; never accepted from callers.
RESERVED_PREFIX = "__"


def normalize_site(site: str) -> str:
    """Trim and lower-case a site identifier."""
    return site.strip().lower()


# ---------------------------------------------------------------------------
# tally_sites + tally_counters
# ---------------------------------------------------------------------------


@dataclass
class CounterRecord:
    """Accumulated counters for one site.

    ``counters`` maps counter key to a running total. Totals never go down:
    the only mutation is an additive merge of strictly positive deltas.
    """

    site: str = ""
    counters: CounterMap = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Wire form used by the HTTP API (``data`` holds the counters)."""
        return {
            "site": self.site,
            "data": dict(self.counters),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
