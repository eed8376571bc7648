"""In-memory counter repository.

Single-process implementation of
:class:`~tally.core.repositories.counters.CounterRepository` for
development servers and tests. One lock guards the whole store, so
concurrent creates and merges are serialized exactly like the SQL
backend's per-key upserts.

Guardrails:
    ❌ DON'T: Use with multiple uvicorn workers (each gets its own store)
    ✅ DO: Use ``storage_backend=sqlite`` when data must be shared or kept
"""

from __future__ import annotations

import threading
from dataclasses import replace

from tally.core.errors import ConflictError, NotFoundError
from tally.core.models.counters import CounterMap, CounterRecord, normalize_site
from tally.core.timestamps import utc_now_iso


class InMemoryCounterRepository:
    """Dict-backed counter store keyed by normalized site."""

    def __init__(self) -> None:
        self._records: dict[str, CounterRecord] = {}
        self._lock = threading.Lock()

    def find(self, site: str) -> CounterRecord | None:
        with self._lock:
            record = self._records.get(normalize_site(site))
            return _snapshot(record) if record else None

    def create(self, site: str, initial_counters: CounterMap) -> CounterRecord:
        site = normalize_site(site)
        now = utc_now_iso()
        with self._lock:
            if site in self._records:
                raise ConflictError(f"Site {site!r} already exists", context={"site": site})
            record = CounterRecord(
                site=site,
                counters=dict(initial_counters),
                created_at=now,
                updated_at=now,
            )
            self._records[site] = record
            return _snapshot(record)

    def merge(self, record: CounterRecord, deltas: CounterMap) -> CounterRecord:
        site = normalize_site(record.site)
        with self._lock:
            stored = self._records.get(site)
            if stored is None:
                raise NotFoundError(f"Site {site!r} not found", context={"site": site})
            for key, value in deltas.items():
                stored.counters[key] = stored.counters.get(key, 0) + value
            stored.updated_at = utc_now_iso()
            return _snapshot(stored)

    def list_sites(self) -> list[str]:
        with self._lock:
            return sorted(self._records)

    def ping(self) -> None:
        return None

    def __len__(self) -> int:
        return len(self._records)


def _snapshot(record: CounterRecord) -> CounterRecord:
    return replace(record, counters=dict(record.counters))


__all__ = ["InMemoryCounterRepository"]
