"""Counter repository - per-site accumulator records.

``CounterRepository`` is the storage contract the merge engine depends on;
``SqlCounterRepository`` implements it over the ``tally_sites`` /
``tally_counters`` tables.

Concurrency:
    Increments are pushed into the database as one
    ``INSERT ... ON CONFLICT DO UPDATE SET value = value + excluded.value``
    per key, so two submissions racing on the same site both land. Site
    creation relies on the ``tally_sites`` primary key: the loser of a
    create race gets :class:`~tally.core.errors.ConflictError` and the
    caller merges instead.

Failure:
    Every write runs in one transaction that is rolled back on error, so a
    failed ``create`` or ``merge`` leaves the record exactly as it was.
    Driver exceptions surface as :class:`~tally.core.errors.StorageError`
    with the original exception chained.

Tags:
    repository, counters, sql, tally
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol, runtime_checkable

from tally.core.errors import ConflictError, NotFoundError, StorageError, TallyError
from tally.core.logging import get_logger
from tally.core.models.counters import CounterMap, CounterRecord, Number, normalize_site
from tally.core.protocols import Connection
from tally.core.timestamps import utc_now_iso

logger = get_logger(__name__)

# sqlite3 binds Python ints as signed 64-bit INTEGER
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_INSERT_SITE = (
    "INSERT INTO tally_sites (site, created_at, updated_at) VALUES (?, ?, ?) "
    "ON CONFLICT (site) DO NOTHING"
)
_TOUCH_SITE = "UPDATE tally_sites SET updated_at = ? WHERE site = ?"
_INCREMENT = (
    "INSERT INTO tally_counters (site, counter_key, value) VALUES (?, ?, ?) "
    "ON CONFLICT (site, counter_key) DO UPDATE SET value = tally_counters.value + excluded.value"
)
_SELECT_SITE = "SELECT site, created_at, updated_at FROM tally_sites WHERE site = ?"
_SELECT_COUNTERS = "SELECT counter_key, value FROM tally_counters WHERE site = ? ORDER BY counter_key"
_LIST_SITES = "SELECT site FROM tally_sites ORDER BY site"


@runtime_checkable
class CounterRepository(Protocol):
    """Storage contract for counter records."""

    def find(self, site: str) -> CounterRecord | None:
        """Return the record for *site*, or ``None`` when absent."""
        ...

    def create(self, site: str, initial_counters: CounterMap) -> CounterRecord:
        """Insert a new record seeded with *initial_counters*.

        Raises ConflictError when the site already has a record.
        """
        ...

    def merge(self, record: CounterRecord, deltas: CounterMap) -> CounterRecord:
        """Add *deltas* into *record* and return the stored result."""
        ...

    def list_sites(self) -> list[str]:
        """Distinct site identifiers, sorted."""
        ...

    def ping(self) -> None:
        """Raise StorageError when the backing store is unreachable."""
        ...


class SqlCounterRepository:
    """SQL implementation of :class:`CounterRepository`.

    Owns no transaction state beyond *conn*: each write commits or rolls
    back before returning.
    """

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    # -- reads -----------------------------------------------------------------

    def find(self, site: str) -> CounterRecord | None:
        site = normalize_site(site)
        with self._storage_call("find", site):
            return self._load(site)

    def list_sites(self) -> list[str]:
        with self._storage_call("list_sites"):
            rows = self.conn.execute(_LIST_SITES).fetchall()
        return [row["site"] for row in rows]

    def ping(self) -> None:
        with self._storage_call("ping"):
            self.conn.execute("SELECT 1").fetchone()

    # -- writes ----------------------------------------------------------------

    def create(self, site: str, initial_counters: CounterMap) -> CounterRecord:
        site = normalize_site(site)
        now = utc_now_iso()
        with self._storage_call("create", site, write=True):
            cursor = self.conn.execute(_INSERT_SITE, (site, now, now))
            if cursor.rowcount == 0:
                raise ConflictError(f"Site {site!r} already exists", context={"site": site})
            self._increment(site, initial_counters)
            record = self._load(site)
        return record

    def merge(self, record: CounterRecord, deltas: CounterMap) -> CounterRecord:
        site = normalize_site(record.site)
        with self._storage_call("merge", site, write=True):
            cursor = self.conn.execute(_TOUCH_SITE, (utc_now_iso(), site))
            if cursor.rowcount == 0:
                raise NotFoundError(f"Site {site!r} not found", context={"site": site})
            self._increment(site, deltas)
            merged = self._load(site)
        return merged

    # -- internals -------------------------------------------------------------

    def _increment(self, site: str, deltas: CounterMap) -> None:
        if deltas:
            self.conn.executemany(
                _INCREMENT,
                [(site, key, _bindable(value)) for key, value in deltas.items()],
            )

    def _load(self, site: str) -> CounterRecord | None:
        row = self.conn.execute(_SELECT_SITE, (site,)).fetchone()
        if row is None:
            return None
        counter_rows = self.conn.execute(_SELECT_COUNTERS, (site,)).fetchall()
        return CounterRecord(
            site=row["site"],
            counters={r["counter_key"]: r["value"] for r in counter_rows},
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @contextmanager
    def _storage_call(self, action: str, site: str | None = None, *, write: bool = False) -> Iterator[None]:
        """Run a storage step, committing writes and mapping driver errors."""
        try:
            yield
            if write:
                self.conn.commit()
        except TallyError:
            if write:
                self._rollback_quietly(action)
            raise
        except Exception as exc:
            if write:
                self._rollback_quietly(action)
            raise StorageError(
                f"Storage {action} failed: {exc}",
                context={"action": action, "site": site},
                cause=exc,
            ) from exc

    def _rollback_quietly(self, action: str) -> None:
        """Roll back after a failed write; the original error is what propagates."""
        try:
            self.conn.rollback()
        except Exception as exc:  # noqa: BLE001
            logger.warning("rollback_failed", action=action, error=str(exc))


def _bindable(value: Number) -> Number:
    """Integers outside INTEGER range are stored as REAL."""
    if isinstance(value, int) and not _INT64_MIN <= value <= _INT64_MAX:
        return float(value)
    return value


__all__ = [
    "CounterRepository",
    "SqlCounterRepository",
]
