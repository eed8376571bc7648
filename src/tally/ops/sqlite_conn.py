"""SQLite connection used by the counter store.

Rows come back as :class:`sqlite3.Row` so repositories read columns by
name. The busy timeout makes concurrent writers wait on the database lock
instead of failing with ``database is locked``.
"""

from __future__ import annotations

import sqlite3
from typing import Any


class SqliteConnection:
    """``sqlite3.Connection`` shaped to :class:`~tally.core.protocols.Connection`."""

    def __init__(self, path: str = ":memory:", *, timeout: float = 30.0) -> None:
        # request handlers may run on any threadpool worker
        self._conn = sqlite3.connect(path, timeout=timeout, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row

    def execute(self, sql: str, params: tuple = ()) -> Any:
        return self._conn.execute(sql, params)

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        return self._conn.executemany(sql, params)

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    def __repr__(self) -> str:
        return f"SqliteConnection({self._conn!r})"
