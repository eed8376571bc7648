"""
What the SQL code in tally needs from a database handle.

:class:`~tally.ops.sqlite_conn.SqliteConnection` is the implementation
``create_connection`` hands out; tests may pass anything of the same shape.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """Synchronous DB-API style connection.

    ``execute`` and ``executemany`` return a cursor whose rows support
    lookup by column name.
    """

    def execute(self, sql: str, params: tuple = ()) -> Any: ...

    def executemany(self, sql: str, params: list[tuple]) -> Any: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def close(self) -> None: ...


__all__ = ["Connection"]
