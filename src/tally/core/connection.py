"""Opens the SQLite counter store from a URL or path.

=======================  ==============================
``database`` value       Opens
=======================  ==============================
``None`` / ``memory``    private in-memory database
``:memory:``             private in-memory database
``sqlite:///tally.db``   file, relative to ``data_dir``
``sqlite:////abs.db``    file, absolute
``./data/tally.db``      file, relative to ``data_dir``
=======================  ==============================

Any other ``scheme://`` raises :class:`~tally.core.errors.ConfigError`.

::

    conn, info = create_connection("sqlite:///tally.db", init_schema=True)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from tally.core.errors import ConfigError
from tally.core.logging import get_logger
from tally.core.protocols import Connection

logger = get_logger(__name__)

MEMORY = ":memory:"


@dataclass(frozen=True)
class ConnectionInfo:
    backend: str
    persistent: bool
    url: str
    resolved_path: str | None = None


def parse_url(db: str | None) -> tuple[str, str]:
    """Split *db* into ``(kind, target)``; kind is ``memory``, ``sqlite`` or ``file``."""
    if db is None or db in ("", "memory", MEMORY):
        return "memory", MEMORY

    if db.startswith("sqlite://"):
        path = db.removeprefix("sqlite://").removeprefix("/")
        if path in ("", MEMORY):
            return "memory", MEMORY
        return "sqlite", path

    if "://" in db:
        scheme = db.split("://", 1)[0]
        raise ConfigError(
            f"Unsupported database URL scheme {scheme!r}",
            context={"url_scheme": scheme},
        )

    return "file", db


def create_connection(
    db: str | None = None,
    *,
    init_schema: bool = False,
    data_dir: str | None = None,
    timeout: float = 30.0,
) -> tuple[Connection, ConnectionInfo]:
    """Open *db* and describe what was opened.

    Relative file paths land under *data_dir* when one is given. *timeout*
    is how long a writer waits on a locked database. With *init_schema*
    the counter tables are created if missing.
    """
    from tally.ops.sqlite_conn import SqliteConnection

    kind, target = parse_url(db)

    if kind == "memory":
        conn = SqliteConnection(MEMORY, timeout=timeout)
        info = ConnectionInfo(backend="sqlite", persistent=False, url=MEMORY)
    else:
        path = Path(target).expanduser()
        if data_dir and not path.is_absolute():
            path = Path(data_dir).expanduser() / path
        path.parent.mkdir(parents=True, exist_ok=True)
        resolved = str(path.resolve())
        conn = SqliteConnection(resolved, timeout=timeout)
        info = ConnectionInfo(backend="sqlite", persistent=True, url=target, resolved_path=resolved)

    if init_schema:
        _init_schema(conn, info)

    return conn, info


def _init_schema(conn: Connection, info: ConnectionInfo) -> None:
    from tally.core.schema_loader import apply_all_schemas

    if info.persistent:
        # WAL lets readers proceed while a submission holds the write lock
        conn.execute("PRAGMA journal_mode=WAL")
    applied = apply_all_schemas(conn)
    logger.debug("schema_initialized", path=info.resolved_path, files=applied)
