"""Applies the counter schema shipped in ``tally/core/schema``.

Statements are ``CREATE ... IF NOT EXISTS``, so applying the schema to a
database that already has it changes nothing.
"""

from __future__ import annotations

from pathlib import Path

from tally.core.logging import get_logger
from tally.core.protocols import Connection

logger = get_logger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent / "schema"


def _split_sql(sql: str) -> list[str]:
    """Statements of a script, without ``--`` comment lines."""
    code = "\n".join(line for line in sql.splitlines() if not line.strip().startswith("--"))
    return [f"{stmt.strip()};" for stmt in code.split(";") if stmt.strip()]


def get_schema_files() -> list[Path]:
    """Schema files in apply order (``00_``, ``01_``, ...)."""
    return sorted(SCHEMA_DIR.glob("*.sql"))


def apply_all_schemas(conn: Connection) -> list[str]:
    """Apply every schema file on *conn* and commit; returns the file names."""
    applied = []
    for sql_file in get_schema_files():
        for statement in _split_sql(sql_file.read_text(encoding="utf-8")):
            conn.execute(statement)
        applied.append(sql_file.name)
        logger.debug("schema_applied", file=sql_file.name)
    conn.commit()
    return applied


def table_exists(conn: Connection, table: str) -> bool:
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?", (table,))
    return cursor.fetchone() is not None
