"""
Database operations.

Thin wrappers around ``tally.core.schema_loader`` for schema creation and
health checks.
"""

from __future__ import annotations

from tally.core.logging import get_logger
from tally.core.protocols import Connection
from tally.core.schema_loader import apply_all_schemas, table_exists
from tally.ops.context import OperationContext
from tally.ops.responses import DatabaseHealth, DatabaseInitResult
from tally.ops.result import OperationResult

logger = get_logger(__name__)

COUNTER_TABLES = ("tally_sites", "tally_counters")


def initialize_database(
    ctx: OperationContext,
    conn: Connection,
) -> OperationResult[DatabaseInitResult]:
    """Create the counter tables (idempotent)."""
    try:
        applied = apply_all_schemas(conn)
    except Exception as exc:
        logger.exception("op_failed", request_id=ctx.request_id, error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to create tables: {exc}")
    logger.info("database_initialized", request_id=ctx.request_id, files=applied)
    return OperationResult.ok(DatabaseInitResult(schema_files=applied, tables=list(COUNTER_TABLES)))


def check_database_health(
    ctx: OperationContext,
    conn: Connection,
) -> OperationResult[DatabaseHealth]:
    """Report whether the counter tables exist and are readable."""
    try:
        missing = [t for t in COUNTER_TABLES if not table_exists(conn, t)]
    except Exception as exc:
        logger.exception("op_failed", request_id=ctx.request_id, error=str(exc))
        return OperationResult.ok(DatabaseHealth(connected=False, missing_tables=list(COUNTER_TABLES)))
    return OperationResult.ok(DatabaseHealth(connected=True, missing_tables=missing))
