"""
FastAPI dependency injection - shared singletons and per-request factories.

Usage in routers::

    from tally.api.deps import Engine, OpContext

    @router.get("/sites")
    def list_sites(ctx: OpContext, engine: Engine):
        ...

Settings are created once per process; the SQL connection, repository and
merge engine are built per request. The in-memory backend keeps one
repository on ``app.state`` so every request sees the same store.

Tags:
    tally, api, dependency-injection, OpContext

Doc-Types:
    api-reference
"""

from __future__ import annotations

import uuid
from collections.abc import Generator
from functools import lru_cache
from typing import Annotated, Any

from fastapi import Depends, Request

from tally.api.settings import TallyAPISettings
from tally.core.connection import create_connection
from tally.core.repositories import CounterRepository, SqlCounterRepository
from tally.ops.context import OperationContext
from tally.ops.counters import MergeEngine

# ── Settings (singleton) ─────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_settings() -> TallyAPISettings:
    """Cached settings - loaded once per process."""
    return TallyAPISettings()


# ── Database connection (per-request) ────────────────────────────────────


def get_connection(
    settings: Annotated[TallyAPISettings, Depends(get_settings)],
) -> Generator[Any, None, None]:
    """Yield a SQLite connection for the request lifespan.

    Yields ``None`` when the memory backend is configured.
    """
    if settings.storage_backend == "memory":
        yield None
        return

    conn, _info = create_connection(
        settings.database_url,
        data_dir=settings.data_dir,
        timeout=settings.sqlite_timeout_s,
    )
    try:
        yield conn
    finally:
        conn.close()


# ── Repository / engine (per-request) ────────────────────────────────────


def get_repository(
    request: Request,
    conn: Annotated[Any, Depends(get_connection)],
) -> CounterRepository:
    """Counter repository for the configured backend."""
    if conn is None:
        return request.app.state.memory_repository
    return SqlCounterRepository(conn)


def get_merge_engine(
    repository: Annotated[CounterRepository, Depends(get_repository)],
    settings: Annotated[TallyAPISettings, Depends(get_settings)],
) -> MergeEngine:
    return MergeEngine(repository, forwarded_position=settings.forwarded_for_position)


# ── Operation context (per-request) ──────────────────────────────────────


def get_operation_context(request: Request) -> OperationContext:
    """Build an :class:`OperationContext` from the current request."""
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    return OperationContext(request_id=request_id, caller="api")


# ── Convenience type aliases ─────────────────────────────────────────────

Engine = Annotated[MergeEngine, Depends(get_merge_engine)]
OpContext = Annotated[OperationContext, Depends(get_operation_context)]
