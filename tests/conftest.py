"""
Shared pytest fixtures for tally tests.

This module provides:
- SQLite connections on a per-test temporary database file
- Both counter repository backends
- A merge engine over each backend
- FastAPI test clients for the sqlite and memory backends

Usage:
    Fixtures are auto-discovered by pytest::

        def test_something(engine, op_context):
            ...
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from tally.api.app import create_app
from tally.api.settings import TallyAPISettings
from tally.core.connection import create_connection
from tally.core.repositories import InMemoryCounterRepository, SqlCounterRepository
from tally.ops.context import OperationContext
from tally.ops.counters import MergeEngine


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Storage
# =============================================================================


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "tally.db"


@pytest.fixture
def sqlite_conn(db_path: Path) -> Generator[Any, None, None]:
    """File-backed SQLite connection with the counter schema applied."""
    conn, _info = create_connection(str(db_path), init_schema=True, timeout=10.0)
    yield conn
    conn.close()


@pytest.fixture
def sql_repo(sqlite_conn: Any) -> SqlCounterRepository:
    return SqlCounterRepository(sqlite_conn)


@pytest.fixture
def memory_repo() -> InMemoryCounterRepository:
    return InMemoryCounterRepository()


@pytest.fixture(params=["sqlite", "memory"])
def repository(request: pytest.FixtureRequest, sql_repo, memory_repo):
    """Each counter repository backend in turn."""
    return sql_repo if request.param == "sqlite" else memory_repo


@pytest.fixture
def engine(repository) -> MergeEngine:
    return MergeEngine(repository)


@pytest.fixture
def op_context() -> OperationContext:
    return OperationContext(request_id="test-request", caller="test")


# =============================================================================
# API
# =============================================================================


@pytest.fixture
def api_settings(tmp_path: Path) -> TallyAPISettings:
    return TallyAPISettings(
        storage_backend="sqlite",
        database_url=f"sqlite:///{tmp_path / 'api.db'}",
        data_dir=str(tmp_path),
        log_level="WARNING",
        log_json=False,
    )


@pytest.fixture
def client(api_settings: TallyAPISettings) -> Generator[TestClient, None, None]:
    """Test client over a fresh SQLite database (lifespan runs)."""
    with TestClient(create_app(settings=api_settings)) as c:
        yield c


@pytest.fixture
def memory_client() -> Generator[TestClient, None, None]:
    """Test client over the in-memory backend."""
    settings = TallyAPISettings(storage_backend="memory", log_level="WARNING", log_json=False)
    with TestClient(create_app(settings=settings)) as c:
        yield c
