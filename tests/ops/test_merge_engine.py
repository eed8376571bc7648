"""Tests for the merge engine (tally.ops.counters)."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from tally.core.connection import create_connection
from tally.core.errors import ConflictError, StorageError
from tally.core.identity import ForwardedPosition, RemoteAddress
from tally.core.models.counters import CounterRecord
from tally.core.repositories import InMemoryCounterRepository, SqlCounterRepository
from tally.ops.context import OperationContext
from tally.ops.counters import STORAGE_FAILURE_MESSAGE, MergeEngine
from tally.ops.requests import SubmitCountersRequest
from tally.ops.responses import SubmitOutcome

IP_KEY = "__clientIp;;9(dot)9(dot)9(dot)9"
FROM_IP = RemoteAddress(forwarded_for="9.9.9.9")


def _submit(engine: MergeEngine, ctx: OperationContext, site, data, remote=FROM_IP):
    return engine.submit(ctx, SubmitCountersRequest(site=site, data=data, remote=remote))


class TestSubmit:
    def test_first_submission_creates(self, engine, op_context) -> None:
        result = _submit(engine, op_context, "blog", {"views": 1})
        assert result.success
        assert result.data.outcome is SubmitOutcome.CREATED
        assert result.data.created
        assert result.data.record.counters == {"views": 1, IP_KEY: 1}

    def test_second_submission_merges(self, engine, op_context) -> None:
        _submit(engine, op_context, "blog", {"a": 2})
        result = _submit(engine, op_context, "blog", {"a": 3})
        assert result.data.outcome is SubmitOutcome.UPDATED
        assert result.data.record.counters["a"] == 5

    def test_blog_scenario(self, engine, op_context) -> None:
        first = _submit(engine, op_context, "blog", {"views": 1})
        assert first.data.outcome is SubmitOutcome.CREATED
        assert first.data.record.counters == {"views": 1, IP_KEY: 1}

        second = _submit(engine, op_context, "blog", {"views": 2})
        assert second.data.outcome is SubmitOutcome.UPDATED
        assert second.data.record.counters == {"views": 3, IP_KEY: 2}

    def test_number_like_strings_accepted(self, engine, op_context) -> None:
        result = _submit(engine, op_context, "blog", {"views": "2", "time": " 1.5 "})
        assert result.data.record.counters["views"] == 2
        assert result.data.record.counters["time"] == 1.5

    def test_site_case_insensitive(self, engine, op_context) -> None:
        _submit(engine, op_context, "Blog", {"a": 1})
        result = _submit(engine, op_context, " BLOG ", {"a": 1})
        assert result.data.outcome is SubmitOutcome.UPDATED
        assert result.data.record.site == "blog"

    def test_no_address_no_identity_key(self, engine, op_context) -> None:
        result = _submit(engine, op_context, "blog", {"a": 1}, remote=RemoteAddress())
        assert result.data.record.counters == {"a": 1}

    def test_forwarded_position_last(self, repository, op_context) -> None:
        engine = MergeEngine(repository, forwarded_position=ForwardedPosition.LAST)
        remote = RemoteAddress(forwarded_for="1.1.1.1, 2.2.2.2")
        result = _submit(engine, op_context, "blog", {"a": 1}, remote=remote)
        assert "__clientIp;;2(dot)2(dot)2(dot)2" in result.data.record.counters


class TestValidationFailures:
    @pytest.mark.parametrize(
        "data",
        [
            {"__clientIp;;1(dot)1(dot)1(dot)1": 100},
            {"views": 1, "clicks": 0},
            {"views": -2},
            {"views": "lots"},
            {},
            None,
        ],
    )
    def test_rejected_without_touching_storage(self, engine, op_context, data) -> None:
        result = _submit(engine, op_context, "blog", data)
        assert not result.success
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.message == "Invalid data!"
        assert result.error.details["issues"]
        assert engine.repository.find("blog") is None

    def test_missing_site(self, engine, op_context) -> None:
        result = _submit(engine, op_context, None, {"views": 1})
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.details["issues"][0]["field"] == "site"


class TestGetAndSites:
    def test_get_unknown_site(self, engine, op_context) -> None:
        result = engine.get(op_context, "nowhere")
        assert not result.success
        assert result.error.code == "NOT_FOUND"

    def test_get_existing(self, engine, op_context) -> None:
        _submit(engine, op_context, "blog", {"views": 1})
        result = engine.get(op_context, "BLOG")
        assert result.success
        assert result.data.counters["views"] == 1

    def test_sites_listed_once(self, engine, op_context) -> None:
        for site in ["blog", "news", "blog", "Blog"]:
            _submit(engine, op_context, site, {"views": 1})
        result = engine.sites(op_context)
        assert result.data == ["blog", "news"]


class _FailingRepository(InMemoryCounterRepository):
    """Memory repository whose chosen operation raises StorageError."""

    def __init__(self, failing: str) -> None:
        super().__init__()
        self.failing = failing

    def _maybe_fail(self, action: str) -> None:
        if action == self.failing:
            raise StorageError(f"connection refused at 10.0.0.5 during {action}")

    def find(self, site):
        self._maybe_fail("find")
        return super().find(site)

    def create(self, site, initial_counters):
        self._maybe_fail("create")
        return super().create(site, initial_counters)

    def merge(self, record, deltas):
        self._maybe_fail("merge")
        return super().merge(record, deltas)

    def list_sites(self):
        self._maybe_fail("list_sites")
        return super().list_sites()


class TestStorageFailures:
    @pytest.mark.parametrize("failing", ["find", "create"])
    def test_submit_storage_failure_is_generic(self, op_context, failing) -> None:
        engine = MergeEngine(_FailingRepository(failing))
        result = _submit(engine, op_context, "blog", {"views": 1})
        assert result.error.code == "STORAGE"
        assert result.error.message == STORAGE_FAILURE_MESSAGE
        assert "10.0.0.5" not in repr(result.error)

    def test_merge_failure(self, op_context) -> None:
        repo = _FailingRepository("merge")
        repo.create("blog", {"views": 1})
        result = _submit(MergeEngine(repo), op_context, "blog", {"views": 1})
        assert result.error.code == "STORAGE"
        assert repo.find("blog").counters == {"views": 1}

    def test_get_and_sites_storage_failure(self, op_context) -> None:
        assert MergeEngine(_FailingRepository("find")).get(op_context, "blog").error.code == "STORAGE"
        assert MergeEngine(_FailingRepository("list_sites")).sites(op_context).error.code == "STORAGE"

    def test_unexpected_exception_is_internal(self, op_context) -> None:
        class Broken(InMemoryCounterRepository):
            def find(self, site):
                raise RuntimeError("bug")

        result = _submit(MergeEngine(Broken()), op_context, "blog", {"views": 1})
        assert result.error.code == "INTERNAL"


class _LosingCreateRace(InMemoryCounterRepository):
    """Simulates another writer creating the site between find and create."""

    def create(self, site, initial_counters):
        super().create(site, {"views": 10})
        raise ConflictError(f"Site {site!r} already exists")


class TestCreateConflict:
    def test_conflict_falls_back_to_merge(self, op_context) -> None:
        engine = MergeEngine(_LosingCreateRace())
        result = _submit(engine, op_context, "blog", {"views": 1})
        assert result.success
        assert result.data.outcome is SubmitOutcome.UPDATED
        assert result.data.record.counters == {"views": 11, IP_KEY: 1}


@pytest.mark.slow
class TestConcurrentSubmissions:
    N = 30

    def test_sqlite_one_record_with_all_hits(self, db_path: Path, sqlite_conn) -> None:
        def submit(i: int):
            conn, _info = create_connection(str(db_path), timeout=30.0)
            try:
                engine = MergeEngine(SqlCounterRepository(conn))
                ctx = OperationContext(request_id=f"req-{i}")
                return _submit(engine, ctx, "blog", {"hits": 1})
            finally:
                conn.close()

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(submit, range(self.N)))

        assert all(r.success for r in results)
        assert sum(r.data.created for r in results) == 1
        record = SqlCounterRepository(sqlite_conn).find("blog")
        assert record.counters["hits"] == self.N
        assert record.counters[IP_KEY] == self.N
        assert SqlCounterRepository(sqlite_conn).list_sites() == ["blog"]

    def test_memory_one_record_with_all_hits(self) -> None:
        engine = MergeEngine(InMemoryCounterRepository())

        def submit(i: int):
            return _submit(engine, OperationContext(request_id=f"req-{i}"), "blog", {"hits": 1})

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(submit, range(self.N)))

        assert sum(r.data.created for r in results) == 1
        assert engine.repository.find("blog").counters["hits"] == self.N


def test_record_round_trip_shape() -> None:
    record = CounterRecord(site="blog", counters={"a": 1}, created_at="t0", updated_at="t1")
    assert record.to_dict() == {"site": "blog", "data": {"a": 1}, "createdAt": "t0", "updatedAt": "t1"}
