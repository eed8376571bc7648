"""
Counter operations - the merge engine.

Orchestrates one submission end to end::

    validate ──► fold client identity ──► find(site)
                                            │
                       ┌────────────────────┴───────────────────┐
                       ▼ absent                                 ▼ present
                    create ──(ConflictError)──► find ──► merge  merge
                       │                                  │       │
                   "created"                          "updated" "updated"

Every method returns an :class:`~tally.ops.result.OperationResult` and never
raises for domain errors. Storage failures are logged with full detail and
reported to the caller with a generic message.

Tags:
    counters, merge, operations, tally
"""

from __future__ import annotations

from tally.core.deltas import validate_submission
from tally.core.errors import (
    ConflictError,
    NotFoundError,
    StorageError,
    TallyError,
    ValidationError,
)
from tally.core.identity import ForwardedPosition, with_identity
from tally.core.logging import get_logger
from tally.core.models.counters import CounterRecord, normalize_site
from tally.core.repositories.counters import CounterRepository
from tally.ops.context import OperationContext
from tally.ops.requests import SubmitCountersRequest
from tally.ops.responses import SubmitOutcome, SubmitResult
from tally.ops.result import OperationResult, start_timer

logger = get_logger(__name__)

STORAGE_FAILURE_MESSAGE = "An internal storage error occurred."


class MergeEngine:
    """Validates submissions and merges them into per-site records."""

    def __init__(
        self,
        repository: CounterRepository,
        *,
        forwarded_position: ForwardedPosition | str = ForwardedPosition.FIRST,
    ) -> None:
        self.repository = repository
        self.forwarded_position = ForwardedPosition(forwarded_position)

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def submit(
        self,
        ctx: OperationContext,
        request: SubmitCountersRequest,
    ) -> OperationResult[SubmitResult]:
        """Validate *request* and add its deltas into the site's record."""
        timer = start_timer()

        try:
            submission = validate_submission(request.site, request.data)
        except ValidationError as exc:
            logger.info(
                "submission_rejected",
                request_id=ctx.request_id,
                issues=len(exc.issues),
                elapsed_ms=timer.elapsed_ms,
            )
            return self._fail(exc, ctx=ctx)

        deltas = with_identity(submission.deltas, request.remote, self.forwarded_position)
        site = submission.site

        try:
            existing = self.repository.find(site)
            if existing is None:
                try:
                    record = self.repository.create(site, deltas)
                except ConflictError:
                    logger.info("create_conflict_merging", request_id=ctx.request_id, site=site)
                    record = self._merge_existing(site, deltas)
                    outcome = SubmitOutcome.UPDATED
                else:
                    outcome = SubmitOutcome.CREATED
            else:
                record = self.repository.merge(existing, deltas)
                outcome = SubmitOutcome.UPDATED
        except TallyError as exc:
            return self._fail(exc, ctx=ctx, site=site)
        except Exception as exc:
            logger.exception("op_failed", request_id=ctx.request_id, site=site, error=str(exc))
            return OperationResult.fail("INTERNAL", "An unexpected error occurred.")

        event = (
            "counter_record_created"
            if outcome is SubmitOutcome.CREATED
            else "counter_record_merged"
        )
        logger.info(
            event,
            request_id=ctx.request_id,
            caller=ctx.caller,
            site=site,
            keys=len(deltas),
            elapsed_ms=timer.elapsed_ms,
        )
        return OperationResult.ok(SubmitResult(outcome=outcome, record=record))

    def get(self, ctx: OperationContext, site: str) -> OperationResult[CounterRecord]:
        """Return the record for *site* or ``NOT_FOUND``."""
        site = normalize_site(site or "")
        try:
            record = self.repository.find(site)
        except TallyError as exc:
            return self._fail(exc, ctx=ctx, site=site)

        if record is None:
            return OperationResult.fail(
                "NOT_FOUND",
                "Could not find the item!",
                details={"site": site},
            )
        return OperationResult.ok(record)

    def sites(self, ctx: OperationContext) -> OperationResult[list[str]]:
        """Return every site that has a record."""
        try:
            sites = self.repository.list_sites()
        except TallyError as exc:
            return self._fail(exc, ctx=ctx)
        return OperationResult.ok(sites)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _merge_existing(self, site: str, deltas: dict) -> CounterRecord:
        existing = self.repository.find(site)
        if existing is None:
            raise NotFoundError(f"Site {site!r} vanished after create conflict", context={"site": site})
        return self.repository.merge(existing, deltas)

    def _fail(
        self,
        exc: TallyError,
        *,
        ctx: OperationContext,
        site: str | None = None,
    ) -> OperationResult:
        if isinstance(exc, ValidationError):
            return OperationResult.fail(
                "VALIDATION_FAILED",
                exc.message,
                details={"issues": [issue.to_dict() for issue in exc.issues]},
            )
        if isinstance(exc, NotFoundError):
            return OperationResult.fail(
                "NOT_FOUND",
                exc.message,
                details={"site": site} if site else None,
            )
        if isinstance(exc, StorageError):
            logger.error("storage_failed", request_id=ctx.request_id, site=site, **exc.to_dict())
            return OperationResult.fail("STORAGE", STORAGE_FAILURE_MESSAGE)
        logger.error("op_failed", request_id=ctx.request_id, site=site, **exc.to_dict())
        return OperationResult.fail(exc.category.value, exc.message)


__all__ = ["MergeEngine", "STORAGE_FAILURE_MESSAGE"]
