"""
Items router - read and submit per-site counter records.

Endpoints:
    GET  /items/{site}   Full record for a site (404 if none)
    POST /items          Submit deltas; 201 when the record is created,
                         200 when merged into an existing one, 422 when
                         the submission is rejected

Tags:
    tally, api, items, counters

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Request
from fastapi.responses import JSONResponse

from tally.api.deps import Engine, OpContext
from tally.api.schemas.common import ProblemDetail
from tally.api.schemas.counters import CounterRecordSchema, SubmitItemBody
from tally.api.utils import _handle_error, remote_address
from tally.ops.requests import SubmitCountersRequest

router = APIRouter(prefix="/items")

_ERROR_RESPONSES = {
    404: {"model": ProblemDetail},
    422: {"model": ProblemDetail},
    500: {"model": ProblemDetail},
}


@router.get(
    "/{site}",
    response_model=CounterRecordSchema,
    response_model_by_alias=True,
    responses=_ERROR_RESPONSES,
)
def get_item(
    request: Request,
    ctx: OpContext,
    engine: Engine,
    site: str = Path(..., description="Site identifier (case-insensitive)"),
):
    """Return the accumulated counters for *site*."""
    result = engine.get(ctx, site)
    if not result.success:
        return _handle_error(result, request)
    return result.data.to_dict()


@router.post(
    "",
    response_model=CounterRecordSchema,
    response_model_by_alias=True,
    responses={201: {"model": CounterRecordSchema}, **_ERROR_RESPONSES},
)
def submit_item(
    request: Request,
    ctx: OpContext,
    engine: Engine,
    body: SubmitItemBody,
):
    """Add the submitted deltas to the site's record.

    Every accepted submission also bumps the ``__clientIp;;<address>`` key
    for the calling client by one.
    """
    result = engine.submit(
        ctx,
        SubmitCountersRequest(
            site=body.site,
            data=body.data,
            remote=remote_address(request),
        ),
    )
    if not result.success:
        return _handle_error(result, request)
    return JSONResponse(
        status_code=201 if result.data.created else 200,
        content=result.data.record.to_dict(),
    )
