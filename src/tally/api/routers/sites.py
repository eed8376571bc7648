"""
Sites router - lists every site that has a counter record.

Endpoints:
    GET /sites   Distinct site identifiers
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from tally.api.deps import Engine, OpContext
from tally.api.utils import _handle_error

router = APIRouter(prefix="/sites")


@router.get("", response_model=list[str])
def list_sites(request: Request, ctx: OpContext, engine: Engine):
    """Distinct site identifiers known to the store."""
    result = engine.sites(ctx)
    if not result.success:
        return _handle_error(result, request)
    return result.data
