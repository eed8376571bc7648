"""
Counter schemas - request bodies and record representations.

``SubmitItemBody`` accepts any JSON for ``site`` and ``data`` so that the
merge engine, not pydantic, decides what is valid; every transport then
reports the same rejection codes.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SubmitItemBody(BaseModel):
    """Request body for ``POST /items``."""

    site: Any = Field(default=None, description="Site identifier (case-insensitive)")
    data: Any = Field(default=None, description="Counter key → positive number-like delta")


class CounterRecordSchema(BaseModel):
    """A site's accumulated counters."""

    model_config = ConfigDict(populate_by_name=True)

    site: str
    data: dict[str, int | float] = Field(default_factory=dict)
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")
