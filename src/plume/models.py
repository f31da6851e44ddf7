"""Data models for the plume API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class Page(BaseModel):
    """One page of a paginated ``find`` result.

    Returned by stores that delegate pagination to a database. ``limit`` is
    the effective page size after applying the configured default and
    maximum.
    """

    total: int = Field(..., description="Number of records matching the query.")
    limit: int = Field(..., description="Page size used for this result.")
    skip: int = Field(default=0, description="Number of records skipped.")
    data: list[dict[str, Any]] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error payload returned by the REST layer."""

    error: str
    error_type: str
    details: Any | None = None
