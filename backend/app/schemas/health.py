"""Health check schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ArchiveThrottleStats(BaseModel):
    """Token bucket state of the Internet Archive client."""

    rpm_limit: int
    tokens_available: float
    requests_total: int
    throttled_count: int


class HealthResponse(BaseModel):
    """Service liveness, catalog reachability and background job load."""

    status: Literal["ok", "degraded"]
    version: str
    database: Literal["connected", "disconnected"]
    active_jobs: int = Field(0, ge=0, description="Collection imports currently running")
    archive: ArchiveThrottleStats | None = None
