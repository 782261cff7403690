"""Shared request dependencies."""

from __future__ import annotations

import secrets

from fastapi import Header, HTTPException, Request

from app.core.config import settings
from app.services.pipeline import VodPipeline


def get_pipeline(request: Request) -> VodPipeline:
    """Get the pipeline built during application startup."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Import pipeline is not ready")
    return pipeline


async def require_admin(x_admin_key: str | None = Header(None)) -> None:
    """Check the shared admin key when one is configured."""
    expected = settings.admin_api_key
    if not expected:
        return
    if x_admin_key is None or not secrets.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=401, detail="Invalid or missing admin key")
