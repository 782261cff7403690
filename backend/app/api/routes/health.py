"""Health check endpoint."""

from fastapi import APIRouter, Depends

from app.api.deps import get_pipeline
from app.core.config import settings
from app.schemas.health import HealthResponse
from app.services.pipeline import VodPipeline

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(pipeline: VodPipeline = Depends(get_pipeline)) -> HealthResponse:
    """Check application health.

    Returns:
        Health status, version, database reachability running job count and archive throttling.
    """
    connected = await pipeline.catalog.ping()
    return HealthResponse(
        status="ok" if connected else "degraded",
        version=settings.version,
        database="connected" if connected else "disconnected",
        active_jobs=pipeline.jobs.active_count,
        archive=pipeline.source.get_stats(),
    )
