"""VOD ingestion API endpoints."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import FileResponse

from app.api.deps import get_pipeline, require_admin
from app.archive import (
    ArchiveError,
    CollectionNotFoundError,
    ItemNotFoundError,
)
from app.core.config import settings
from app.core.logging import get_logger
from app.db.models import ImportFailureReason
from app.schemas.vod import (
    ArchiveItemResponse,
    BatchFailed,
    BatchImported,
    BatchImportRequest,
    BatchImportResponse,
    BatchSkipped,
    BrowseResponse,
    CategoryCount,
    CollectionImportRequest,
    CollectionListResponse,
    CollectionResponse,
    CollectionStatsResponse,
    ImportJobResponse,
    ItemListResponse,
    JobListResponse,
    JobStartedResponse,
    LibraryStatsResponse,
    MessageResponse,
    PreviewResponse,
    RecentImport,
    SingleImportRequest,
    VideoEnvelope,
    VideoResponse,
)
from app.services.catalog import PersistenceError, VideoNotFoundError
from app.services.job_store import JobNotFoundError
from app.services.outcomes import Failed, ImportOptions, Skipped
from app.services.pipeline import VodPipeline

logger = get_logger(__name__)

router = APIRouter(prefix="/vod", tags=["vod"], dependencies=[Depends(require_admin)])

# HTTP status for a failed single import
FAILURE_STATUS = {
    ImportFailureReason.SOURCE_UNAVAILABLE: status.HTTP_502_BAD_GATEWAY,
    ImportFailureReason.ITEM_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ImportFailureReason.INVALID_METADATA: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ImportFailureReason.DUPLICATE_KEY: status.HTTP_409_CONFLICT,
    ImportFailureReason.PERSISTENCE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ImportFailureReason.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _source_error(e: ArchiveError) -> HTTPException:
    """Translate an archive error raised while reading from the source."""
    if isinstance(e, (ItemNotFoundError, CollectionNotFoundError)):
        return HTTPException(status_code=404, detail=e.message)
    return HTTPException(status_code=502, detail=e.message)


# ========== Library ==========


@router.get("/stats", response_model=LibraryStatsResponse)
async def get_library_stats(
    pipeline: VodPipeline = Depends(get_pipeline),
) -> LibraryStatsResponse:
    """Get totals, category breakdown and the latest imports of active videos."""
    try:
        stats = await pipeline.catalog.library_stats()
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return LibraryStatsResponse(
        total=stats.total,
        with_subtitles=stats.with_subtitles,
        without_subtitles=stats.without_subtitles,
        categories=[CategoryCount(name=name, count=count) for name, count in stats.categories],
        recent_imports=[RecentImport.model_validate(video) for video in stats.recent_imports],
    )


# ========== Collections ==========


@router.get("/collections", response_model=CollectionListResponse)
async def list_collections(
    pipeline: VodPipeline = Depends(get_pipeline),
) -> CollectionListResponse:
    """List the archive collections offered for import."""
    return CollectionListResponse(
        collections=[
            CollectionResponse.model_validate(collection)
            for collection in pipeline.collection_stats.list_collections()
        ]
    )


@router.get("/collections/stats", response_model=CollectionStatsResponse)
async def get_collection_stats(
    pipeline: VodPipeline = Depends(get_pipeline),
) -> CollectionStatsResponse:
    """List collections with approximate item counts.

    A collection whose count could not be fetched has ``count`` null.
    """
    collections = await pipeline.collection_stats.get_collection_stats()
    return CollectionStatsResponse(
        stats=[CollectionResponse.model_validate(collection) for collection in collections]
    )


@router.get("/collections/{collection_key}/browse", response_model=BrowseResponse)
async def browse_collection(
    collection_key: str,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(50, ge=1, le=100, description="Items per page"),
    pipeline: VodPipeline = Depends(get_pipeline),
) -> BrowseResponse:
    """Browse one page of a collection, most downloaded first."""
    try:
        listing = await pipeline.source.list_collection(collection_key, page, limit)
    except ArchiveError as e:
        raise _source_error(e)

    return BrowseResponse(
        items=[ArchiveItemResponse.model_validate(item) for item in listing.items],
        page=listing.page,
        pages=listing.pages,
        total=listing.total,
    )


@router.get("/search", response_model=ItemListResponse)
async def search_archive(
    q: str = Query(..., min_length=1, description="Search terms"),
    limit: int = Query(50, ge=1, le=100, description="Maximum results"),
    page: int = Query(1, ge=1, description="Page number"),
    collection: str | None = Query(None, description="Restrict to one collection"),
    pipeline: VodPipeline = Depends(get_pipeline),
) -> ItemListResponse:
    """Search archive movies by title or description."""
    try:
        items = await pipeline.source.search(q, limit=limit, page=page, collection=collection)
    except ArchiveError as e:
        raise _source_error(e)

    return ItemListResponse(items=[ArchiveItemResponse.model_validate(item) for item in items])


@router.get("/preview/{identifier}", response_model=PreviewResponse)
async def preview_item(
    identifier: str,
    pipeline: VodPipeline = Depends(get_pipeline),
) -> PreviewResponse:
    """Get full item metadata and whether it is already in the catalog."""
    try:
        item = await pipeline.source.fetch_item(identifier)
    except ArchiveError as e:
        raise _source_error(e)

    try:
        existing = await pipeline.catalog.get_by_source_id(item.source_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    preview = PreviewResponse.model_validate(item)
    preview.already_imported = existing is not None
    preview.existing_id = existing.id if existing else None
    return preview


# ========== Imports ==========


@router.post("/import/single", response_model=VideoEnvelope, status_code=201)
async def import_single(
    request: SingleImportRequest,
    pipeline: VodPipeline = Depends(get_pipeline),
) -> VideoEnvelope:
    """Import one archive item.

    Returns 409 when the item is already in the catalog.
    """
    options = ImportOptions(
        skip_existing=request.skip_existing,
        sync_subtitles=request.sync_subtitles,
    )
    outcome = await pipeline.executor.import_one(request.identifier, options)

    if isinstance(outcome, Skipped):
        raise HTTPException(
            status_code=409,
            detail={"reason": "ALREADY_IMPORTED", "message": f"{outcome.source_id} is {outcome.reason}"},
        )
    if isinstance(outcome, Failed):
        raise HTTPException(
            status_code=FAILURE_STATUS[outcome.reason],
            detail={"reason": outcome.reason.value, "message": outcome.message},
        )

    return VideoEnvelope(video=VideoResponse.model_validate(outcome.video))


@router.post("/import/batch", response_model=BatchImportResponse)
async def import_batch(
    request: BatchImportRequest,
    pipeline: VodPipeline = Depends(get_pipeline),
) -> BatchImportResponse:
    """Import up to 50 archive items concurrently.

    Every identifier appears in exactly one of the result lists.
    """
    options = ImportOptions(
        skip_existing=request.skip_existing,
        sync_subtitles=request.sync_subtitles,
    )
    result = await pipeline.coordinator.import_batch(request.identifiers, options)

    return BatchImportResponse(
        success=[
            BatchImported(
                identifier=outcome.source_id,
                video_id=outcome.video.id,
                title=outcome.video.title,
            )
            for outcome in result.imported
        ],
        failed=[
            BatchFailed(
                identifier=outcome.source_id,
                reason=outcome.reason,
                message=outcome.message,
            )
            for outcome in result.failed
        ],
        skipped=[
            BatchSkipped(identifier=outcome.source_id, reason=outcome.reason)
            for outcome in result.skipped
        ],
        message=f"Imported {len(result.imported)} of {result.total} items",
    )


@router.post("/import/collection", response_model=JobStartedResponse, status_code=202)
async def import_collection(
    request: CollectionImportRequest,
    pipeline: VodPipeline = Depends(get_pipeline),
) -> JobStartedResponse:
    """Start a background import of a collection.

    Poll ``/import/jobs/{jobId}`` for progress.
    """
    if request.limit > settings.max_collection_limit:
        raise HTTPException(
            status_code=422,
            detail=f"limit must be at most {settings.max_collection_limit}",
        )

    options = ImportOptions(
        skip_existing=request.skip_existing,
        sync_subtitles=request.sync_subtitles,
    )
    job_id = await pipeline.jobs.import_from_collection(
        request.collection.strip(), request.limit, options
    )
    return JobStartedResponse(job_id=job_id)


@router.get("/import/jobs", response_model=JobListResponse)
async def list_import_jobs(
    pipeline: VodPipeline = Depends(get_pipeline),
) -> JobListResponse:
    """List collection import jobs, newest first."""
    jobs = await pipeline.jobs.list_jobs()
    return JobListResponse(jobs=[ImportJobResponse.model_validate(job) for job in jobs])


@router.get("/import/jobs/{job_id}", response_model=ImportJobResponse)
async def get_import_job(
    job_id: str,
    pipeline: VodPipeline = Depends(get_pipeline),
) -> ImportJobResponse:
    """Get the progress of a collection import job."""
    try:
        job = await pipeline.jobs.find_job(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Import job not found")

    return ImportJobResponse.model_validate(job)


# ========== Catalog management ==========


@router.delete("/videos/{video_id}", response_model=MessageResponse)
async def delete_video(
    video_id: str,
    pipeline: VodPipeline = Depends(get_pipeline),
) -> MessageResponse:
    """Remove a video from the catalog."""
    try:
        await pipeline.catalog.delete(video_id)
    except VideoNotFoundError:
        raise HTTPException(status_code=404, detail="Video not found")

    return MessageResponse(message="Video deleted")


@router.put("/videos/{video_id}/toggle", response_model=VideoEnvelope)
async def toggle_video(
    video_id: str,
    pipeline: VodPipeline = Depends(get_pipeline),
) -> VideoEnvelope:
    """Show or hide a video in the public catalog."""
    try:
        video = await pipeline.catalog.toggle_active(video_id)
    except VideoNotFoundError:
        raise HTTPException(status_code=404, detail="Video not found")

    return VideoEnvelope(video=VideoResponse.model_validate(video))


@router.get("/videos/{video_id}/subtitle")
async def get_video_subtitle(
    video_id: str,
    pipeline: VodPipeline = Depends(get_pipeline),
) -> FileResponse:
    """Download the locally stored subtitle track of a video."""
    try:
        video = await pipeline.catalog.get(video_id)
    except VideoNotFoundError:
        raise HTTPException(status_code=404, detail="Video not found")

    if not video.subtitle_path:
        raise HTTPException(status_code=404, detail="Subtitle has not been synced")

    path = Path(video.subtitle_path)
    if not path.is_file():
        logger.warning("subtitle_file_missing", video_id=video_id, path=str(path))
        raise HTTPException(status_code=404, detail="Subtitle file is missing")

    media_type = "text/vtt" if path.suffix == ".vtt" else "application/x-subrip"
    return FileResponse(path, media_type=media_type, filename=path.name)
