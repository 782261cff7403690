"""Pydantic schemas for the VOD ingestion API.

The admin console speaks camelCase JSON; fields are declared in snake_case
and aliased on the way in and out.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from app.archive.collections import get_collection
from app.db.models.enums import ImportFailureReason, ImportJobStatus


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ==================== Archive items ====================


class ArchiveItemResponse(CamelModel):
    """An archive item as shown in search, browse and preview."""

    source_id: str
    title: str | None = None
    description: str | None = None
    year: int | None = None
    duration_seconds: int | None = None
    language: str | None = None
    downloads: int | None = None
    creator: str | None = None
    thumbnail_url: str | None = None
    video_url: str | None = None
    video_format: str | None = None
    file_size: int | None = None
    has_subtitles: bool = False
    subtitle_url: str | None = None
    subtitle_language: str | None = None
    tags: list[str] = []
    license_url: str | None = None


class PreviewResponse(ArchiveItemResponse):
    """Full item metadata plus its catalog status."""

    already_imported: bool = False
    existing_id: str | None = None


class ItemListResponse(CamelModel):
    """Search results."""

    items: list[ArchiveItemResponse]


class BrowseResponse(CamelModel):
    """One page of a collection."""

    items: list[ArchiveItemResponse]
    page: int
    pages: int
    total: int


# ==================== Collections ====================


class CollectionResponse(CamelModel):
    """A known archive collection."""

    key: str
    name: str
    icon: str
    description: str
    count: int | None = None

    @computed_field
    @property
    def id(self) -> str:
        # Older console builds select collections by id
        return self.key


class CollectionListResponse(CamelModel):
    collections: list[CollectionResponse]


class CollectionStatsResponse(CamelModel):
    stats: list[CollectionResponse]


# ==================== Catalog ====================


class VideoResponse(CamelModel):
    """A catalog entry."""

    id: str
    source_id: str
    title: str
    description: str | None = None
    category: str | None = None
    tags: list[str] = []
    year: int | None = None
    duration_seconds: int = 0
    language: str | None = None
    video_url: str
    thumbnail_url: str | None = None
    has_subtitles: bool = False
    subtitle_url: str | None = None
    subtitle_language: str | None = None
    subtitle_synced: bool = False
    is_active: bool = True
    created_at: datetime | None = None


class VideoEnvelope(CamelModel):
    video: VideoResponse


class CategoryCount(CamelModel):
    name: str
    count: int


class RecentImport(CamelModel):
    id: str
    title: str
    category: str | None = None
    has_subtitles: bool = False
    created_at: datetime | None = None


class LibraryStatsResponse(CamelModel):
    """Overview numbers for active catalog entries."""

    total: int
    with_subtitles: int
    without_subtitles: int
    categories: list[CategoryCount]
    recent_imports: list[RecentImport]


class MessageResponse(CamelModel):
    message: str


# ==================== Imports ====================


class ImportOptionsRequest(CamelModel):
    """Options shared by every import request."""

    skip_existing: bool = True
    sync_subtitles: bool = False


class SingleImportRequest(ImportOptionsRequest):
    identifier: str = Field(..., min_length=1, max_length=255)

    @field_validator("identifier")
    @classmethod
    def strip_identifier(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("identifier must not be blank")
        return value


class BatchImportRequest(ImportOptionsRequest):
    identifiers: list[str] = Field(..., min_length=1, max_length=50)

    @field_validator("identifiers")
    @classmethod
    def strip_identifiers(cls, value: list[str]) -> list[str]:
        stripped = [identifier.strip() for identifier in value]
        if any(not identifier for identifier in stripped):
            raise ValueError("identifiers must not be blank")
        return stripped


class CollectionImportRequest(ImportOptionsRequest):
    collection: str = Field(..., min_length=1, max_length=255)
    limit: int = Field(20, ge=1, le=1000)


class BatchImported(CamelModel):
    identifier: str
    video_id: str
    title: str


class BatchFailed(CamelModel):
    identifier: str
    reason: ImportFailureReason
    message: str


class BatchSkipped(CamelModel):
    identifier: str
    reason: str


class BatchImportResponse(CamelModel):
    """Per-item outcomes of a batch import."""

    success: list[BatchImported]
    failed: list[BatchFailed]
    skipped: list[BatchSkipped]
    message: str


class JobStartedResponse(CamelModel):
    job_id: str


# ==================== Jobs ====================


class JobFailureResponse(CamelModel):
    source_id: str
    reason: ImportFailureReason
    message: str


class ImportJobResponse(CamelModel):
    """Snapshot of a collection import job."""

    id: str
    collection_key: str
    status: ImportJobStatus
    progress_percent: int
    requested_limit: int
    items_processed: int
    imported_count: int
    skipped_count: int
    failed_count: int
    started_at: datetime
    finished_at: datetime | None = None
    error: str | None = None
    failures: list[JobFailureResponse] = []

    @computed_field
    @property
    def collection_name(self) -> str:
        """Display name of a known collection, else the raw key."""
        known = get_collection(self.collection_key)
        return known.name if known else self.collection_key


class JobListResponse(CamelModel):
    jobs: list[ImportJobResponse]
