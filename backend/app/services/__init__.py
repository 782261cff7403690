"""Import pipeline services for the VOD ingest service."""

from app.services.batch import BatchCoordinator
from app.services.catalog import (
    CatalogError,
    DuplicateKeyError,
    LibraryStats,
    PersistenceError,
    VideoCatalog,
    VideoNotFoundError,
)
from app.services.collection_stats import CollectionStatsAggregator
from app.services.dedup import DedupDecision, Deduplicator
from app.services.importer import ImportExecutor, InvalidMetadataError
from app.services.job_store import ImportJob, JobFailure, JobFinalizedError, JobNotFoundError, JobStore
from app.services.job_tracker import JobTracker
from app.services.outcomes import (
    BatchResult,
    Failed,
    ImportOptions,
    ImportOutcome,
    Imported,
    Skipped,
)
from app.services.pipeline import VodPipeline
from app.services.subtitles import SubtitleError, SubtitleService

__all__ = [
    "BatchCoordinator",
    "BatchResult",
    "CatalogError",
    "CollectionStatsAggregator",
    "DedupDecision",
    "Deduplicator",
    "DuplicateKeyError",
    "Failed",
    "ImportExecutor",
    "ImportJob",
    "ImportOptions",
    "ImportOutcome",
    "Imported",
    "InvalidMetadataError",
    "JobFailure",
    "JobFinalizedError",
    "JobNotFoundError",
    "JobStore",
    "JobTracker",
    "LibraryStats",
    "PersistenceError",
    "Skipped",
    "SubtitleError",
    "SubtitleService",
    "VideoCatalog",
    "VideoNotFoundError",
    "VodPipeline",
]
