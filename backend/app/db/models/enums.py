"""Enum types for database models and pipeline results."""

from __future__ import annotations

import enum


class ImportJobStatus(str, enum.Enum):
    """Lifecycle of a collection import job."""

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        """Whether the job can no longer change."""
        return self in (ImportJobStatus.COMPLETED, ImportJobStatus.FAILED)


class ImportFailureReason(str, enum.Enum):
    """Why a single item failed to import."""

    SOURCE_UNAVAILABLE = "SOURCE_UNAVAILABLE"  # Archive unreachable / 5xx after retries
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"  # No such identifier, or withdrawn
    INVALID_METADATA = "INVALID_METADATA"  # Missing title or playable video file
    DUPLICATE_KEY = "DUPLICATE_KEY"  # Lost the unique source_id race
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"  # Catalog write failed otherwise
    INTERNAL_ERROR = "INTERNAL_ERROR"  # Unexpected exception escaped the item


class SourceType(str, enum.Enum):
    """Where a catalog entry was ingested from."""

    ARCHIVE = "ARCHIVE"
