"""Database models for the VOD ingest service."""

from app.db.models.enums import ImportFailureReason, ImportJobStatus, SourceType
from app.db.models.import_job import ImportJobRecord
from app.db.models.video import Video

__all__ = [
    # Models
    "ImportJobRecord",
    "Video",
    # Enums
    "ImportFailureReason",
    "ImportJobStatus",
    "SourceType",
]
