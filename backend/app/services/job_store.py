"""In-memory store for collection import jobs.

Jobs live as immutable snapshots behind a lock: a writer swaps in a new
snapshot, readers only ever see a complete one. Every change is mirrored to
the ``import_jobs`` table so the history survives a restart.
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.logging import get_logger
from app.db.base import utcnow
from app.db.models import ImportFailureReason, ImportJobRecord, ImportJobStatus

logger = get_logger(__name__)

INTERRUPTED_MESSAGE = "Interrupted by service restart"


class JobNotFoundError(Exception):
    """Raised when a job id is unknown."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Import job not found: {job_id}")


class JobFinalizedError(Exception):
    """Raised when writing to a job that already completed or failed."""

    def __init__(self, job_id: str, status: ImportJobStatus):
        self.job_id = job_id
        self.status = status
        super().__init__(f"Import job {job_id} is already {status.value}")


@dataclass(frozen=True)
class JobFailure:
    """Why one item of a job failed."""

    source_id: str
    reason: ImportFailureReason
    message: str


@dataclass(frozen=True)
class ImportJob:
    """Snapshot of a collection import job."""

    id: str
    collection_key: str
    requested_limit: int
    started_at: datetime
    status: ImportJobStatus = ImportJobStatus.QUEUED
    progress_percent: int = 0
    items_processed: int = 0
    imported_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    finished_at: datetime | None = None
    error: str | None = None
    failures: tuple[JobFailure, ...] = field(default_factory=tuple)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def job_from_record(record: ImportJobRecord) -> ImportJob:
    """Rebuild a job snapshot from its database row."""
    failures = tuple(
        JobFailure(
            source_id=entry.get("source_id", ""),
            reason=ImportFailureReason(entry.get("reason", ImportFailureReason.INTERNAL_ERROR)),
            message=entry.get("message", ""),
        )
        for entry in (record.failures or [])
    )
    return ImportJob(
        id=record.id,
        collection_key=record.collection_key,
        requested_limit=record.requested_limit,
        started_at=_aware(record.started_at),
        status=record.status,
        progress_percent=record.progress_percent or 0,
        items_processed=record.items_processed or 0,
        imported_count=record.imported_count or 0,
        skipped_count=record.skipped_count or 0,
        failed_count=record.failed_count or 0,
        finished_at=_aware(record.finished_at),
        error=record.error,
        failures=failures,
    )


def _record_values(job: ImportJob) -> dict[str, Any]:
    return {
        "collection_key": job.collection_key,
        "status": job.status,
        "progress_percent": job.progress_percent,
        "requested_limit": job.requested_limit,
        "items_processed": job.items_processed,
        "imported_count": job.imported_count,
        "skipped_count": job.skipped_count,
        "failed_count": job.failed_count,
        "error": job.error,
        "failures": [
            {**asdict(failure), "reason": failure.reason.value} for failure in job.failures
        ],
        "started_at": job.started_at,
        "finished_at": job.finished_at,
    }


class JobStore:
    """Owns every import job of this process."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession] | None = None):
        """Initialize the store.

        Args:
            session_maker: Session factory for the history mirror. Without one
                jobs are kept in memory only.
        """
        self._jobs: dict[str, ImportJob] = {}
        self._lock = asyncio.Lock()
        self._session_maker = session_maker

    async def create(self, job: ImportJob) -> ImportJob:
        async with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"Import job {job.id} already exists")
            self._jobs[job.id] = job
        await self._mirror(job)
        return job

    async def update(self, job_id: str, **changes: Any) -> ImportJob:
        """Replace a job snapshot with an updated copy.

        Progress never moves backwards and a finished job never changes.

        Raises:
            JobNotFoundError: Unknown job id.
            JobFinalizedError: The job already reached COMPLETED or FAILED.
        """
        async with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                raise JobNotFoundError(job_id)
            if current.status.is_terminal:
                raise JobFinalizedError(job_id, current.status)

            if "progress_percent" in changes:
                changes["progress_percent"] = max(
                    current.progress_percent, min(100, changes["progress_percent"])
                )
            if "failures" in changes:
                changes["failures"] = tuple(changes["failures"])

            updated = replace(current, **changes)
            self._jobs[job_id] = updated

        await self._mirror(updated)
        return updated

    def get(self, job_id: str) -> ImportJob | None:
        """Get the live snapshot of a job of this process."""
        return self._jobs.get(job_id)

    def list_live(self) -> list[ImportJob]:
        """List live jobs of this process, newest first."""
        return sorted(self._jobs.values(), key=lambda job: job.started_at, reverse=True)

    # ========== History ==========

    async def get_history(self, job_id: str) -> ImportJob | None:
        """Load a job from the history table."""
        if self._session_maker is None:
            return None
        try:
            async with self._session_maker() as db:
                record = await db.get(ImportJobRecord, job_id)
        except SQLAlchemyError as e:
            logger.warning("job_history_unavailable", job_id=job_id, error=str(e))
            return None
        return job_from_record(record) if record else None

    async def list_history(self, limit: int = 100) -> list[ImportJob]:
        """Load the most recent jobs from the history table."""
        if self._session_maker is None:
            return []
        try:
            async with self._session_maker() as db:
                result = await db.execute(
                    select(ImportJobRecord)
                    .order_by(ImportJobRecord.started_at.desc())
                    .limit(limit)
                )
                records = result.scalars().all()
        except SQLAlchemyError as e:
            logger.warning("job_history_unavailable", error=str(e))
            return []
        return [job_from_record(record) for record in records]

    async def mark_interrupted(self) -> int:
        """Fail history rows left unfinished by a previous process.

        Jobs run inside the process that started them, so after a restart a
        QUEUED or RUNNING row can never finish on its own.

        Returns:
            Number of rows marked FAILED.
        """
        if self._session_maker is None:
            return 0

        try:
            async with self._session_maker() as db:
                result = await db.execute(
                    select(ImportJobRecord).where(
                        ImportJobRecord.status.in_(
                            [ImportJobStatus.QUEUED, ImportJobStatus.RUNNING]
                        ),
                        ImportJobRecord.id.not_in(list(self._jobs)),
                    )
                )
                records = result.scalars().all()

                now = utcnow()
                for record in records:
                    record.status = ImportJobStatus.FAILED
                    record.error = INTERRUPTED_MESSAGE
                    record.finished_at = now
                await db.commit()
        except SQLAlchemyError as e:
            logger.warning("job_recovery_failed", error=str(e))
            return 0

        if records:
            logger.warning("interrupted_jobs_failed", count=len(records))
        return len(records)

    async def _mirror(self, job: ImportJob) -> None:
        """Write a snapshot to the history table. Failures only log."""
        if self._session_maker is None:
            return
        try:
            async with self._session_maker() as db:
                record = await db.get(ImportJobRecord, job.id)
                values = _record_values(job)
                if record is None:
                    db.add(ImportJobRecord(id=job.id, **values))
                else:
                    for key, value in values.items():
                        setattr(record, key, value)
                await db.commit()
        except SQLAlchemyError as e:
            logger.warning("job_mirror_failed", job_id=job.id, error=str(e))
