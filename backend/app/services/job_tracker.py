"""Background collection imports with progress tracking."""

from __future__ import annotations

import asyncio
import uuid

from app.archive import CollectionNotFoundError, SourceClient, SourceUnavailableError
from app.core.logging import bind_job_context, clear_job_context, get_logger
from app.db.base import utcnow
from app.db.models import ImportJobStatus
from app.services.batch import BatchCoordinator
from app.services.job_store import (
    ImportJob,
    JobFailure,
    JobFinalizedError,
    JobNotFoundError,
    JobStore,
)
from app.services.outcomes import ImportOptions

logger = get_logger(__name__)

SHUTDOWN_MESSAGE = "Interrupted by service shutdown"


def progress_for(processed: int, limit: int) -> int:
    """Percentage of the requested limit processed so far, capped at 100."""
    if limit <= 0:
        return 100
    # Halves round up
    return min(100, int(100 * processed / limit + 0.5))


class JobTracker:
    """Starts collection imports in the background and reports on them.

    A job walks the collection page by page, hands each page to the shared
    batch coordinator, and updates its snapshot after every page. Per-item
    failures only bump counters; the job itself fails only when the
    collection is unknown or a page cannot be fetched.
    """

    def __init__(
        self,
        source: SourceClient,
        coordinator: BatchCoordinator,
        store: JobStore,
        *,
        page_size: int = 50,
        failure_detail_limit: int = 50,
    ):
        """Initialize the tracker.

        Args:
            source: Client used to page through collections.
            coordinator: Shared batch coordinator.
            store: Job snapshot store.
            page_size: Collection items fetched per page.
            failure_detail_limit: Failure reasons kept per job.
        """
        self.source = source
        self.coordinator = coordinator
        self.store = store
        self.page_size = page_size
        self.failure_detail_limit = failure_detail_limit
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def active_count(self) -> int:
        """Number of import jobs still running in this process."""
        return len(self._tasks)

    async def import_from_collection(
        self,
        collection_key: str,
        limit: int,
        options: ImportOptions | None = None,
    ) -> str:
        """Start importing up to ``limit`` items of a collection.

        Returns immediately with the new job id; the import continues in a
        background task.
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")

        job = ImportJob(
            id=str(uuid.uuid4()),
            collection_key=collection_key,
            requested_limit=limit,
            started_at=utcnow(),
        )
        await self.store.create(job)
        await self.store.update(job.id, status=ImportJobStatus.RUNNING)

        task = asyncio.create_task(
            self._run(job.id, collection_key, limit, options or ImportOptions()),
            name=f"import-job-{job.id}",
        )
        self._tasks[job.id] = task
        task.add_done_callback(lambda _: self._tasks.pop(job.id, None))

        logger.info(
            "import_job_started",
            job_id=job.id,
            collection=collection_key,
            limit=limit,
        )
        return job.id

    def get_job(self, job_id: str) -> ImportJob:
        """Get the current snapshot of a live job.

        Raises:
            JobNotFoundError: If this process has no such job.
        """
        job = self.store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def find_job(self, job_id: str) -> ImportJob:
        """Get a job, falling back to the history of earlier processes."""
        job = self.store.get(job_id)
        if job is None:
            job = await self.store.get_history(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def list_jobs(self, history_limit: int = 100) -> list[ImportJob]:
        """List live and historical jobs, newest first."""
        jobs = {job.id: job for job in await self.store.list_history(history_limit)}
        for job in self.store.list_live():
            jobs[job.id] = job
        return sorted(jobs.values(), key=lambda job: job.started_at, reverse=True)

    async def wait(self, job_id: str) -> ImportJob:
        """Wait until a job finishes and return its final snapshot."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return self.get_job(job_id)

    async def recover_interrupted(self) -> int:
        """Fail jobs an earlier process left QUEUED or RUNNING."""
        return await self.store.mark_interrupted()

    async def shutdown(self) -> None:
        """Cancel running jobs. They are recorded as FAILED."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("import_jobs_cancelled", count=len(tasks))

    # ========== Job body ==========

    async def _run(
        self,
        job_id: str,
        collection_key: str,
        limit: int,
        options: ImportOptions,
    ) -> None:
        bind_job_context(job_id=job_id, collection=collection_key)

        seen: set[str] = set()
        failures: list[JobFailure] = []
        processed = imported = skipped = failed = 0
        page_size = max(1, min(self.page_size, limit))
        page = 1

        try:
            while processed < limit:
                listing = await self.source.list_collection(collection_key, page, page_size)

                fresh = []
                for item in listing.items:
                    if item.source_id not in seen:
                        seen.add(item.source_id)
                        fresh.append(item)
                fresh = fresh[: limit - processed]

                if fresh:
                    result = await self.coordinator.import_batch(
                        [item.source_id for item in fresh],
                        options,
                        items={item.source_id: item for item in fresh},
                    )
                    processed += result.total
                    imported += len(result.imported)
                    skipped += len(result.skipped)
                    failed += len(result.failed)

                    room = self.failure_detail_limit - len(failures)
                    if room > 0:
                        failures.extend(
                            JobFailure(f.source_id, f.reason, f.message)
                            for f in result.failed[:room]
                        )

                    await self.store.update(
                        job_id,
                        items_processed=processed,
                        imported_count=imported,
                        skipped_count=skipped,
                        failed_count=failed,
                        failures=failures,
                        progress_percent=progress_for(processed, limit),
                    )
                    logger.info(
                        "import_job_progress",
                        page=page,
                        processed=processed,
                        imported=imported,
                        skipped=skipped,
                        failed=failed,
                    )

                if not listing.items or not listing.has_more:
                    break
                page += 1

        except asyncio.CancelledError:
            await self._finish(job_id, ImportJobStatus.FAILED, error=SHUTDOWN_MESSAGE)
            raise
        except (CollectionNotFoundError, SourceUnavailableError) as e:
            await self._finish(job_id, ImportJobStatus.FAILED, error=e.message)
        except Exception as e:
            logger.error("import_job_crashed", error=str(e), exc_info=True)
            await self._finish(job_id, ImportJobStatus.FAILED, error=str(e) or type(e).__name__)
        else:
            await self._finish(job_id, ImportJobStatus.COMPLETED, progress_percent=100)
        finally:
            clear_job_context()

    async def _finish(
        self,
        job_id: str,
        status: ImportJobStatus,
        *,
        error: str | None = None,
        progress_percent: int | None = None,
    ) -> None:
        changes: dict = {
            "status": status,
            "error": error,
            "finished_at": utcnow(),
        }
        if progress_percent is not None:
            changes["progress_percent"] = progress_percent

        try:
            job = await self.store.update(job_id, **changes)
        except JobFinalizedError:
            logger.warning("import_job_already_finished", status=status.value)
            return

        log = logger.info if status == ImportJobStatus.COMPLETED else logger.warning
        log(
            "import_job_finished",
            status=status.value,
            imported=job.imported_count,
            skipped=job.skipped_count,
            failed=job.failed_count,
            error=error,
        )
