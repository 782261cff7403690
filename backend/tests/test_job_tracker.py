"""Tests for JobTracker and JobStore."""

from __future__ import annotations

import asyncio
import dataclasses
from datetime import datetime, timezone

import pytest

from app.db.models import ImportFailureReason, ImportJobRecord, ImportJobStatus
from app.services.job_store import (
    INTERRUPTED_MESSAGE,
    ImportJob,
    JobFinalizedError,
    JobNotFoundError,
    JobStore,
)
from app.services.job_tracker import SHUTDOWN_MESSAGE, JobTracker, progress_for


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def make_tracker(pipeline, fake_source, session_maker):
    """Build trackers over the shared coordinator with a small page size."""
    trackers: list[JobTracker] = []

    def _make(page_size: int = 4, failure_detail_limit: int = 50) -> JobTracker:
        tracker = JobTracker(
            fake_source,
            pipeline.coordinator,
            JobStore(session_maker),
            page_size=page_size,
            failure_detail_limit=failure_detail_limit,
        )
        trackers.append(tracker)
        return tracker

    yield _make

    for tracker in trackers:
        await tracker.shutdown()


@pytest.fixture
def noir(fake_source, make_item):
    """A 25 item collection."""
    source_ids = [f"noir_{i:02d}" for i in range(25)]
    fake_source.add(*(make_item(source_id) for source_id in source_ids))
    fake_source.collections["film_noir"] = source_ids
    return source_ids


# =============================================================================
# Job lifecycle
# =============================================================================


class TestCollectionImport:
    """Tests for import_from_collection."""

    async def test_limit_reached(self, make_tracker, fake_source, noir):
        """A limit of 10 over a 25 item collection imports exactly 10."""
        tracker = make_tracker(page_size=4)

        job_id = await tracker.import_from_collection("film_noir", 10)
        job = await tracker.wait(job_id)

        assert job.status is ImportJobStatus.COMPLETED
        assert job.items_processed == 10
        assert job.imported_count + job.skipped_count + job.failed_count == 10
        assert job.imported_count == 10
        assert job.progress_percent == 100
        assert job.finished_at is not None
        assert [page for _, page, _ in fake_source.page_calls] == [1, 2, 3]

    async def test_collection_exhausted(self, make_tracker, fake_source, make_item):
        fake_source.add(*(make_item(f"s{i}") for i in range(5)))
        fake_source.collections["shorts"] = [f"s{i}" for i in range(5)]
        tracker = make_tracker(page_size=4)

        job = await tracker.wait(await tracker.import_from_collection("shorts", 20))

        assert job.status is ImportJobStatus.COMPLETED
        assert job.items_processed == 5
        assert job.progress_percent == 100

    async def test_returns_before_work_is_done(self, make_tracker, fake_source, noir):
        fake_source.delay = 0.01
        tracker = make_tracker()

        job_id = await tracker.import_from_collection("film_noir", 8)
        job = tracker.get_job(job_id)

        assert job.status is ImportJobStatus.RUNNING
        assert job.requested_limit == 8
        assert job.items_processed == 0
        await tracker.wait(job_id)

    async def test_existing_items_are_skipped(self, make_tracker, pipeline, noir):
        await pipeline.executor.import_one(noir[0])
        tracker = make_tracker()

        job = await tracker.wait(await tracker.import_from_collection("film_noir", 4))

        assert job.imported_count == 3
        assert job.skipped_count == 1

    async def test_repeated_ids_processed_once(self, make_tracker, fake_source, make_item):
        fake_source.add(make_item("a"), make_item("b"), make_item("c"))
        fake_source.collections["reruns"] = ["a", "b", "a", "c", "b"]
        tracker = make_tracker(page_size=2)

        job = await tracker.wait(await tracker.import_from_collection("reruns", 10))

        assert job.status is ImportJobStatus.COMPLETED
        assert job.items_processed == 3
        assert job.imported_count == 3

    async def test_item_failures_only_count(self, make_tracker, fake_source, make_item):
        fake_source.add(make_item("a"), make_item("c"))
        fake_source.collections["mixed"] = ["a", "missing", "c"]
        tracker = make_tracker()

        job = await tracker.wait(await tracker.import_from_collection("mixed", 3))

        assert job.status is ImportJobStatus.COMPLETED
        assert job.imported_count == 2
        assert job.failed_count == 1
        assert len(job.failures) == 1
        assert job.failures[0].source_id == "missing"
        assert job.failures[0].reason is ImportFailureReason.ITEM_NOT_FOUND

    async def test_failure_details_capped(self, make_tracker, fake_source):
        fake_source.collections["ghosts"] = [f"ghost_{i}" for i in range(6)]
        tracker = make_tracker(failure_detail_limit=2)

        job = await tracker.wait(await tracker.import_from_collection("ghosts", 6))

        assert job.failed_count == 6
        assert len(job.failures) == 2

    async def test_unknown_collection_fails(self, make_tracker):
        tracker = make_tracker()

        job = await tracker.wait(await tracker.import_from_collection("no_such_collection", 5))

        assert job.status is ImportJobStatus.FAILED
        assert "no_such_collection" in job.error
        assert job.items_processed == 0

    async def test_page_fetch_failure_keeps_counters(self, make_tracker, fake_source, noir):
        fake_source.unavailable_pages.add(2)
        tracker = make_tracker(page_size=4)

        job = await tracker.wait(await tracker.import_from_collection("film_noir", 10))

        assert job.status is ImportJobStatus.FAILED
        assert job.imported_count == 4
        assert job.items_processed == 4
        assert job.error

    async def test_invalid_limit(self, make_tracker):
        with pytest.raises(ValueError):
            await make_tracker().import_from_collection("film_noir", 0)


class TestProgress:
    """Tests for progress reporting and snapshot rules."""

    def test_progress_for(self):
        assert progress_for(0, 10) == 0
        assert progress_for(1, 3) == 33
        assert progress_for(2, 3) == 67
        assert progress_for(1, 40) == 3
        assert progress_for(3, 40) == 8
        assert progress_for(12, 10) == 100

    async def test_progress_never_decreases(self, make_tracker, noir, monkeypatch):
        tracker = make_tracker(page_size=3)
        seen: list[int] = []
        original_update = tracker.store.update

        async def update(job_id, **changes):
            job = await original_update(job_id, **changes)
            seen.append(job.progress_percent)
            return job

        monkeypatch.setattr(tracker.store, "update", update)

        await tracker.wait(await tracker.import_from_collection("film_noir", 10))

        assert seen == sorted(seen)
        assert seen[-1] == 100
        assert 30 in seen

    async def test_store_keeps_progress_monotonic(self):
        store = JobStore()
        await store.create(
            ImportJob(
                id="job-1",
                collection_key="film_noir",
                requested_limit=10,
                started_at=datetime.now(timezone.utc),
                status=ImportJobStatus.RUNNING,
                progress_percent=50,
            )
        )

        updated = await store.update("job-1", progress_percent=10)

        assert updated.progress_percent == 50

    async def test_finished_job_is_frozen(self, make_tracker, noir):
        tracker = make_tracker()
        job_id = await tracker.import_from_collection("film_noir", 4)
        job = await tracker.wait(job_id)

        with pytest.raises(JobFinalizedError):
            await tracker.store.update(job_id, imported_count=99)

        assert tracker.get_job(job_id) == job

    async def test_snapshots_are_immutable(self, make_tracker, noir):
        tracker = make_tracker()
        job = await tracker.wait(await tracker.import_from_collection("film_noir", 4))

        with pytest.raises(dataclasses.FrozenInstanceError):
            job.imported_count = 0


class TestLookup:
    """Tests for get_job, find_job and list_jobs."""

    async def test_unknown_job(self, make_tracker):
        tracker = make_tracker()

        with pytest.raises(JobNotFoundError):
            tracker.get_job("missing")
        with pytest.raises(JobNotFoundError):
            await tracker.find_job("missing")

    async def test_list_newest_first(self, make_tracker, noir):
        tracker = make_tracker()
        first = await tracker.import_from_collection("film_noir", 2)
        await tracker.wait(first)
        await asyncio.sleep(0.01)
        second = await tracker.import_from_collection("film_noir", 2)
        await tracker.wait(second)

        jobs = await tracker.list_jobs()

        assert [job.id for job in jobs] == [second, first]

    async def test_history_survives_restart(self, make_tracker, noir):
        """A new tracker over the same database still reports finished jobs."""
        tracker = make_tracker()
        job_id = await tracker.import_from_collection("film_noir", 4)
        finished = await tracker.wait(job_id)

        restarted = make_tracker()
        job = await restarted.find_job(job_id)

        assert job.status is ImportJobStatus.COMPLETED
        assert job.imported_count == finished.imported_count
        assert job.started_at.tzinfo is not None
        assert [j.id for j in await restarted.list_jobs()] == [job_id]

    async def test_failures_round_trip_through_history(self, make_tracker, fake_source):
        fake_source.collections["ghosts"] = ["ghost_1"]
        tracker = make_tracker()
        job_id = await tracker.import_from_collection("ghosts", 1)
        await tracker.wait(job_id)

        job = await make_tracker().find_job(job_id)

        assert job.failures[0].source_id == "ghost_1"
        assert job.failures[0].reason is ImportFailureReason.ITEM_NOT_FOUND


class TestRecovery:
    """Tests for restart recovery and shutdown."""

    async def test_recover_interrupted(self, make_tracker, session_maker):
        async with session_maker() as db:
            db.add(
                ImportJobRecord(
                    id="stale-job",
                    collection_key="film_noir",
                    status=ImportJobStatus.RUNNING,
                    requested_limit=20,
                    started_at=datetime.now(timezone.utc),
                )
            )
            await db.commit()

        recovered = await make_tracker().recover_interrupted()

        assert recovered == 1
        async with session_maker() as db:
            record = await db.get(ImportJobRecord, "stale-job")
        assert record.status is ImportJobStatus.FAILED
        assert record.error == INTERRUPTED_MESSAGE
        assert record.finished_at is not None

    async def test_recover_leaves_finished_jobs(self, make_tracker, noir):
        tracker = make_tracker()
        await tracker.wait(await tracker.import_from_collection("film_noir", 2))

        assert await make_tracker().recover_interrupted() == 0

    async def test_shutdown_fails_running_jobs(self, make_tracker, fake_source, noir):
        fake_source.delay = 0.2
        tracker = make_tracker()
        job_id = await tracker.import_from_collection("film_noir", 10)
        await asyncio.sleep(0.05)

        await tracker.shutdown()

        job = tracker.get_job(job_id)
        assert job.status is ImportJobStatus.FAILED
        assert job.error == SHUTDOWN_MESSAGE
