"""Wiring of the ingestion pipeline."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.archive import ArchiveClient, SourceClient
from app.core.config import settings
from app.core.logging import get_logger
from app.services.batch import BatchCoordinator
from app.services.catalog import VideoCatalog
from app.services.collection_stats import CollectionStatsAggregator
from app.services.dedup import Deduplicator
from app.services.importer import ImportExecutor
from app.services.job_store import JobStore
from app.services.job_tracker import JobTracker
from app.services.subtitles import SubtitleService

logger = get_logger(__name__)


class VodPipeline:
    """Holds one instance of every pipeline component.

    Built once at startup. The batch coordinator, and with it the
    concurrency cap, is shared by the batch endpoint and all collection jobs.
    """

    def __init__(
        self,
        *,
        source: SourceClient,
        session_maker: async_sessionmaker[AsyncSession],
        subtitle_dir: Path,
        concurrency: int = 4,
        page_size: int = 50,
        failure_detail_limit: int = 50,
        stats_ttl: float = 300.0,
    ):
        self.source = source
        self.catalog = VideoCatalog(session_maker)
        self.deduplicator = Deduplicator(self.catalog)
        self.subtitles = SubtitleService(source, subtitle_dir)
        self.executor = ImportExecutor(source, self.catalog, self.deduplicator, self.subtitles)
        self.coordinator = BatchCoordinator(self.executor, concurrency)
        self.jobs = JobTracker(
            source,
            self.coordinator,
            JobStore(session_maker),
            page_size=page_size,
            failure_detail_limit=failure_detail_limit,
        )
        self.collection_stats = CollectionStatsAggregator(source, ttl=stats_ttl)

    @classmethod
    def from_settings(
        cls,
        session_maker: async_sessionmaker[AsyncSession] | None = None,
        source: SourceClient | None = None,
    ) -> VodPipeline:
        """Build the pipeline from application settings."""
        if session_maker is None:
            from app.db import async_session_maker

            session_maker = async_session_maker

        return cls(
            source=source or ArchiveClient(),
            session_maker=session_maker,
            subtitle_dir=settings.subtitle_path,
            concurrency=settings.import_concurrency,
            page_size=settings.job_page_size,
            failure_detail_limit=settings.job_failure_detail_limit,
            stats_ttl=settings.collection_stats_ttl,
        )

    async def start(self) -> None:
        """Prepare for serving requests."""
        recovered = await self.jobs.recover_interrupted()
        logger.info(
            "vod_pipeline_started",
            concurrency=self.coordinator.concurrency,
            recovered_jobs=recovered,
        )

    async def close(self) -> None:
        """Stop background jobs and release the source client."""
        await self.jobs.shutdown()
        await self.source.close()
        logger.info("vod_pipeline_stopped")
