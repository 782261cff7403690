"""Video catalog persistence.

The catalog is the only writer of ``videos`` rows for the import pipeline.
Each operation runs in its own session so that concurrent imports never share
a transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.logging import get_logger
from app.db.models import Video

logger = get_logger(__name__)

# Driver messages that identify a unique constraint violation
UNIQUE_VIOLATION_KEYWORDS = ["unique", "duplicate"]


class CatalogError(Exception):
    """Base exception for catalog errors."""

    pass


class DuplicateKeyError(CatalogError):
    """Raised when a video with the same source_id already exists."""

    def __init__(self, source_id: str):
        self.source_id = source_id
        super().__init__(f"Video already exists for source_id {source_id}")


class PersistenceError(CatalogError):
    """Raised when a catalog read or write fails for any other reason."""

    pass


class VideoNotFoundError(CatalogError):
    """Raised when a video id does not exist."""

    def __init__(self, video_id: str):
        self.video_id = video_id
        super().__init__(f"Video not found: {video_id}")


@dataclass
class LibraryStats:
    """Aggregate numbers for the VOD overview screen."""

    total: int = 0
    with_subtitles: int = 0
    categories: list[tuple[str, int]] = field(default_factory=list)
    recent_imports: list[Video] = field(default_factory=list)

    @property
    def without_subtitles(self) -> int:
        return self.total - self.with_subtitles


class VideoCatalog:
    """Catalog of imported videos keyed by archive source_id."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        """Initialize the catalog.

        Args:
            session_maker: Factory for the sessions each operation opens.
        """
        self._session_maker = session_maker

    async def exists(self, source_id: str) -> bool:
        """Check whether a video with this source_id is in the catalog."""
        try:
            async with self._session_maker() as db:
                result = await db.execute(
                    select(Video.id).where(Video.source_id == source_id).limit(1)
                )
                return result.scalar_one_or_none() is not None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Catalog lookup failed: {e}") from e

    async def get_by_source_id(self, source_id: str) -> Video | None:
        try:
            async with self._session_maker() as db:
                result = await db.execute(select(Video).where(Video.source_id == source_id))
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Catalog lookup failed: {e}") from e

    async def get(self, video_id: str) -> Video:
        """Get a video by catalog id.

        Raises:
            VideoNotFoundError: If no video has this id.
        """
        try:
            async with self._session_maker() as db:
                video = await db.get(Video, video_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Catalog lookup failed: {e}") from e
        if video is None:
            raise VideoNotFoundError(video_id)
        return video

    async def insert(self, video: Video) -> Video:
        """Insert a new video.

        The unique index on source_id is the final word on duplicates: when two
        imports race, exactly one insert commits.

        Raises:
            DuplicateKeyError: A video with the same source_id exists.
            PersistenceError: Any other database failure.
        """
        try:
            async with self._session_maker() as db:
                db.add(video)
                try:
                    await db.commit()
                except IntegrityError as e:
                    await db.rollback()
                    message = str(e.orig).lower()
                    if any(keyword in message for keyword in UNIQUE_VIOLATION_KEYWORDS):
                        raise DuplicateKeyError(video.source_id) from e
                    raise PersistenceError(f"Catalog insert rejected: {e.orig}") from e
        except SQLAlchemyError as e:
            logger.error("catalog_insert_failed", source_id=video.source_id, error=str(e))
            raise PersistenceError(f"Catalog insert failed: {e}") from e

        logger.info("video_created", video_id=video.id, source_id=video.source_id)
        return video

    async def delete(self, video_id: str) -> None:
        """Delete a video.

        Raises:
            VideoNotFoundError: If no video has this id.
        """
        try:
            async with self._session_maker() as db:
                video = await db.get(Video, video_id)
                if video is None:
                    raise VideoNotFoundError(video_id)
                await db.delete(video)
                await db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Catalog delete failed: {e}") from e

        logger.info("video_deleted", video_id=video_id, source_id=video.source_id)

    async def set_active(self, video_id: str, active: bool) -> Video:
        """Show or hide a video in the public catalog."""
        try:
            async with self._session_maker() as db:
                video = await db.get(Video, video_id)
                if video is None:
                    raise VideoNotFoundError(video_id)
                video.is_active = active
                await db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Catalog update failed: {e}") from e

        logger.info("video_active_changed", video_id=video_id, is_active=active)
        return video

    async def toggle_active(self, video_id: str) -> Video:
        video = await self.get(video_id)
        return await self.set_active(video_id, not video.is_active)

    async def library_stats(self, recent_limit: int = 10) -> LibraryStats:
        """Compute totals, category breakdown and recent imports for active videos."""
        try:
            async with self._session_maker() as db:
                return await self._collect_stats(db, recent_limit)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Catalog stats failed: {e}") from e

    @staticmethod
    async def _collect_stats(db: AsyncSession, recent_limit: int) -> LibraryStats:
        total_result = await db.execute(
            select(func.count(Video.id)).where(Video.is_active.is_(True))
        )
        subtitles_result = await db.execute(
            select(func.count(Video.id)).where(
                Video.is_active.is_(True),
                Video.has_subtitles.is_(True),
            )
        )
        count_column = func.count(Video.id)
        category_result = await db.execute(
            select(Video.category, count_column)
            .where(Video.is_active.is_(True))
            .group_by(Video.category)
            .order_by(count_column.desc())
        )
        recent_result = await db.execute(
            select(Video)
            .where(Video.is_active.is_(True))
            .order_by(Video.created_at.desc())
            .limit(recent_limit)
        )

        return LibraryStats(
            total=total_result.scalar() or 0,
            with_subtitles=subtitles_result.scalar() or 0,
            categories=[
                (category or "Uncategorized", count)
                for category, count in category_result.all()
            ],
            recent_imports=list(recent_result.scalars().all()),
        )

    async def ping(self) -> bool:
        """Check that the catalog database answers."""
        try:
            async with self._session_maker() as db:
                await db.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("catalog_ping_failed", error=str(e))
            return False
