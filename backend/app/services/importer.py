"""Single item import.

Turns one archive identifier into one catalog entry. Every failure that
belongs to the item is returned as a ``Failed`` outcome instead of raised, so
callers can import many items without one of them aborting the rest.
"""

from __future__ import annotations

import uuid
from pathlib import Path

from app.archive import (
    ArchiveError,
    ArchiveItem,
    ItemNotFoundError,
    SourceClient,
    SourceUnavailableError,
)
from app.archive.parsing import categorize
from app.core.logging import get_logger
from app.db.models import ImportFailureReason, SourceType, Video
from app.services.catalog import DuplicateKeyError, PersistenceError, VideoCatalog
from app.services.dedup import DedupDecision, Deduplicator
from app.services.outcomes import Failed, ImportOptions, ImportOutcome, Imported, Skipped
from app.services.subtitles import SubtitleError, SubtitleService

logger = get_logger(__name__)

# Archive descriptions can be whole essays
MAX_DESCRIPTION_LENGTH = 5000


class InvalidMetadataError(Exception):
    """Raised when an item lacks the fields a catalog entry needs."""

    pass


def build_video(item: ArchiveItem) -> Video:
    """Map a complete archive item onto a new catalog entry.

    Raises:
        InvalidMetadataError: If the title or playable video URL is missing.
    """
    title = (item.title or "").strip()
    if not title:
        raise InvalidMetadataError(f"{item.source_id} has no title")
    if not item.video_url:
        raise InvalidMetadataError(f"{item.source_id} has no playable video file")

    description = item.description
    if description and len(description) > MAX_DESCRIPTION_LENGTH:
        description = description[:MAX_DESCRIPTION_LENGTH]

    return Video(
        id=str(uuid.uuid4()),
        source_type=SourceType.ARCHIVE,
        source_id=item.source_id,
        title=title,
        description=description,
        category=categorize(title, item.description, item.tags),
        tags=list(item.tags),
        year=item.year,
        duration_seconds=item.duration_seconds or 0,
        language=item.language,
        video_url=item.video_url,
        thumbnail_url=item.thumbnail_url,
        has_subtitles=item.has_subtitles,
        subtitle_url=item.subtitle_url if item.has_subtitles else None,
        subtitle_language=item.subtitle_language if item.has_subtitles else None,
        subtitle_synced=False,
        is_active=True,
    )


class ImportExecutor:
    """Imports one archive item into the catalog."""

    def __init__(
        self,
        source: SourceClient,
        catalog: VideoCatalog,
        deduplicator: Deduplicator,
        subtitles: SubtitleService | None = None,
    ):
        self.source = source
        self.catalog = catalog
        self.deduplicator = deduplicator
        self.subtitles = subtitles

    async def import_one(
        self,
        source_id: str,
        options: ImportOptions | None = None,
        *,
        item: ArchiveItem | None = None,
    ) -> ImportOutcome:
        """Import one item.

        Args:
            source_id: Archive identifier.
            options: Skip and subtitle options.
            item: Descriptor already fetched by the caller. Summary descriptors
                from a listing are refetched since they lack the video file.

        Returns:
            Imported, Skipped or Failed. Never raises for item-level problems.
        """
        options = options or ImportOptions()

        try:
            decision = await self.deduplicator.decide(source_id, options.skip_existing)
        except PersistenceError as e:
            return self._failed(source_id, ImportFailureReason.PERSISTENCE_ERROR, str(e))

        if decision is DedupDecision.SKIP:
            logger.debug("import_skipped", source_id=source_id)
            return Skipped(source_id=source_id)

        if item is None or not item.is_complete:
            try:
                item = await self.source.fetch_item(source_id)
            except ItemNotFoundError as e:
                return self._failed(source_id, ImportFailureReason.ITEM_NOT_FOUND, e.message)
            except SourceUnavailableError as e:
                return self._failed(source_id, ImportFailureReason.SOURCE_UNAVAILABLE, e.message)
            except ArchiveError as e:
                return self._failed(source_id, ImportFailureReason.SOURCE_UNAVAILABLE, e.message)

        try:
            video = build_video(item)
        except InvalidMetadataError as e:
            return self._failed(source_id, ImportFailureReason.INVALID_METADATA, str(e))

        subtitle_file: Path | None = None
        if options.sync_subtitles and item.has_subtitles:
            subtitle_file = await self._sync_subtitle(video, item)

        try:
            video = await self.catalog.insert(video)
        except DuplicateKeyError as e:
            await self._discard_subtitle(subtitle_file)
            return self._failed(source_id, ImportFailureReason.DUPLICATE_KEY, str(e))
        except PersistenceError as e:
            await self._discard_subtitle(subtitle_file)
            return self._failed(source_id, ImportFailureReason.PERSISTENCE_ERROR, str(e))

        logger.info(
            "video_imported",
            source_id=source_id,
            video_id=video.id,
            category=video.category,
            has_subtitles=video.has_subtitles,
        )
        return Imported(video=video)

    async def _sync_subtitle(self, video: Video, item: ArchiveItem) -> Path | None:
        """Store the item's subtitle locally. A failure only clears the subtitle flag."""
        if self.subtitles is None:
            return None

        try:
            path = await self.subtitles.store(item, video.id)
        except (ArchiveError, SubtitleError, OSError) as e:
            logger.warning(
                "subtitle_sync_failed",
                source_id=item.source_id,
                error=str(e),
            )
            video.has_subtitles = False
            video.subtitle_url = None
            video.subtitle_language = None
            return None

        video.subtitle_synced = True
        video.subtitle_path = str(path)
        return path

    async def _discard_subtitle(self, path: Path | None) -> None:
        if path is not None and self.subtitles is not None:
            await self.subtitles.discard(path)

    @staticmethod
    def _failed(source_id: str, reason: ImportFailureReason, message: str) -> Failed:
        logger.warning(
            "import_failed",
            source_id=source_id,
            reason=reason.value,
            error=message,
        )
        return Failed(source_id=source_id, reason=reason, message=message)
