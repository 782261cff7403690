"""Subtitle track download and storage."""

from __future__ import annotations

import re
from pathlib import Path

import aiofiles
import aiofiles.os

from app.archive import ArchiveItem, SourceClient
from app.core.logging import get_logger

logger = get_logger(__name__)

# Smallest payload that can hold a single SRT/VTT cue
MIN_SUBTITLE_BYTES = 16

SUBTITLE_EXTENSIONS = (".srt", ".vtt")

# Characters allowed in stored file names
_SAFE_NAME = re.compile(r"[^A-Za-z0-9._-]")


class SubtitleError(Exception):
    """Raised when a subtitle track cannot be stored."""

    pass


class SubtitleService:
    """Downloads advertised subtitle tracks and stores them on local disk."""

    def __init__(self, source: SourceClient, subtitle_dir: Path):
        """Initialize the subtitle service.

        Args:
            source: Client used to download subtitle tracks.
            subtitle_dir: Directory where tracks are written.
        """
        self.source = source
        self.subtitle_dir = subtitle_dir

    def path_for(self, item: ArchiveItem, video_id: str) -> Path:
        """Get the local file path for an item's subtitle track.

        The name carries the catalog entry id, so an import attempt that loses
        the insert never touches the file of the entry that won.
        """
        extension = ".srt"
        if item.subtitle_url:
            suffix = Path(item.subtitle_url).suffix.lower()
            if suffix in SUBTITLE_EXTENSIONS:
                extension = suffix
        safe_id = _SAFE_NAME.sub("_", item.source_id)
        return self.subtitle_dir / f"{safe_id}-{video_id}{extension}"

    async def store(self, item: ArchiveItem, video_id: str) -> Path:
        """Download and save the subtitle track advertised by an item.

        Args:
            item: Complete descriptor with a subtitle URL.
            video_id: Id of the catalog entry the track will belong to.

        Returns:
            Path of the written file.

        Raises:
            SubtitleError: If the item has no subtitle or the payload is unusable.
            SourceUnavailableError, ItemNotFoundError: From the source client.
        """
        if not item.has_subtitles or not item.subtitle_url:
            raise SubtitleError(f"{item.source_id} does not advertise a subtitle track")

        content = await self.source.fetch_subtitle(item)
        if len(content.strip()) < MIN_SUBTITLE_BYTES:
            raise SubtitleError(f"Subtitle track for {item.source_id} is empty")

        path = self.path_for(item, video_id)
        await aiofiles.os.makedirs(self.subtitle_dir, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(content)

        logger.info(
            "subtitle_stored",
            source_id=item.source_id,
            path=str(path),
            size=len(content),
        )
        return path

    async def discard(self, path: Path) -> None:
        """Remove a stored track whose catalog entry was never written."""
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("subtitle_discard_failed", path=str(path), error=str(e))
