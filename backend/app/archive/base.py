"""Source client interface and item descriptors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ArchiveItem:
    """Metadata for a single archive item.

    Search and browse results only fill the summary fields; ``fetch_item``
    returns a complete descriptor including the playable ``video_url``.
    """

    source_id: str
    title: str | None = None
    description: str | None = None
    year: int | None = None
    duration_seconds: int | None = None
    language: str | None = None
    downloads: int | None = None
    creator: str | None = None
    thumbnail_url: str | None = None
    video_url: str | None = None
    video_format: str | None = None
    file_size: int | None = None
    has_subtitles: bool = False
    subtitle_url: str | None = None
    subtitle_language: str | None = None
    tags: list[str] = field(default_factory=list)
    license_url: str | None = None

    @property
    def is_complete(self) -> bool:
        """Whether the descriptor came from a full metadata fetch."""
        return self.video_url is not None


@dataclass
class CollectionPage:
    """One page of a collection listing."""

    items: list[ArchiveItem]
    page: int
    pages: int
    total: int

    @property
    def has_more(self) -> bool:
        """Whether another page follows this one."""
        return self.page < self.pages


class SourceClient(ABC):
    """Interface to the external media archive.

    Implementations raise ``SourceUnavailableError`` when the source cannot be
    reached after their own retry policy, ``ItemNotFoundError`` for unknown
    identifiers and ``CollectionNotFoundError`` for unknown collections.
    """

    @abstractmethod
    async def search(
        self,
        query: str,
        *,
        limit: int = 50,
        page: int = 1,
        collection: str | None = None,
    ) -> list[ArchiveItem]:
        """Search movie items across the archive, or within one collection."""

    @abstractmethod
    async def list_collection(
        self, collection_key: str, page: int = 1, page_size: int = 50
    ) -> CollectionPage:
        """List one page of a collection, most downloaded first."""

    @abstractmethod
    async def fetch_item(self, source_id: str) -> ArchiveItem:
        """Fetch complete metadata for one item."""

    @abstractmethod
    async def count_collection(self, collection_key: str) -> int:
        """Get the archive's approximate item count for a collection."""

    @abstractmethod
    async def fetch_subtitle(self, item: ArchiveItem) -> bytes:
        """Download the subtitle track advertised by an item."""

    def get_stats(self) -> dict[str, Any] | None:
        """Request throttling metrics, when the client keeps any."""
        return None

    async def close(self) -> None:
        """Release network resources."""
