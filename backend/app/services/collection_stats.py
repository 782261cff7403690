"""Approximate per-collection item counts for the admin console."""

from __future__ import annotations

import asyncio
import time

from app.archive import COLLECTIONS, ArchiveError, CollectionDescriptor, SourceClient
from app.core.logging import get_logger

logger = get_logger(__name__)


class CollectionStatsAggregator:
    """Counts items per known collection with a TTL cache.

    Counts are informational. A collection whose count cannot be fetched is
    reported with ``count=None`` and is retried on the next call instead of
    being cached.
    """

    def __init__(
        self,
        source: SourceClient,
        ttl: float = 300.0,
        collections: tuple[CollectionDescriptor, ...] = COLLECTIONS,
    ):
        """Initialize the aggregator.

        Args:
            source: Client used to count collections.
            ttl: Seconds a count stays cached. 0 disables caching.
            collections: Collections to report on.
        """
        self.source = source
        self.ttl = ttl
        self.collections = collections

        # Cache: {collection_key: (count, timestamp)}
        self._cache: dict[str, tuple[int, float]] = {}

    def get_cached(self, key: str) -> int | None:
        """Get a cached count if not expired."""
        if key in self._cache:
            count, timestamp = self._cache[key]
            if time.monotonic() - timestamp < self.ttl:
                return count
            del self._cache[key]
        return None

    def invalidate(self, key: str | None = None) -> None:
        """Drop one cached count, or all of them."""
        if key is None:
            self._cache.clear()
        else:
            self._cache.pop(key, None)

    def list_collections(self) -> list[CollectionDescriptor]:
        """List known collections with whatever counts are cached."""
        return [
            collection.with_count(self.get_cached(collection.key))
            for collection in self.collections
        ]

    async def get_collection_stats(self) -> list[CollectionDescriptor]:
        """List known collections with fresh or cached counts."""
        counts = await asyncio.gather(
            *(self._count(collection.key) for collection in self.collections)
        )
        return [
            collection.with_count(count)
            for collection, count in zip(self.collections, counts)
        ]

    async def _count(self, key: str) -> int | None:
        cached = self.get_cached(key)
        if cached is not None:
            return cached

        try:
            count = await self.source.count_collection(key)
        except ArchiveError as e:
            logger.warning("collection_count_failed", collection=key, error=e.message)
            return None

        self._cache[key] = (count, time.monotonic())
        logger.debug("collection_counted", collection=key, count=count)
        return count
