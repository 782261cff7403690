"""Internet Archive integration."""

from app.archive.base import ArchiveItem, CollectionPage, SourceClient
from app.archive.client import ArchiveClient
from app.archive.collections import COLLECTIONS, CollectionDescriptor, get_collection
from app.archive.exceptions import (
    ArchiveError,
    ArchiveRateLimitError,
    CollectionNotFoundError,
    ItemNotFoundError,
    SourceUnavailableError,
)
from app.archive.rate_limiter import ArchiveRateLimiter

__all__ = [
    "ArchiveClient",
    "ArchiveError",
    "ArchiveItem",
    "ArchiveRateLimitError",
    "ArchiveRateLimiter",
    "COLLECTIONS",
    "CollectionDescriptor",
    "CollectionNotFoundError",
    "CollectionPage",
    "ItemNotFoundError",
    "SourceClient",
    "SourceUnavailableError",
    "get_collection",
]
