"""Custom exceptions for the Internet Archive integration."""

from __future__ import annotations


class ArchiveError(Exception):
    """Base exception for archive-related errors."""

    def __init__(self, message: str, code: str = "ARCHIVE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class SourceUnavailableError(ArchiveError):
    """Raised when the archive cannot be reached or keeps failing.

    Covers transport errors, 5xx responses and rate limiting once the
    client's own retry budget is spent.
    """

    def __init__(self, message: str = "Internet Archive is unavailable", status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message, "SOURCE_UNAVAILABLE")


class ArchiveRateLimitError(SourceUnavailableError):
    """Raised when the archive answers 429 Too Many Requests."""

    def __init__(self, retry_after: int = 60):
        self.retry_after = retry_after
        super().__init__(
            f"Rate limited by Internet Archive. Retry after {retry_after} seconds",
            status_code=429,
        )


class ItemNotFoundError(ArchiveError):
    """Raised when an identifier does not exist or has been withdrawn."""

    def __init__(self, source_id: str, message: str | None = None):
        self.source_id = source_id
        super().__init__(message or f"Item not found: {source_id}", "ITEM_NOT_FOUND")


class CollectionNotFoundError(ArchiveError):
    """Raised when a collection key matches no items."""

    def __init__(self, collection_key: str):
        self.collection_key = collection_key
        super().__init__(f"Collection not found: {collection_key}", "COLLECTION_NOT_FOUND")
