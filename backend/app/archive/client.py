"""Internet Archive client for search, collection browsing and item metadata.

API docs: https://archive.org/developers/
"""

from __future__ import annotations

import math
import re
from typing import Any
from urllib.parse import quote

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.archive.base import ArchiveItem, CollectionPage, SourceClient
from app.archive.exceptions import (
    ArchiveError,
    ArchiveRateLimitError,
    CollectionNotFoundError,
    ItemNotFoundError,
    SourceUnavailableError,
)
from app.archive.parsing import (
    as_list,
    as_text,
    find_best_video_file,
    find_subtitle_file,
    find_thumbnail_file,
    first_value,
    parse_duration,
    parse_int,
    parse_year,
    subtitle_language,
)
from app.archive.rate_limiter import ArchiveRateLimiter
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

USER_AGENT = "VOD-Ingest/0.3 (+https://archive.org/developers/)"

SEARCH_FIELDS = [
    "identifier",
    "title",
    "description",
    "year",
    "creator",
    "runtime",
    "downloads",
    "language",
]

# Collection keys and identifiers are plain archive slugs
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class ArchiveClient(SourceClient):
    """Async client for the Internet Archive.

    Every request passes through the shared rate limiter and is retried with
    exponential backoff on transport errors, 5xx and 429 responses. Once the
    retry budget is spent a ``SourceUnavailableError`` propagates to the caller.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_initial: float | None = None,
        backoff_max: float | None = None,
        rate_limiter: ArchiveRateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the archive client.

        Args:
            base_url: Archive base URL (default from settings).
            timeout: Request timeout in seconds.
            max_retries: Attempts per request before giving up.
            backoff_initial: First retry delay in seconds.
            backoff_max: Upper bound for retry delays.
            rate_limiter: Shared limiter. A private one is created if omitted.
            transport: Optional httpx transport, used by tests.
        """
        self.base_url = (base_url or settings.archive_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.archive_timeout
        self.max_retries = max_retries if max_retries is not None else settings.archive_max_retries
        self.backoff_initial = (
            backoff_initial if backoff_initial is not None else settings.archive_backoff_initial
        )
        self.backoff_max = backoff_max if backoff_max is not None else settings.archive_backoff_max
        self.rate_limiter = rate_limiter or ArchiveRateLimiter(settings.archive_rate_limit_rpm)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                follow_redirects=True,
                headers={
                    "Accept": "application/json",
                    "User-Agent": USER_AGENT,
                },
                transport=self._transport,
            )
        return self._client

    def get_stats(self) -> dict[str, Any]:
        """Rate limiter metrics for the health endpoint."""
        return self.rate_limiter.get_stats()

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # ========== Transport ==========

    async def _send(self, url: str, params: Any = None) -> httpx.Response:
        """Make one rate-limited request and classify the response.

        Raises:
            SourceUnavailableError: Transport error or 5xx response.
            ArchiveRateLimitError: 429 response.
            ArchiveError: Any other 4xx except 404.
        """
        await self.rate_limiter.acquire()
        client = await self._get_client()

        try:
            response = await client.get(url, params=params)
        except httpx.HTTPError as e:
            logger.warning("archive_http_error", url=url, error=str(e))
            raise SourceUnavailableError(f"HTTP error: {e}") from e

        if response.status_code == 429:
            retry_after = parse_int(response.headers.get("Retry-After")) or 60
            raise ArchiveRateLimitError(retry_after=retry_after)

        if response.status_code >= 500:
            raise SourceUnavailableError(
                f"Internet Archive returned {response.status_code}",
                status_code=response.status_code,
            )

        if response.status_code >= 400 and response.status_code != 404:
            raise ArchiveError(
                f"Internet Archive returned {response.status_code}",
                code=f"HTTP_{response.status_code}",
            )

        return response

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential_jitter(
                initial=self.backoff_initial,
                max=self.backoff_max,
                jitter=self.backoff_initial,
            ),
            retry=retry_if_exception_type(SourceUnavailableError),
            before_sleep=self._log_retry,
            reraise=True,
        )

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.info(
            "archive_request_retry",
            attempt=retry_state.attempt_number,
            error=str(error) if error else None,
        )

    async def _get_json(self, url: str, params: Any = None) -> Any:
        """GET a JSON document, retrying transient failures.

        Returns:
            The decoded body, or None for a 404.
        """
        async for attempt in self._retrying():
            with attempt:
                response = await self._send(url, params)
                if response.status_code == 404:
                    return None
                try:
                    return response.json()
                except ValueError as e:
                    # Truncated bodies show up when the archive is overloaded
                    raise SourceUnavailableError("Malformed JSON from Internet Archive") from e
        raise SourceUnavailableError("Retry budget exhausted")

    async def _advanced_search(
        self,
        query: str,
        *,
        rows: int,
        page: int = 1,
        sort: str = "downloads desc",
    ) -> dict[str, Any]:
        params = {
            "q": query,
            "fl[]": SEARCH_FIELDS,
            "sort[]": sort,
            "rows": rows,
            "page": page,
            "output": "json",
        }
        data = await self._get_json("/advancedsearch.php", params)
        if not isinstance(data, dict) or not isinstance(data.get("response"), dict):
            raise SourceUnavailableError("Unexpected search response from Internet Archive")
        return data["response"]

    # ========== Search & browse ==========

    async def search(
        self,
        query: str,
        *,
        limit: int = 50,
        page: int = 1,
        collection: str | None = None,
    ) -> list[ArchiveItem]:
        """Search movies by title or description, optionally within a collection."""
        terms = query.replace('"', " ").strip()
        q = "mediatype:movies"
        if collection:
            if not IDENTIFIER_PATTERN.match(collection):
                raise CollectionNotFoundError(collection)
            q = f"collection:{collection} AND {q}"
        if terms:
            q += f' AND (title:"{terms}" OR description:"{terms}")'

        response = await self._advanced_search(q, rows=limit, page=page)
        docs = response.get("docs") or []

        logger.info("archive_search", query=terms, results=len(docs))
        return [self._item_from_doc(doc) for doc in docs if doc.get("identifier")]

    async def list_collection(
        self, collection_key: str, page: int = 1, page_size: int = 50
    ) -> CollectionPage:
        """List one page of a collection, most downloaded first.

        Raises:
            CollectionNotFoundError: If the archive has no items for the key.
        """
        if not IDENTIFIER_PATTERN.match(collection_key or ""):
            raise CollectionNotFoundError(collection_key)

        response = await self._advanced_search(
            f"collection:{collection_key} AND mediatype:movies",
            rows=page_size,
            page=page,
        )
        total = parse_int(response.get("numFound")) or 0
        if total == 0:
            raise CollectionNotFoundError(collection_key)

        docs = response.get("docs") or []
        pages = max(1, math.ceil(total / page_size))

        logger.debug(
            "archive_collection_page",
            collection=collection_key,
            page=page,
            pages=pages,
            items=len(docs),
        )

        return CollectionPage(
            items=[self._item_from_doc(doc) for doc in docs if doc.get("identifier")],
            page=page,
            pages=pages,
            total=total,
        )

    async def count_collection(self, collection_key: str) -> int:
        """Get the approximate number of movies in a collection."""
        if not IDENTIFIER_PATTERN.match(collection_key or ""):
            return 0
        response = await self._advanced_search(
            f"collection:{collection_key} AND mediatype:movies", rows=0
        )
        return parse_int(response.get("numFound")) or 0

    # ========== Items ==========

    async def fetch_item(self, source_id: str) -> ArchiveItem:
        """Fetch full metadata for an item.

        The returned descriptor may lack ``video_url`` when the item has no
        playable file; callers decide whether that is acceptable.

        Raises:
            ItemNotFoundError: Unknown identifier or item withdrawn ("dark").
            SourceUnavailableError: Archive unreachable after retries.
        """
        if not IDENTIFIER_PATTERN.match(source_id or ""):
            raise ItemNotFoundError(source_id, f"Invalid identifier: {source_id!r}")

        data = await self._get_json(f"/metadata/{quote(source_id)}")

        # Unknown identifiers come back as an empty object
        if not data or not isinstance(data, dict) or not data.get("metadata"):
            raise ItemNotFoundError(source_id)

        if data.get("is_dark"):
            logger.info("archive_item_dark", source_id=source_id)
            raise ItemNotFoundError(source_id, f"Item is no longer available: {source_id}")

        return self._item_from_metadata(source_id, data)

    async def fetch_subtitle(self, item: ArchiveItem) -> bytes:
        """Download the subtitle track advertised by an item."""
        if not item.subtitle_url:
            raise ArchiveError(f"Item has no subtitle track: {item.source_id}", "NO_SUBTITLES")

        async for attempt in self._retrying():
            with attempt:
                response = await self._send(item.subtitle_url)
                if response.status_code == 404:
                    raise ItemNotFoundError(item.source_id, "Subtitle file not found")
                return response.content
        raise SourceUnavailableError("Retry budget exhausted")

    # ========== Mapping ==========

    def _download_url(self, source_id: str, file_name: str) -> str:
        return f"{self.base_url}/download/{quote(source_id)}/{quote(file_name)}"

    def _default_thumbnail(self, source_id: str) -> str:
        return f"{self.base_url}/services/img/{quote(source_id)}"

    def _item_from_doc(self, doc: dict[str, Any]) -> ArchiveItem:
        """Map an advancedsearch document to a summary descriptor."""
        source_id = str(doc["identifier"])
        return ArchiveItem(
            source_id=source_id,
            title=as_text(first_value(doc.get("title"))),
            description=as_text(doc.get("description"), separator="\n"),
            year=parse_year(doc.get("year")),
            duration_seconds=parse_duration(doc.get("runtime")),
            language=as_text(first_value(doc.get("language"))),
            downloads=parse_int(doc.get("downloads")),
            creator=as_text(doc.get("creator")),
            thumbnail_url=self._default_thumbnail(source_id),
        )

    def _item_from_metadata(self, source_id: str, data: dict[str, Any]) -> ArchiveItem:
        """Map a /metadata document to a complete descriptor."""
        metadata = data.get("metadata") or {}
        files = [f for f in (data.get("files") or []) if isinstance(f, dict)]

        video_file = find_best_video_file(files)
        thumbnail_file = find_thumbnail_file(files)
        subtitle_file = find_subtitle_file(files)

        duration = None
        if video_file:
            duration = parse_duration(video_file.get("length"))
        if duration is None:
            duration = parse_duration(metadata.get("runtime"))

        return ArchiveItem(
            source_id=source_id,
            title=as_text(first_value(metadata.get("title"))),
            description=as_text(metadata.get("description"), separator="\n"),
            year=parse_year(metadata.get("year") or metadata.get("date")),
            duration_seconds=duration,
            language=as_text(first_value(metadata.get("language"))),
            downloads=parse_int(metadata.get("downloads") or data.get("downloads")),
            creator=as_text(metadata.get("creator")),
            thumbnail_url=(
                self._download_url(source_id, thumbnail_file["name"])
                if thumbnail_file
                else self._default_thumbnail(source_id)
            ),
            video_url=self._download_url(source_id, video_file["name"]) if video_file else None,
            video_format=as_text(video_file.get("format")) if video_file else None,
            file_size=parse_int(video_file.get("size")) if video_file else None,
            has_subtitles=subtitle_file is not None,
            subtitle_url=(
                self._download_url(source_id, subtitle_file["name"]) if subtitle_file else None
            ),
            subtitle_language=subtitle_language(subtitle_file["name"]) if subtitle_file else None,
            tags=as_list(metadata.get("subject")),
            license_url=as_text(first_value(metadata.get("licenseurl"))),
        )
