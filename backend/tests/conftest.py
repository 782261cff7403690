"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from dataclasses import replace
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine as create_sync_engine
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

# Create a temporary directory for test paths
_test_tmp_dir = tempfile.mkdtemp(prefix="vod_test_")

# Set config paths BEFORE importing app modules
os.environ["VOD_CONFIG_PATH"] = str(Path(_test_tmp_dir) / "config")
os.environ["VOD_DATA_PATH"] = str(Path(_test_tmp_dir) / "data")
os.environ.pop("VOD_ADMIN_API_KEY", None)

from app.archive import (  # noqa: E402
    ArchiveItem,
    CollectionNotFoundError,
    CollectionPage,
    ItemNotFoundError,
    SourceClient,
    SourceUnavailableError,
)
from app.db import create_engine, create_session_maker  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.models import Video  # noqa: E402
from app.main import create_app  # noqa: E402
from app.services.pipeline import VodPipeline  # noqa: E402


def build_item(source_id: str, **overrides) -> ArchiveItem:
    """Build a complete archive item descriptor."""
    values = {
        "title": f"Movie {source_id}",
        "description": "A public domain feature film.",
        "year": 1950,
        "duration_seconds": 5400,
        "language": "English",
        "thumbnail_url": f"https://archive.org/services/img/{source_id}",
        "video_url": f"https://archive.org/download/{source_id}/{source_id}.mp4",
        "video_format": "h.264",
    }
    values.update(overrides)
    return ArchiveItem(source_id=source_id, **values)


class FakeSourceClient(SourceClient):
    """In-memory stand-in for the Internet Archive."""

    def __init__(
        self,
        items: list[ArchiveItem] | None = None,
        collections: dict[str, list[str]] | None = None,
        delay: float = 0.0,
    ):
        self.items: dict[str, ArchiveItem] = {item.source_id: item for item in items or []}
        self.collections: dict[str, list[str]] = collections or {}
        self.delay = delay

        # Failure injection
        self.unavailable_items: set[str] = set()
        self.unavailable_pages: set[int] = set()
        self.failing_counts: set[str] = set()
        self.subtitles: dict[str, bytes] = {}

        # Call records
        self.fetch_calls: list[str] = []
        self.page_calls: list[tuple[str, int, int]] = []
        self.count_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    def add(self, *items: ArchiveItem) -> None:
        for item in items:
            self.items[item.source_id] = item

    async def search(self, query, *, limit=50, page=1, collection=None):
        if collection is not None and collection not in self.collections:
            raise CollectionNotFoundError(collection)
        pool = self.collections[collection] if collection else list(self.items)
        terms = query.lower()
        summaries = [self._summary(source_id) for source_id in pool]
        matches = [item for item in summaries if terms in (item.title or "").lower()]
        start = (page - 1) * limit
        return matches[start : start + limit]

    async def list_collection(self, collection_key, page=1, page_size=50):
        self.page_calls.append((collection_key, page, page_size))
        if collection_key not in self.collections:
            raise CollectionNotFoundError(collection_key)
        if page in self.unavailable_pages:
            raise SourceUnavailableError("Internet Archive returned 503", status_code=503)

        source_ids = self.collections[collection_key]
        start = (page - 1) * page_size
        pages = max(1, -(-len(source_ids) // page_size))
        return CollectionPage(
            items=[self._summary(source_id) for source_id in source_ids[start : start + page_size]],
            page=page,
            pages=pages,
            total=len(source_ids),
        )

    async def fetch_item(self, source_id):
        self.fetch_calls.append(source_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

        if source_id in self.unavailable_items:
            raise SourceUnavailableError()
        item = self.items.get(source_id)
        if item is None:
            raise ItemNotFoundError(source_id)
        return item

    async def count_collection(self, collection_key):
        self.count_calls.append(collection_key)
        if collection_key in self.failing_counts:
            raise SourceUnavailableError()
        return len(self.collections.get(collection_key, []))

    async def fetch_subtitle(self, item):
        content = self.subtitles.get(item.source_id)
        if content is None:
            raise ItemNotFoundError(item.source_id, "Subtitle file not found")
        return content

    async def close(self):
        self.closed = True

    def _summary(self, source_id: str) -> ArchiveItem:
        item = self.items.get(source_id)
        if item is None:
            return ArchiveItem(source_id=source_id, title=f"Movie {source_id}")
        return replace(item, video_url=None, video_format=None)


@pytest.fixture
def make_item():
    """Factory for complete archive item descriptors."""
    return build_item


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
async def session_maker(tmp_path):
    """Session factory over a fresh file-backed SQLite database.

    A file is used rather than :memory: so concurrent sessions get their own
    connections.
    """
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'vod.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield create_session_maker(engine)
    await engine.dispose()


# =============================================================================
# Pipeline
# =============================================================================


@pytest.fixture
def fake_source() -> FakeSourceClient:
    return FakeSourceClient()


def build_pipeline(source, session_maker, tmp_path: Path, **overrides) -> VodPipeline:
    values = {
        "concurrency": 4,
        "page_size": 10,
        "failure_detail_limit": 50,
        "stats_ttl": 300,
    }
    values.update(overrides)
    return VodPipeline(
        source=source,
        session_maker=session_maker,
        subtitle_dir=tmp_path / "subtitles",
        **values,
    )


@pytest.fixture
async def pipeline(fake_source, session_maker, tmp_path):
    pipeline = build_pipeline(fake_source, session_maker, tmp_path)
    yield pipeline
    await pipeline.jobs.shutdown()


# =============================================================================
# API
# =============================================================================


@pytest.fixture
def api_db_path(tmp_path) -> Path:
    """Create the schema for API tests with a synchronous engine.

    The TestClient runs the app in its own event loop, so the async engine it
    uses must not hold connections opened elsewhere.
    """
    db_path = tmp_path / "api.db"
    sync_engine = create_sync_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return db_path


@pytest.fixture
def seed_video(api_db_path):
    """Insert a video directly into the API test database."""

    def _seed(source_id: str, **overrides) -> Video:
        values = {
            "source_id": source_id,
            "title": f"Movie {source_id}",
            "video_url": f"https://archive.org/download/{source_id}/{source_id}.mp4",
            "category": "Classic",
        }
        values.update(overrides)
        sync_engine = create_sync_engine(f"sqlite:///{api_db_path}")
        with Session(sync_engine, expire_on_commit=False) as session:
            video = Video(**values)
            session.add(video)
            session.commit()
        sync_engine.dispose()
        return video

    return _seed


@pytest.fixture
def client(fake_source, api_db_path, tmp_path):
    """Create a test client whose pipeline uses the fake source and test database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{api_db_path}", poolclass=NullPool)
    app = create_app()
    app.state.pipeline = build_pipeline(fake_source, create_session_maker(engine), tmp_path)

    with TestClient(app) as test_client:
        yield test_client


def pytest_sessionfinish(session, exitstatus):
    """Clean up temp directories after test session."""
    if Path(_test_tmp_dir).exists():
        shutil.rmtree(_test_tmp_dir, ignore_errors=True)
