"""Database session management."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings


def get_database_url() -> str:
    """Get the database URL, ensuring the SQLite directory exists."""
    if settings.database_url:
        return settings.database_url

    # Use configured path if it exists or is writable, otherwise use local ./config
    config_path = settings.config_path
    if not config_path.exists():
        try:
            config_path.mkdir(parents=True, exist_ok=True)
        except OSError:
            # Fall back to local directory for development
            config_path = Path("./config")
            config_path.mkdir(parents=True, exist_ok=True)

    db_path = config_path / settings.db_path.name
    return f"sqlite+aiosqlite:///{db_path}"


def create_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine, applying SQLite concurrency pragmas when needed.

    Concurrent imports write from several sessions at once, so SQLite runs in
    WAL mode with a generous busy timeout.
    """
    is_sqlite = url.startswith("sqlite")
    new_engine = create_async_engine(
        url,
        echo=echo,
        connect_args={"timeout": 30} if is_sqlite else {},
        pool_pre_ping=True,
    )

    if is_sqlite:

        @event.listens_for(new_engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute("PRAGMA busy_timeout=30000")  # 30 second busy timeout
            cursor.close()

    return new_engine


def create_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = create_engine(get_database_url(), echo=settings.debug)

async_session_maker = create_session_maker(engine)

