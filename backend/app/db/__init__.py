"""Database package for the VOD ingest service."""

from app.db.base import Base
from app.db.session import async_session_maker, create_engine, create_session_maker, engine

__all__ = [
    "Base",
    "async_session_maker",
    "engine",
    "create_engine",
    "create_session_maker",
]
