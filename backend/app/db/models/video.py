"""Video model for imported catalog entries."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, utcnow
from app.db.models.enums import SourceType


class Video(Base):
    """A movie imported from the archive into the local VOD catalog.

    ``source_id`` is the dedup key: the unique index is the single source of
    truth when several imports of the same item race each other.
    """

    __tablename__ = "videos"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # Source identification
    source_type: Mapped[SourceType] = mapped_column(
        Enum(SourceType), default=SourceType.ARCHIVE, nullable=False
    )
    source_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    # Descriptive metadata
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    duration_seconds: Mapped[int] = mapped_column(Integer, default=0)
    language: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Media
    video_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    # Subtitles
    has_subtitles: Mapped[bool] = mapped_column(Boolean, default=False)
    subtitle_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    subtitle_language: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    subtitle_synced: Mapped[bool] = mapped_column(Boolean, default=False)
    subtitle_path: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    # Admin state
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Indexes
    __table_args__ = (
        Index("ix_videos_active_created", "is_active", "created_at"),
        Index("ix_videos_category", "category"),
        Index("ix_videos_has_subtitles", "has_subtitles"),
    )
