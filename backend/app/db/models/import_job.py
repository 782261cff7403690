"""ImportJob model mirroring collection import jobs for the history view."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.db.models.enums import ImportJobStatus


class ImportJobRecord(Base):
    """Durable copy of an in-memory import job.

    The live job is owned by the job store; this row only follows it so the
    admin console can list past jobs after a restart.
    """

    __tablename__ = "import_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    collection_key: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[ImportJobStatus] = mapped_column(
        Enum(ImportJobStatus), default=ImportJobStatus.QUEUED
    )

    # Progress and outcome counters
    progress_percent: Mapped[int] = mapped_column(Integer, default=0)
    requested_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    items_processed: Mapped[int] = mapped_column(Integer, default=0)
    imported_count: Mapped[int] = mapped_column(Integer, default=0)
    skipped_count: Mapped[int] = mapped_column(Integer, default=0)
    failed_count: Mapped[int] = mapped_column(Integer, default=0)

    # Failure details
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    failures: Mapped[list[dict]] = mapped_column(JSON, default=list)

    # Timestamps
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (Index("ix_import_jobs_started_at", "started_at"),)
