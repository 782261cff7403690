"""Application configuration using pydantic-settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="VOD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "VOD Ingest"
    version: str = "0.3.0"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=5000, description="Server port")

    # Paths - Container volume mounts
    config_path: Path = Field(
        default=Path("/config"),
        description="Path for configuration files and database",
    )
    data_path: Path = Field(
        default=Path("/data"),
        description="Path for downloaded subtitle tracks",
    )

    # Database
    database_url: str | None = Field(
        default=None,
        description="Database connection URL (defaults to SQLite under config_path)",
    )

    # CORS
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins",
    )

    # Admin access. Session auth lives in the main platform; this is a shared
    # key the admin console forwards. Unset disables the check.
    admin_api_key: str | None = Field(
        default=None,
        description="Shared key expected in the X-Admin-Key header",
    )

    # Internet Archive
    archive_base_url: str = Field(
        default="https://archive.org",
        description="Base URL of the Internet Archive",
    )
    archive_timeout: float = Field(
        default=30.0,
        ge=1.0,
        description="Timeout in seconds for archive requests",
    )
    archive_max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per archive request before giving up",
    )
    archive_backoff_initial: float = Field(
        default=1.0,
        ge=0.0,
        description="Initial backoff in seconds between archive retries",
    )
    archive_backoff_max: float = Field(
        default=8.0,
        ge=0.0,
        description="Maximum backoff in seconds between archive retries",
    )
    archive_rate_limit_rpm: int = Field(
        default=60,
        ge=1,
        description="Archive requests per minute across the whole process",
    )

    # Import pipeline
    import_concurrency: int = Field(
        default=4,
        ge=1,
        le=16,
        description="Items imported in parallel across all batches and jobs",
    )
    job_page_size: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Collection items fetched per page by import jobs",
    )
    job_failure_detail_limit: int = Field(
        default=50,
        ge=0,
        description="Per-item failure reasons kept on a job for the detail view",
    )
    max_collection_limit: int = Field(
        default=1000,
        ge=1,
        description="Largest item limit accepted for a collection import",
    )
    collection_stats_ttl: int = Field(
        default=300,
        ge=0,
        description="Seconds to cache approximate collection counts",
    )

    @property
    def subtitle_path(self) -> Path:
        """Get the directory where synced subtitle tracks are stored."""
        return self.data_path / "subtitles"

    @property
    def db_path(self) -> Path:
        """Get the SQLite database file path."""
        return self.config_path / "vod.db"


# Global settings instance
settings = Settings()
