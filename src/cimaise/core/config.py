"""Application configuration using Pydantic BaseSettings."""

import logging
import sys
from pathlib import Path
from typing import TextIO

import structlog
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Site-level image settings (formats, breakpoints, quality) live in the
    database and are read through SiteSettingsService, not here.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./cimaise.db", alias="DATABASE_URL")
    db_pool_size: int = Field(default=20, alias="DB_POOL_SIZE")

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Storage layout: "/storage/..." paths resolve against storage_base_dir,
    # public "/media/..." paths resolve against public_dir.
    storage_base_dir: Path = Field(default=Path("."), alias="STORAGE_BASE_DIR")
    public_dir: Path = Field(default=Path("public"), alias="PUBLIC_DIR")
    media_url_prefix: str = Field(default="/media", alias="MEDIA_URL_PREFIX")
    internal_path_prefix: str = Field(default="/storage/", alias="INTERNAL_PATH_PREFIX")

    # Daily maintenance
    maintenance_lock_file: Path = Field(
        default=Path("storage/tmp/variants_daily.lock"), alias="MAINTENANCE_LOCK_FILE"
    )
    maintenance_last_run_file: Path = Field(
        default=Path("storage/tmp/variants_daily_lastrun.txt"), alias="MAINTENANCE_LAST_RUN_FILE"
    )

    # Blur placeholder for NSFW / password-protected albums
    blur_width: int = Field(default=480, gt=0, alias="BLUR_WIDTH")
    blur_radius: float = Field(default=24.0, gt=0, alias="BLUR_RADIUS")
    blur_quality: int = Field(default=60, ge=1, le=100, alias="BLUR_QUALITY")

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @model_validator(mode="after")
    def validate_paths_and_levels(self) -> "Settings":
        """Reject configuration that would break the maintenance sweep.

        The lock file and the last-run cache must be distinct files: the cache is
        rewritten while the lock is held.
        """
        problems = []

        if self.maintenance_lock_file == self.maintenance_last_run_file:
            problems.append("MAINTENANCE_LOCK_FILE and MAINTENANCE_LAST_RUN_FILE must differ")

        if self.log_level.upper() not in logging.getLevelNamesMapping():
            problems.append(f"LOG_LEVEL: unknown level {self.log_level!r}")

        if not self.internal_path_prefix.startswith("/"):
            problems.append("INTERNAL_PATH_PREFIX must be an absolute URL path")

        if problems:
            raise ValueError("Invalid configuration:\n" + "\n".join(f"  - {p}" for p in problems))

        return self


def configure_logging(settings: Settings, stream: TextIO | None = None) -> None:
    """Configure structlog based on application environment.

    - Production: JSON output for log aggregation
    - Development: Console output for human readability

    Args:
        settings: Application settings (APP_ENV, LOG_LEVEL)
        stream: Log destination (stdout when omitted)
    """
    level = logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO)

    if settings.app_env == "production":
        renderer_chain = [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer_chain = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            *renderer_chain,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=True,
    )
