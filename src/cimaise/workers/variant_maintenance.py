"""Daily variant maintenance sweep.

Finds images with fewer variants than the configured formats x breakpoints
matrix and fills the gaps, then creates blur placeholders for images in NSFW or
password-protected albums. Meant to be triggered by cron (see
cimaise.cli.maintenance_run) and safe to trigger far more often than daily.

## Run-once-per-day protocol

1. FastCheck: last-run cache file says today -> stop (no lock, no query)
2. DurableCheck: settings row says today -> repair the cache file, stop
3. AcquireLock: non-blocking flock; held elsewhere -> stop silently
4. DoubleCheck: re-read the settings row under the lock (another process may
   have finished between 2 and 3)
5. Sweep: generate missing variants, then missing blur placeholders
6. Commit: settings row and cache file := today

The settings row is the source of truth; the cache file only saves a query on
the common "already ran" path. A failed sweep is logged, releases the lock and
leaves the date untouched so the next trigger retries. force=True skips steps
1, 2 and 4 but still takes the lock.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable

import structlog

from cimaise.core.locking import FileLock, MaintenanceLock
from cimaise.core.timezone import utc_now, utc_today
from cimaise.services.site_settings import MAINTENANCE_LAST_RUN_KEY, SiteSettingsService
from cimaise.services.variants.generator import VariantGenerator

logger = structlog.get_logger(__name__)


class MaintenanceStatus(str, Enum):
    """How a run_daily() invocation ended."""

    ALREADY_RAN = "already_ran"
    LOCKED = "locked"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class MaintenanceStats:
    images_checked: int = 0
    variants_generated: int = 0
    variants_skipped: int = 0
    variants_failed: int = 0
    blur_generated: int = 0
    blur_failed: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class MaintenanceOutcome:
    status: MaintenanceStatus
    stats: MaintenanceStats = field(default_factory=MaintenanceStats)
    error: str | None = None


class MaintenanceScheduler:
    """Lock-guarded, at-most-once-per-UTC-day completeness sweep."""

    def __init__(
        self,
        uow_factory: Callable,
        site_settings: SiteSettingsService,
        generator: VariantGenerator,
        last_run_file: Path,
        lock: MaintenanceLock,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the scheduler.

        Args:
            uow_factory: Factory returned by create_uow_factory()
            site_settings: Settings provider holding the durable last-run date
            generator: Variant generator invoked per image
            last_run_file: Cache file holding the last-run date
            lock: Mutual exclusion across processes
            clock: Returns the current time (UTC)
        """
        self.uow_factory = uow_factory
        self.site_settings = site_settings
        self.generator = generator
        self.last_run_file = Path(last_run_file)
        self.lock = lock
        self.clock = clock

    @classmethod
    def from_settings(cls, settings, uow_factory, site_settings, generator) -> "MaintenanceScheduler":
        """Build a scheduler using the configured lock and cache file paths."""
        return cls(
            uow_factory=uow_factory,
            site_settings=site_settings,
            generator=generator,
            last_run_file=settings.maintenance_last_run_file,
            lock=FileLock(settings.maintenance_lock_file),
        )

    async def run_daily(self, force: bool = False) -> MaintenanceOutcome:
        """Run the sweep unless it already ran today or is running elsewhere.

        Args:
            force: Ignore the last-run markers (the lock is still honoured)

        Returns:
            MaintenanceOutcome with the final status and sweep stats
        """
        today = utc_today(self.clock()).isoformat()
        self._ensure_cache_directory()

        if not force:
            # FastCheck
            if self._read_cached_last_run() == today:
                logger.debug("maintenance.skipped", reason="cache_file", date=today)
                return MaintenanceOutcome(MaintenanceStatus.ALREADY_RAN)

            # DurableCheck
            if await self._durable_last_run() == today:
                self._write_cached_last_run(today)
                logger.debug("maintenance.skipped", reason="settings", date=today)
                return MaintenanceOutcome(MaintenanceStatus.ALREADY_RAN)

        # AcquireLock
        if not self.lock.try_acquire():
            logger.debug("maintenance.locked", date=today)
            return MaintenanceOutcome(MaintenanceStatus.LOCKED)

        try:
            # DoubleCheck
            if not force and await self._durable_last_run() == today:
                self._write_cached_last_run(today)
                return MaintenanceOutcome(MaintenanceStatus.ALREADY_RAN)

            stats = MaintenanceStats()
            try:
                await self._sweep(stats)
                await self.site_settings.set(MAINTENANCE_LAST_RUN_KEY, today)
            except Exception as e:
                logger.warning(
                    "maintenance.failed",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    **stats.as_dict(),
                )
                return MaintenanceOutcome(MaintenanceStatus.FAILED, stats, error=str(e))

            self._write_cached_last_run(today)
            logger.info("maintenance.completed", date=today, force=force, **stats.as_dict())
            return MaintenanceOutcome(MaintenanceStatus.COMPLETED, stats)
        finally:
            self.lock.release()

    async def _sweep(self, stats: MaintenanceStats) -> None:
        """Fill variant gaps, then blur placeholders; accumulates into ``stats``."""
        formats = await self.site_settings.enabled_formats()
        breakpoints = await self.site_settings.breakpoints()

        if formats and breakpoints:
            format_values = [fmt.value for fmt in formats]
            expected = len(format_values) * len(breakpoints)
            async with await self.uow_factory() as uow:
                image_ids = await uow.variants.find_images_below_expected(
                    format_values, list(breakpoints), expected
                )

            stats.images_checked = len(image_ids)
            for image_id in image_ids:
                try:
                    result = await self.generator.generate_variants_for_image(image_id, force=False)
                except Exception as e:
                    stats.variants_failed += 1
                    logger.warning(
                        "maintenance.image_failed",
                        image_id=image_id,
                        error_type=type(e).__name__,
                        error_message=str(e),
                    )
                    continue
                stats.variants_generated += result.generated
                stats.variants_skipped += result.skipped
                stats.variants_failed += result.failed
        else:
            logger.info("maintenance.variants_disabled")

        async with await self.uow_factory() as uow:
            blur_ids = await uow.variants.find_images_missing_blur()

        for image_id in blur_ids:
            try:
                path = await self.generator.generate_blurred_variant(image_id, force=False)
            except Exception as e:
                stats.blur_failed += 1
                logger.warning(
                    "maintenance.blur_failed",
                    image_id=image_id,
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
                continue
            if path is not None:
                stats.blur_generated += 1

    async def _durable_last_run(self) -> str:
        self.site_settings.clear_cache()
        return str(await self.site_settings.get(MAINTENANCE_LAST_RUN_KEY, "") or "")

    def _ensure_cache_directory(self) -> None:
        try:
            self.last_run_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(
                "maintenance.cache_dir_failed",
                directory=str(self.last_run_file.parent),
                error=str(e),
            )

    def _read_cached_last_run(self) -> str | None:
        try:
            return self.last_run_file.read_text(encoding="utf-8").strip()
        except OSError:
            return None

    def _write_cached_last_run(self, today: str) -> None:
        try:
            self.last_run_file.write_text(today, encoding="utf-8")
        except OSError as e:
            logger.warning("maintenance.cache_write_failed", cache_file=str(self.last_run_file), error=str(e))
