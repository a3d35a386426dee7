"""Site settings provider.

Settings are stored as JSON rows in the settings table and merged over built-in
defaults. The merged view is cached on the service instance, not in module
globals: create one service per process (or per request), pass it to whoever
needs it, and call clear_cache() before reads that must see other writers.
"""

from typing import Any, Callable

import structlog

from cimaise.models.image_variant import ImageFormat

logger = structlog.get_logger(__name__)

IMAGE_FORMATS_KEY = "image.formats"
IMAGE_QUALITY_KEY = "image.quality"
IMAGE_BREAKPOINTS_KEY = "image.breakpoints"
MAINTENANCE_LAST_RUN_KEY = "maintenance.variants_daily_last_run"

DEFAULT_SETTINGS: dict[str, Any] = {
    IMAGE_FORMATS_KEY: {"avif": True, "webp": True, "jpg": True},
    IMAGE_QUALITY_KEY: {"avif": 50, "webp": 75, "jpg": 85},
    IMAGE_BREAKPOINTS_KEY: {"sm": 768, "md": 1200, "lg": 1920, "xl": 2560, "xxl": 3840},
    MAINTENANCE_LAST_RUN_KEY: "",
}

_TRUE_STRINGS = {"1", "true", "yes", "on"}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


class SiteSettingsService:
    """Settings provider with an explicit, invalidatable cache.

    Example:
        settings = SiteSettingsService(uow_factory)
        formats = await settings.enabled_formats()
        await settings.set("maintenance.variants_daily_last_run", "2026-10-19")
    """

    def __init__(self, uow_factory: Callable, defaults: dict[str, Any] | None = None):
        """Initialize the provider.

        Args:
            uow_factory: Factory returned by create_uow_factory()
            defaults: Override for DEFAULT_SETTINGS
        """
        self.uow_factory = uow_factory
        self.defaults = dict(DEFAULT_SETTINGS if defaults is None else defaults)
        self._cache: dict[str, Any] | None = None

    def clear_cache(self) -> None:
        """Drop the cached view; the next read goes to the database."""
        self._cache = None

    async def _load(self) -> dict[str, Any]:
        if self._cache is None:
            async with await self.uow_factory() as uow:
                stored = await uow.site_settings.get_all()
            self._cache = {**self.defaults, **stored}
        return self._cache

    async def all(self) -> dict[str, Any]:
        return dict(await self._load())

    async def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value, the built-in default, or ``default``."""
        values = await self._load()
        value = values.get(key)
        return default if value is None else value

    async def set(self, key: str, value: Any) -> None:
        """Persist a value and invalidate the cache."""
        self._cache = None
        async with await self.uow_factory() as uow:
            await uow.site_settings.set_value(key, value)

    async def _mapping(self, key: str) -> dict:
        value = await self.get(key)
        if not isinstance(value, dict):
            # Malformed or missing values fall back to the built-in map
            logger.debug("settings.fallback_to_default", key=key)
            value = self.defaults.get(key) or {}
        return value

    async def enabled_formats(self) -> list[ImageFormat]:
        """Enabled output formats, in configured order.

        An explicitly empty or all-disabled map disables variant generation.
        """
        enabled: list[ImageFormat] = []
        for name, flag in (await self._mapping(IMAGE_FORMATS_KEY)).items():
            if not _as_bool(flag):
                continue
            fmt = ImageFormat.parse(name)
            if fmt is None:
                logger.warning("settings.unknown_format", format=name)
                continue
            if fmt not in enabled:
                enabled.append(fmt)
        return enabled

    async def breakpoints(self) -> dict[str, int]:
        """Breakpoint name -> target width; non-positive or non-numeric widths are dropped."""
        result: dict[str, int] = {}
        for name, width in (await self._mapping(IMAGE_BREAKPOINTS_KEY)).items():
            try:
                pixels = int(width)
            except (TypeError, ValueError):
                logger.warning("settings.invalid_breakpoint", breakpoint=name, width=width)
                continue
            if pixels > 0:
                result[str(name)] = pixels
        return result

    async def quality_for(self, fmt: ImageFormat) -> int:
        """Encoder quality for a format (1-100)."""
        qualities = await self._mapping(IMAGE_QUALITY_KEY)
        default = DEFAULT_SETTINGS[IMAGE_QUALITY_KEY][fmt.value]
        raw = qualities.get(fmt.value, qualities.get("jpeg") if fmt is ImageFormat.JPG else None)
        try:
            quality = int(raw) if raw is not None else default
        except (TypeError, ValueError):
            quality = default
        return max(1, min(100, quality))
