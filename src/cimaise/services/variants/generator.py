"""Variant generation for a single image.

Brings one image's derivatives up to the configured matrix of enabled formats
x breakpoints. Each (format, breakpoint) pair is encoded and recorded as one
committed step; a failing pair is counted and logged, never fatal to the rest.

Calls are idempotent: pairs that already have a row are skipped unless forced,
so overlapping cron runs and on-demand admin requests at worst repeat work.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import structlog

from cimaise.core.config import Settings
from cimaise.models.image_variant import BLUR_VARIANT, ImageFormat
from cimaise.services.exceptions import ImageNotFoundError
from cimaise.services.imaging.encoder import ImageEncoder
from cimaise.services.site_settings import SiteSettingsService

logger = structlog.get_logger(__name__)


@dataclass
class GenerationResult:
    """Counts from one generate_variants_for_image() call."""

    generated: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class BlurResult:
    """Counts from blurring every image of an album."""

    generated: int = 0
    skipped: int = 0
    failed: int = 0


class VariantGenerator:
    """Produces missing derivatives and records them in the variant store."""

    def __init__(
        self,
        uow_factory: Callable,
        site_settings: SiteSettingsService,
        encoder: ImageEncoder,
        settings: Settings,
    ):
        """Initialize the generator.

        Args:
            uow_factory: Factory returned by create_uow_factory()
            site_settings: Provider for formats, breakpoints and quality
            encoder: Image encoder collaborator
            settings: Application settings (storage layout, blur parameters)
        """
        self.uow_factory = uow_factory
        self.site_settings = site_settings
        self.encoder = encoder
        self.settings = settings

    def source_path(self, original_path: str) -> Path:
        """Filesystem location of an image's original file."""
        return self.settings.storage_base_dir / original_path.lstrip("/")

    def public_file(self, public_path: str) -> Path:
        """Filesystem location of a public "/media/..." path."""
        return self.settings.public_dir / public_path.lstrip("/")

    def variant_path(self, image_id: int, name: str, fmt: ImageFormat) -> str:
        prefix = self.settings.media_url_prefix.rstrip("/")
        return f"{prefix}/{image_id}_{name}.{fmt.extension}"

    def blur_path(self, image_id: int) -> str:
        prefix = self.settings.media_url_prefix.rstrip("/")
        return f"{prefix}/blur/{image_id}_{BLUR_VARIANT}.{ImageFormat.JPG.extension}"

    async def generate_variants_for_image(self, image_id: int, force: bool = False) -> GenerationResult:
        """Generate every missing (format, breakpoint) variant of one image.

        Workflow:
        1. Resolve enabled formats and breakpoints; either empty -> no-op
        2. Load the image row (missing -> ImageNotFoundError)
        3. Load existing (variant, format) keys in one query
        4. For each pair: skip if present and not forced, otherwise encode,
           upsert the row and commit; on any failure roll back and count it

        Args:
            image_id: Image to process
            force: Regenerate pairs that already exist

        Returns:
            GenerationResult with generated/skipped/failed counts

        Raises:
            ImageNotFoundError: No image row with this id
        """
        result = GenerationResult()

        formats = await self.site_settings.enabled_formats()
        breakpoints = await self.site_settings.breakpoints()
        if not formats or not breakpoints:
            logger.info(
                "variant.generation.disabled",
                image_id=image_id,
                formats=len(formats),
                breakpoints=len(breakpoints),
            )
            return result

        qualities = {fmt: await self.site_settings.quality_for(fmt) for fmt in formats}

        async with await self.uow_factory() as uow:
            image = await uow.images.get_by_id(image_id)
            if image is None:
                raise ImageNotFoundError(image_id)

            # Rollback expires loaded rows; keep plain values only
            source = self.source_path(image.original_path)
            existing = await uow.variants.get_existing_keys(image_id)

            for fmt in formats:
                for name, width in breakpoints.items():
                    if (name, fmt.value) in existing and not force:
                        result.skipped += 1
                        continue

                    public_path = self.variant_path(image_id, name, fmt)
                    try:
                        rendered = await asyncio.to_thread(
                            self.encoder.render,
                            source,
                            self.public_file(public_path),
                            width,
                            fmt,
                            qualities[fmt],
                        )
                        await uow.variants.record_variant(
                            image_id=image_id,
                            name=name,
                            format=fmt.value,
                            path=public_path,
                            width=rendered.width,
                            height=rendered.height,
                        )
                        await uow.commit()
                        result.generated += 1
                    except Exception as e:
                        await uow.rollback()
                        result.failed += 1
                        logger.warning(
                            "variant.generation.failed",
                            image_id=image_id,
                            variant=name,
                            format=fmt.value,
                            error_type=type(e).__name__,
                            error_message=str(e),
                        )

        logger.info(
            "variant.generation.finished",
            image_id=image_id,
            generated=result.generated,
            skipped=result.skipped,
            failed=result.failed,
            force=force,
        )
        return result

    async def generate_blurred_variant(self, image_id: int, force: bool = False) -> str | None:
        """Generate the blurred placeholder used for access-gated albums.

        Returns None (not an error) when the image or its source file is missing,
        or when the blur row and file already exist and force is false.

        Args:
            image_id: Image to blur
            force: Regenerate an existing placeholder

        Returns:
            Public path of the placeholder, or None

        Raises:
            EncodingError: The encoder failed
        """
        async with await self.uow_factory() as uow:
            image = await uow.images.get_by_id(image_id)
            if image is None:
                logger.warning("blur.image_not_found", image_id=image_id)
                return None

            source = self.source_path(image.original_path)
            if not source.is_file():
                logger.warning("blur.source_missing", image_id=image_id, source=str(source))
                return None

            existing = await uow.variants.get(image_id, BLUR_VARIANT, ImageFormat.JPG.value)
            if existing is not None and not force and self.public_file(existing.path).is_file():
                return None

            public_path = self.blur_path(image_id)
            rendered = await asyncio.to_thread(
                self.encoder.render_blur,
                source,
                self.public_file(public_path),
                self.settings.blur_width,
                self.settings.blur_radius,
                self.settings.blur_quality,
            )
            await uow.variants.record_variant(
                image_id=image_id,
                name=BLUR_VARIANT,
                format=ImageFormat.JPG.value,
                path=public_path,
                width=rendered.width,
                height=rendered.height,
            )

        logger.info("blur.generated", image_id=image_id, path=public_path)
        return public_path

    async def generate_blurred_variants_for_album(self, album_id: int, force: bool = False) -> BlurResult:
        """Blur every image of one album; per-image failures are counted."""
        result = BlurResult()

        async with await self.uow_factory() as uow:
            image_ids = await uow.images.list_ids_for_album(album_id)

        for image_id in image_ids:
            try:
                path = await self.generate_blurred_variant(image_id, force)
            except Exception as e:
                result.failed += 1
                logger.warning(
                    "blur.generation.failed",
                    album_id=album_id,
                    image_id=image_id,
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
                continue

            if path is None:
                result.skipped += 1
            else:
                result.generated += 1

        return result
