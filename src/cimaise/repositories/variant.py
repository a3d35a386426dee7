"""ImageVariant repository for Cimaise.

Provides the completeness query, the idempotent variant upsert, and the batched
read used to render galleries without per-image queries.
"""

from collections.abc import Iterable, Sequence

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from cimaise.core.database import dialect_insert
from cimaise.models.album import Album
from cimaise.models.image import Image
from cimaise.models.image_variant import BLUR_VARIANT, ImageVariant


class ImageVariantRepository:
    """Repository for ImageVariant entities.

    Writes are upserts keyed on (image_id, variant, format); nothing here deletes
    rows or touches files.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def find_images_below_expected(
        self,
        formats: Sequence[str],
        variant_names: Sequence[str],
        expected_count: int,
    ) -> list[int]:
        """Find images with fewer variants than the configured matrix.

        Single aggregate query, no per-image round trip. The result is a snapshot:
        a concurrent generator may fill gaps before the caller acts, which is fine
        because generation skips pairs that already exist.

        Query explanation:
        - LEFT JOIN image_variants restricted to the given names and formats
        - GROUP BY image: count matching variant rows (0 when none)
        - HAVING count < expected: incomplete images only

        Args:
            formats: Enabled format identifiers ("avif", "webp", "jpg")
            variant_names: Breakpoint names ("sm", "md", ...)
            expected_count: len(formats) * len(variant_names)

        Returns:
            Image ids ordered ascending
        """
        if not formats or not variant_names:
            return []

        variant_count = func.count(ImageVariant.id)  # type: ignore[arg-type]
        result = await self.session.execute(
            select(Image.id)
            .outerjoin(
                ImageVariant,
                and_(
                    ImageVariant.image_id == Image.id,  # type: ignore[arg-type]
                    ImageVariant.variant.in_(list(variant_names)),  # type: ignore[attr-defined]
                    ImageVariant.format.in_(list(formats)),  # type: ignore[attr-defined]
                ),
            )
            .group_by(Image.id)
            .having(variant_count < expected_count)
            .order_by(Image.id)
        )
        return list(result.scalars().all())

    async def find_images_missing_blur(self) -> list[int]:
        """Find images in NSFW or password-protected albums without a blur variant.

        Returns:
            Image ids ordered ascending
        """
        result = await self.session.execute(
            select(Image.id)
            .join(Album, Album.id == Image.album_id)  # type: ignore[arg-type]
            .outerjoin(
                ImageVariant,
                and_(
                    ImageVariant.image_id == Image.id,  # type: ignore[arg-type]
                    ImageVariant.variant == BLUR_VARIANT,  # type: ignore[arg-type]
                ),
            )
            .where(
                or_(
                    Album.is_nsfw == True,  # noqa: E712
                    and_(Album.password_hash.is_not(None), Album.password_hash != ""),  # type: ignore[union-attr]
                )
            )
            .where(ImageVariant.id.is_(None))  # type: ignore[union-attr]
            .order_by(Image.id)
        )
        return list(result.scalars().all())

    async def record_variant(
        self,
        image_id: int,
        name: str,
        format: str,
        path: str,
        width: int,
        height: int,
    ) -> None:
        """Insert or replace the row for (image_id, name, format).

        Uses INSERT ... ON CONFLICT DO UPDATE so the row is never momentarily
        absent, unlike delete-then-insert.

        Args:
            image_id: Owning image id
            name: Breakpoint name or "blur"
            format: Format identifier
            path: Public path of the generated file
            width: Pixel width of the generated file
            height: Pixel height of the generated file
        """
        insert = dialect_insert(self.session)
        stmt = insert(ImageVariant).values(
            image_id=image_id,
            variant=name,
            format=format,
            path=path,
            width=width,
            height=height,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["image_id", "variant", "format"],
            set_={
                "path": stmt.excluded.path,
                "width": stmt.excluded.width,
                "height": stmt.excluded.height,
            },
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def get(self, image_id: int, name: str, format: str) -> ImageVariant | None:
        """Retrieve one variant row, None if it does not exist."""
        result = await self.session.execute(
            select(ImageVariant).where(
                ImageVariant.image_id == image_id,  # type: ignore[arg-type]
                ImageVariant.variant == name,  # type: ignore[arg-type]
                ImageVariant.format == format,  # type: ignore[arg-type]
            )
        )
        return result.scalars().first()

    async def get_existing_keys(self, image_id: int) -> set[tuple[str, str]]:
        """Return the (variant, format) pairs already recorded for an image."""
        result = await self.session.execute(
            select(ImageVariant.variant, ImageVariant.format).where(
                ImageVariant.image_id == image_id  # type: ignore[arg-type]
            )
        )
        return {(variant, fmt) for variant, fmt in result.all()}

    async def fetch_for_images(self, image_ids: Iterable[int]) -> dict[int, list[ImageVariant]]:
        """Eager-load every variant for a batch of images in one query.

        Rows come back ordered by image id then width descending and are grouped
        per image. Images without variants are absent from the mapping. Internal
        storage paths are returned as-is; filter them before presenting.

        Args:
            image_ids: Ids of the images being rendered

        Returns:
            Mapping of image id to its variants (widest first)
        """
        ids = list(dict.fromkeys(image_ids))
        if not ids:
            return {}

        result = await self.session.execute(
            select(ImageVariant)
            .where(ImageVariant.image_id.in_(ids))  # type: ignore[attr-defined]
            .order_by(ImageVariant.image_id, ImageVariant.width.desc(), ImageVariant.id)  # type: ignore[attr-defined]
        )

        grouped: dict[int, list[ImageVariant]] = {}
        for variant in result.scalars().all():
            grouped.setdefault(variant.image_id, []).append(variant)
        return grouped
