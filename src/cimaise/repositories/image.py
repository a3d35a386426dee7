"""Image repository for Cimaise.

Provides data access methods for source Image entities.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cimaise.models.image import Image


class ImageRepository:
    """Repository for Image entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add(self, image: Image) -> Image:
        """Persist new image to database.

        Args:
            image: Image entity to persist

        Returns:
            Persisted image with generated ID
        """
        self.session.add(image)
        await self.session.flush()
        return image

    async def get_by_id(self, image_id: int) -> Image | None:
        """Retrieve image by id.

        Args:
            image_id: Image's unique identifier

        Returns:
            Image if found, None otherwise
        """
        result = await self.session.execute(select(Image).where(Image.id == image_id))  # type: ignore[arg-type]
        return result.scalar_one_or_none()

    async def get_first_in_album(self, album_id: int) -> Image | None:
        """Retrieve the first image of an album by sort order, then id."""
        result = await self.session.execute(
            select(Image)
            .where(Image.album_id == album_id)  # type: ignore[arg-type]
            .order_by(Image.sort_order.asc(), Image.id.asc())  # type: ignore[attr-defined,union-attr]
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_ids_for_album(self, album_id: int) -> list[int]:
        """Retrieve all image ids of an album in display order."""
        result = await self.session.execute(
            select(Image.id)
            .where(Image.album_id == album_id)  # type: ignore[arg-type]
            .order_by(Image.sort_order.asc(), Image.id.asc())  # type: ignore[attr-defined,union-attr]
        )
        return list(result.scalars().all())
