"""Unit of Work for the variant pipeline.

One session per unit, shared by the album, image, variant and settings repositories.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cimaise.repositories.album import AlbumRepository
from cimaise.repositories.image import ImageRepository
from cimaise.repositories.site_setting import SiteSettingRepository
from cimaise.repositories.variant import ImageVariantRepository

logger = structlog.get_logger(__name__)


class UnitOfWork:
    """Transaction boundary around the repositories.

    On clean exit of the ``async with`` block the session is committed; on an
    exception it is rolled back and the exception propagates.

    Example:
        async with await uow_factory() as uow:
            image = await uow.images.get_by_id(image_id)
            await uow.variants.record_variant(image.id, "sm", "webp", path, 768, 512)

    Loops that must keep earlier steps when a later one fails call
    commit()/rollback() explicitly after each step.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

        self.albums = AlbumRepository(session)
        self.images = ImageRepository(session)
        self.variants = ImageVariantRepository(session)
        self.site_settings = SiteSettingRepository(session)

    async def commit(self) -> None:
        """Commit the current step; the session stays usable."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Discard the current step.

        Loaded entities are expired afterwards; read what you need before calling.
        """
        await self.session.rollback()

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                await self.session.commit()
                logger.debug("transaction.committed")
            else:
                await self.session.rollback()
                logger.debug("transaction.rolled_back", exc_type=exc_type.__name__)
        finally:
            await self.session.close()

        return False


def create_uow_factory(session_factory: async_sessionmaker[AsyncSession]):
    """Return an async callable producing a UnitOfWork on a fresh session.

    Example:
        uow_factory = create_uow_factory(setup_db_session(settings.database_url))

        async with await uow_factory() as uow:
            ids = await uow.variants.find_images_missing_blur()
    """

    async def _create_uow() -> UnitOfWork:
        return UnitOfWork(session_factory())

    return _create_uow
