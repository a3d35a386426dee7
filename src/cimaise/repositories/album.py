"""Album repository for Cimaise."""

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from cimaise.models.album import Album


class AlbumRepository:
    """Repository for Album entities."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, album: Album) -> Album:
        self.session.add(album)
        await self.session.flush()
        return album

    async def get_by_id(self, album_id: int) -> Album | None:
        result = await self.session.execute(select(Album).where(Album.id == album_id))  # type: ignore[arg-type]
        return result.scalar_one_or_none()

    async def get_protected(
        self,
        nsfw_only: bool = False,
        password_only: bool = False,
        album_id: int | None = None,
    ) -> list[Album]:
        """Retrieve access-gated albums.

        Args:
            nsfw_only: Only albums flagged NSFW
            password_only: Only password-protected albums (ignored with nsfw_only)
            album_id: Restrict to a single album

        Returns:
            Matching albums ordered by id
        """
        password_set = and_(Album.password_hash.is_not(None), Album.password_hash != "")  # type: ignore[union-attr]
        nsfw = Album.is_nsfw == True  # noqa: E712

        if nsfw_only:
            condition = nsfw
        elif password_only:
            condition = password_set
        else:
            condition = or_(nsfw, password_set)

        stmt = select(Album).where(condition)
        if album_id is not None:
            stmt = stmt.where(Album.id == album_id)  # type: ignore[arg-type]

        result = await self.session.execute(stmt.order_by(Album.id))  # type: ignore[arg-type]
        return list(result.scalars().all())
