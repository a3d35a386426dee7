"""SiteSetting repository for Cimaise.

Provides data access methods for the settings key-value store.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from cimaise.core.database import dialect_insert
from cimaise.models.site_setting import SiteSetting, validate_setting_key


class SiteSettingRepository:
    """Repository for SiteSetting key-value store.

    Provides UPSERT behavior (INSERT ... ON CONFLICT DO UPDATE) for setting values.
    Values are stored as JSON and automatically serialized/deserialized.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def get_value(self, key: str) -> Any | None:
        """Retrieve the value for a key.

        Args:
            key: Setting key (e.g., "image.formats")

        Returns:
            Deserialized value if found, None otherwise
        """
        result = await self.session.execute(select(SiteSetting).where(SiteSetting.key == key))  # type: ignore[arg-type]
        setting = result.scalar_one_or_none()
        return setting.value if setting else None

    async def get_all(self) -> dict[str, Any]:
        """Retrieve every stored setting as a key -> value mapping."""
        result = await self.session.execute(select(SiteSetting.key, SiteSetting.value))  # type: ignore[call-overload]
        return {key: value for key, value in result.all()}

    async def set_value(self, key: str, value: Any) -> None:
        """Set the value for a key (UPSERT).

        Query explanation:
        - INSERT: Try to insert new row
        - ON CONFLICT (key): If key already exists
        - DO UPDATE: Update existing row with new value and timestamp

        Args:
            key: Setting key (alphanumeric, dots, underscores)
            value: JSON-serializable value
        """
        validate_setting_key(key)
        now = datetime.now(timezone.utc)
        insert = dialect_insert(self.session)
        stmt = insert(SiteSetting).values(key=key, value=value, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=["key"],
            set_={"value": stmt.excluded.value, "updated_at": now},
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def delete_value(self, key: str) -> bool:
        """Delete a setting (idempotent).

        Returns:
            True if the key was deleted, False if it did not exist
        """
        result = await self.session.execute(delete(SiteSetting).where(SiteSetting.key == key))  # type: ignore[arg-type]
        await self.session.flush()
        return result.rowcount > 0  # type: ignore[attr-defined]
