"""Album entity - gallery container with access restrictions."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from cimaise.core.timezone import utc_now


class Album(SQLModel, table=True):
    """Album groups images; NSFW and password-protected albums get blur placeholders."""

    __tablename__ = "albums"  # type: ignore[assignment]

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=255)
    is_nsfw: bool = Field(default=False, index=True)
    password_hash: Optional[str] = Field(default=None, max_length=255)
    cover_image_id: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))  # type: ignore[call-overload]

    @property
    def is_password_protected(self) -> bool:
        return bool(self.password_hash)

    @property
    def is_protected(self) -> bool:
        """True when album content is access-gated (NSFW or password)."""
        return self.is_nsfw or self.is_password_protected
