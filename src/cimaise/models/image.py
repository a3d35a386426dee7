"""Image entity - one uploaded source photograph."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from cimaise.core.timezone import utc_now


class Image(SQLModel, table=True):
    """Image is the source every variant is derived from.

    original_path is a storage path ("/storage/originals/<hash>.jpg") that is never
    served directly; file_hash is the content hash used for dedup and traceability.
    """

    __tablename__ = "images"  # type: ignore[assignment]

    id: Optional[int] = Field(default=None, primary_key=True)
    album_id: int = Field(foreign_key="albums.id", index=True)
    original_path: str = Field(max_length=1024)
    file_hash: str = Field(max_length=64, index=True)
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)
    mime: str = Field(default="image/jpeg", max_length=100)
    sort_order: int = Field(default=0)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))  # type: ignore[call-overload]
