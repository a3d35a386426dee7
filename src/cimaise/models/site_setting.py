"""SiteSetting entity - key-value store for site configuration and operational state."""

from datetime import datetime
from typing import Any

from pydantic import field_validator
from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from cimaise.core.timezone import utc_now


def validate_setting_key(key: str) -> str:
    """Validate key is alphanumeric with dots and underscores only."""
    if not key or not key.replace("_", "").replace(".", "").isalnum():
        raise ValueError("Key must be alphanumeric with dots and underscores only")
    return key


class SiteSetting(SQLModel, table=True):
    """SiteSetting holds one JSON value per dotted key ("image.formats")."""

    __tablename__ = "settings"  # type: ignore[assignment]

    key: str = Field(primary_key=True, max_length=255)
    value: Any = Field(default=None, sa_column=Column(JSON))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))  # type: ignore[call-overload]

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        return validate_setting_key(v)
