"""ImageVariant entity - one resized derivative of an Image."""

from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

BLUR_VARIANT = "blur"


class ImageFormat(str, Enum):
    """Output formats, from baseline to next-gen.

    weight orders formats when choosing a variant to serve. The gap between tiers
    is far larger than any pixel width, so a better format always beats a wider
    image in a lesser one.
    """

    JPG = "jpg"
    WEBP = "webp"
    AVIF = "avif"

    @property
    def weight(self) -> int:
        return _FORMAT_WEIGHTS[self]

    @property
    def pillow_format(self) -> str:
        return _PILLOW_FORMATS[self]

    @property
    def extension(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: "str | ImageFormat") -> Optional["ImageFormat"]:
        """Map a stored or configured format string to a member, None if unknown."""
        if isinstance(value, ImageFormat):
            return value
        normalized = str(value).strip().lower()
        if normalized == "jpeg":
            normalized = "jpg"
        try:
            return cls(normalized)
        except ValueError:
            return None


_FORMAT_WEIGHTS = {
    ImageFormat.AVIF: 3_000_000,
    ImageFormat.WEBP: 2_000_000,
    ImageFormat.JPG: 1_000_000,
}

_PILLOW_FORMATS = {
    ImageFormat.AVIF: "AVIF",
    ImageFormat.WEBP: "WEBP",
    ImageFormat.JPG: "JPEG",
}


def format_weight(value: str) -> int:
    """Weight of a stored format string; unknown formats weigh 0."""
    fmt = ImageFormat.parse(value)
    return fmt.weight if fmt else 0


class ImageVariant(SQLModel, table=True):
    """ImageVariant records one generated file for (image, variant name, format).

    variant is a breakpoint key ("sm", "md", ...) or "blur". Rows are written by
    upsert only, so a concurrent reader never sees a pair disappear.
    """

    __tablename__ = "image_variants"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("image_id", "variant", "format", name="uq_image_variants_image_variant_format"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    image_id: int = Field(foreign_key="images.id", index=True)
    variant: str = Field(max_length=50)
    format: str = Field(max_length=10)
    path: str = Field(max_length=1024)
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)

    @property
    def is_blur(self) -> bool:
        return self.variant == BLUR_VARIANT
