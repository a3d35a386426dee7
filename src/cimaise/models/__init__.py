"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
for Alembic autogenerate support.
"""

from cimaise.models.album import Album
from cimaise.models.image import Image
from cimaise.models.image_variant import BLUR_VARIANT, ImageFormat, ImageVariant, format_weight
from cimaise.models.site_setting import SiteSetting

__all__ = [
    "Album",
    "Image",
    "ImageVariant",
    "ImageFormat",
    "BLUR_VARIANT",
    "format_weight",
    "SiteSetting",
]
