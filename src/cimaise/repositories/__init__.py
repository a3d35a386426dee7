"""Repository layer for Cimaise.

Provides data access abstractions for all domain entities.
Each repository is self-contained; there are no base classes.
"""

from cimaise.repositories.album import AlbumRepository
from cimaise.repositories.image import ImageRepository
from cimaise.repositories.site_setting import SiteSettingRepository
from cimaise.repositories.variant import ImageVariantRepository

__all__ = [
    "AlbumRepository",
    "ImageRepository",
    "ImageVariantRepository",
    "SiteSettingRepository",
]
