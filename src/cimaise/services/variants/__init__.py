"""Image variant generation and selection."""

from cimaise.services.variants.generator import BlurResult, GenerationResult, VariantGenerator
from cimaise.services.variants.resolver import (
    VariantResolver,
    best_grid_variant,
    best_lightbox_variant,
    build_responsive_sources,
    find_blur_variant,
    is_internal_path,
)

__all__ = [
    "VariantGenerator",
    "VariantResolver",
    "GenerationResult",
    "BlurResult",
    "best_grid_variant",
    "best_lightbox_variant",
    "build_responsive_sources",
    "find_blur_variant",
    "is_internal_path",
]
