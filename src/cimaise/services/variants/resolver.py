"""Variant selection for presentation.

Works on variants already loaded with ImageVariantRepository.fetch_for_images();
nothing here queries the database. Variants stored under the internal prefix
("/storage/") and blur placeholders are never chosen for display.
"""

from collections.abc import Iterable, Sequence
from typing import Protocol

from cimaise.models.image_variant import BLUR_VARIANT, ImageFormat, format_weight

INTERNAL_PATH_PREFIX = "/storage/"


class VariantLike(Protocol):
    variant: str
    format: str
    path: str
    width: int


def is_internal_path(path: str, internal_prefix: str = INTERNAL_PATH_PREFIX) -> bool:
    """True for storage paths that must never be served directly."""
    return path.startswith(internal_prefix)


def _servable(variants: Iterable[VariantLike], internal_prefix: str) -> list[VariantLike]:
    return [
        v
        for v in variants
        if v.variant != BLUR_VARIANT and not is_internal_path(v.path, internal_prefix)
    ]


def best_grid_variant(
    variants: Sequence[VariantLike], internal_prefix: str = INTERNAL_PATH_PREFIX
) -> VariantLike | None:
    """Pick the grid thumbnail: best format first, then widest.

    Score is format weight + width. Format tiers are a million apart, so an AVIF
    at 800px beats a JPEG at 2000px. Ties keep the first variant seen.
    """
    best = None
    best_score = -1
    for variant in _servable(variants, internal_prefix):
        score = format_weight(variant.format) + int(variant.width or 0)
        if score > best_score:
            best, best_score = variant, score
    return best


def best_lightbox_variant(
    variants: Sequence[VariantLike], internal_prefix: str = INTERNAL_PATH_PREFIX
) -> VariantLike | None:
    """Pick the lightbox image: widest first, format only breaks width ties."""
    best = None
    best_key = (-1, -1)
    for variant in _servable(variants, internal_prefix):
        key = (int(variant.width or 0), format_weight(variant.format))
        if key > best_key:
            best, best_key = variant, key
    return best


def build_responsive_sources(
    variants: Sequence[VariantLike], internal_prefix: str = INTERNAL_PATH_PREFIX
) -> dict[str, list[str]]:
    """Group servable variants into srcset entries per format.

    Returns:
        {"avif": [...], "webp": [...], "jpg": [...]}, each entry "<path> <width>w",
        in the order given (the store returns widest first)
    """
    sources: dict[str, list[str]] = {
        fmt.value: [] for fmt in sorted(ImageFormat, key=lambda f: f.weight, reverse=True)
    }
    for variant in _servable(variants, internal_prefix):
        fmt = ImageFormat.parse(variant.format)
        if fmt is None:
            continue
        sources[fmt.value].append(f"{variant.path} {int(variant.width or 0)}w")
    return sources


def find_blur_variant(
    variants: Iterable[VariantLike], internal_prefix: str = INTERNAL_PATH_PREFIX
) -> VariantLike | None:
    """Return the blur placeholder shown in place of gated content, if any."""
    for variant in variants:
        if variant.variant == BLUR_VARIANT and not is_internal_path(variant.path, internal_prefix):
            return variant
    return None


class VariantResolver:
    """The selection functions bound to the configured internal path prefix.

    Example:
        resolver = VariantResolver.from_settings(settings)
        variants = (await uow.variants.fetch_for_images(ids)).get(image_id, [])
        thumb = resolver.best_grid_variant(variants)
    """

    def __init__(self, internal_prefix: str = INTERNAL_PATH_PREFIX):
        self.internal_prefix = internal_prefix

    @classmethod
    def from_settings(cls, settings) -> "VariantResolver":
        return cls(internal_prefix=settings.internal_path_prefix)

    def is_internal_path(self, path: str) -> bool:
        return is_internal_path(path, self.internal_prefix)

    def best_grid_variant(self, variants: Sequence[VariantLike]) -> VariantLike | None:
        return best_grid_variant(variants, self.internal_prefix)

    def best_lightbox_variant(self, variants: Sequence[VariantLike]) -> VariantLike | None:
        return best_lightbox_variant(variants, self.internal_prefix)

    def build_responsive_sources(self, variants: Sequence[VariantLike]) -> dict[str, list[str]]:
        return build_responsive_sources(variants, self.internal_prefix)

    def find_blur_variant(self, variants: Iterable[VariantLike]) -> VariantLike | None:
        return find_blur_variant(variants, self.internal_prefix)
