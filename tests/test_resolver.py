"""Variant selection tests (pure functions, no database)."""

from dataclasses import dataclass

from cimaise.core.config import Settings
from cimaise.core.dependencies import build_services
from cimaise.services.variants.resolver import (
    VariantResolver,
    best_grid_variant,
    best_lightbox_variant,
    build_responsive_sources,
    find_blur_variant,
    is_internal_path,
)


@dataclass
class V:
    variant: str
    format: str
    path: str
    width: int


def test_grid_prefers_format_over_width():
    """A next-gen format at 800px beats a 2000px JPEG for the grid."""
    jpg_wide = V("xl", "jpg", "/media/1_xl.jpg", 2000)
    avif_small = V("md", "avif", "/media/1_md.avif", 800)
    webp_mid = V("lg", "webp", "/media/1_lg.webp", 1200)

    assert best_grid_variant([jpg_wide, webp_mid, avif_small]) is avif_small


def test_grid_prefers_wider_within_format():
    small = V("sm", "webp", "/media/1_sm.webp", 768)
    large = V("lg", "webp", "/media/1_lg.webp", 1920)

    assert best_grid_variant([small, large]) is large


def test_lightbox_prefers_width_over_format():
    jpg_wide = V("xl", "jpg", "/media/1_xl.jpg", 2000)
    avif_small = V("md", "avif", "/media/1_md.avif", 800)

    assert best_lightbox_variant([avif_small, jpg_wide]) is jpg_wide


def test_lightbox_breaks_width_ties_by_format():
    jpg = V("lg", "jpg", "/media/1_lg.jpg", 1920)
    webp = V("lg", "webp", "/media/1_lg.webp", 1920)

    assert best_lightbox_variant([jpg, webp]) is webp


def test_ties_keep_first_seen():
    first = V("lg", "webp", "/media/a.webp", 1920)
    second = V("lg", "webp", "/media/b.webp", 1920)

    assert best_grid_variant([first, second]) is first
    assert best_lightbox_variant([first, second]) is first


def test_internal_paths_are_never_selected():
    internal = V("xxl", "avif", "/storage/originals/1.avif", 3840)
    public = V("sm", "jpg", "/media/1_sm.jpg", 768)

    assert best_grid_variant([internal, public]) is public
    assert best_lightbox_variant([internal, public]) is public
    assert build_responsive_sources([internal, public]) == {
        "avif": [],
        "webp": [],
        "jpg": ["/media/1_sm.jpg 768w"],
    }
    assert best_grid_variant([internal]) is None
    assert best_lightbox_variant([internal]) is None


def test_custom_internal_prefix():
    private = V("lg", "webp", "/private/1_lg.webp", 1920)
    media = V("sm", "webp", "/media/1_sm.webp", 768)

    assert best_lightbox_variant([private, media], internal_prefix="/private/") is media
    assert is_internal_path("/private/x.jpg", "/private/")
    assert not is_internal_path("/media/x.jpg")


def test_blur_is_excluded_from_display_selection():
    blur = V("blur", "jpg", "/media/blur/1_blur.jpg", 480)
    sm = V("sm", "jpg", "/media/1_sm.jpg", 768)

    assert best_grid_variant([blur, sm]) is sm
    assert best_lightbox_variant([blur]) is None
    assert build_responsive_sources([blur])["jpg"] == []
    assert find_blur_variant([sm, blur]) is blur
    assert find_blur_variant([sm]) is None


def test_empty_input():
    assert best_grid_variant([]) is None
    assert best_lightbox_variant([]) is None
    assert build_responsive_sources([]) == {"avif": [], "webp": [], "jpg": []}


def test_responsive_sources_keep_order_and_normalize_jpeg():
    variants = [
        V("lg", "webp", "/media/1_lg.webp", 1920),
        V("lg", "jpeg", "/media/1_lg.jpg", 1920),
        V("sm", "webp", "/media/1_sm.webp", 768),
        V("sm", "gif", "/media/1_sm.gif", 768),
    ]

    sources = build_responsive_sources(variants)

    assert list(sources) == ["avif", "webp", "jpg"]
    assert sources["webp"] == ["/media/1_lg.webp 1920w", "/media/1_sm.webp 768w"]
    assert sources["jpg"] == ["/media/1_lg.jpg 1920w"]
    assert sources["avif"] == []


def test_configured_internal_prefix_reaches_the_service_resolver(tmp_path):
    """INTERNAL_PATH_PREFIX decides what the wired resolver excludes."""
    settings = Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'resolver.db'}",
        internal_path_prefix="/private/",
        maintenance_lock_file=tmp_path / "variants.lock",
        maintenance_last_run_file=tmp_path / "variants_lastrun.txt",
    )
    services = build_services(settings, uow_factory=lambda: None)
    private = V("xl", "avif", "/private/1_xl.avif", 2560)
    storage = V("lg", "webp", "/storage/1_lg.webp", 1920)
    media = V("sm", "jpg", "/media/1_sm.jpg", 768)
    variants = [private, storage, media]

    resolver = services.resolver
    assert resolver.internal_prefix == "/private/"
    assert resolver.best_grid_variant(variants) is storage
    assert resolver.best_lightbox_variant(variants) is storage
    assert resolver.build_responsive_sources(variants)["avif"] == []
    assert resolver.is_internal_path("/private/x.jpg")
    assert VariantResolver().best_grid_variant(variants) is private
