"""CLI command for blurring covers of NSFW and password-protected albums.

Usage:
    python -m cimaise.cli.protected_blur [OPTIONS]

Examples:
    # Blur the cover (or first image) of every protected album
    python -m cimaise.cli.protected_blur

    # Blur every image of album 7, replacing existing placeholders
    python -m cimaise.cli.protected_blur --album 7 --all --force

    # NSFW albums only
    python -m cimaise.cli.protected_blur --nsfw-only
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace
from collections.abc import Sequence

import structlog

from cimaise.core import timezone  # noqa: F401
from cimaise.core.config import Settings, configure_logging
from cimaise.core.dependencies import AppServices, build_services
from cimaise.models.album import Album
from cimaise.services.variants.generator import BlurResult

logger = structlog.get_logger()


def parse_args(argv: Sequence[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(
        description="Generate blurred image variants for NSFW and password-protected album covers"
    )
    parser.add_argument("-a", "--album", type=int, help="Process only this album ID")
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Force regeneration of existing blur variants",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Process all images in protected albums (not just covers)",
    )
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--nsfw-only", action="store_true", help="Process only NSFW albums")
    scope.add_argument(
        "--password-only",
        action="store_true",
        help="Process only password-protected albums",
    )
    return parser.parse_args(argv)


def _protection_label(album: Album) -> str:
    labels = []
    if album.is_nsfw:
        labels.append("NSFW")
    if album.is_password_protected:
        labels.append("password")
    return "+".join(labels)


async def _blur_cover(services: AppServices, album: Album, force: bool, totals: BlurResult, errors: list[str]):
    """Blur the album cover, falling back to the album's first image."""
    image_id = album.cover_image_id
    label = "cover image"
    if image_id is None:
        async with await services.uow_factory() as uow:
            first = await uow.images.get_first_in_album(album.id)  # type: ignore[arg-type]
        if first is None:
            totals.skipped += 1
            print("  No images in album")
            return
        image_id, label = first.id, "first image"

    try:
        path = await services.generator.generate_blurred_variant(image_id, force)  # type: ignore[arg-type]
    except Exception as e:
        totals.failed += 1
        errors.append(f"Album #{album.id}: {e}")
        return

    if path is None:
        totals.skipped += 1
        print(f"  Skipped {label} #{image_id} (missing source or already blurred)")
    else:
        totals.generated += 1
        print(f"  Generated blur for {label} #{image_id}")


async def async_main(argv: Sequence[str] | None = None, services: AppServices | None = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (success), 1 (fatal error)
    """
    args = parse_args(argv)

    try:
        if services is None:
            settings = Settings()  # type: ignore[call-arg]
            configure_logging(settings)
            services = build_services(settings)

        async with await services.uow_factory() as uow:
            albums = await uow.albums.get_protected(
                nsfw_only=args.nsfw_only,
                password_only=args.password_only,
                album_id=args.album,
            )

        if not albums:
            print("No protected albums found.")
            return 0

        print(f"Found {len(albums)} protected album(s)\n")

        totals = BlurResult()
        errors: list[str] = []

        for album in albums:
            print(f"Processing album #{album.id}: {album.title} [{_protection_label(album)}]")
            if args.all:
                stats = await services.generator.generate_blurred_variants_for_album(
                    album.id, args.force  # type: ignore[arg-type]
                )
                totals.generated += stats.generated
                totals.skipped += stats.skipped
                totals.failed += stats.failed
            else:
                await _blur_cover(services, album, args.force, totals, errors)

    except Exception as e:
        logger.error("cli.unexpected_error", error=str(e), error_type=type(e).__name__)
        print(f"\nFatal error: {e}", file=sys.stderr)
        return 1

    print("\n" + "=" * 40)
    print("Generation Summary")
    print("=" * 40)
    print(f"Generated: {totals.generated} blur variants")
    print(f"Skipped:   {totals.skipped} (no images or already exist)")
    print(f"Failed:    {totals.failed}")
    print("=" * 40)

    if errors:
        print("\nErrors:", file=sys.stderr)
        for error in errors:
            print(f"  {error}", file=sys.stderr)

    return 0


def main() -> None:
    """Synchronous entry point for CLI."""
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
