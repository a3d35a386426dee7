"""CLI command for generating the blur placeholder of one image.

Usage:
    python -m cimaise.cli.generate_blur --image 42 [--force]
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace
from collections.abc import Sequence

import structlog

from cimaise.core import timezone  # noqa: F401
from cimaise.core.config import Settings, configure_logging
from cimaise.core.dependencies import AppServices, build_services

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID = 2


def parse_args(argv: Sequence[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(description="Generate blur variant for a single image")
    parser.add_argument("-i", "--image", type=int, required=True, help="Image ID to process")
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Force regeneration of existing blur variant",
    )
    return parser.parse_args(argv)


async def async_main(argv: Sequence[str] | None = None, services: AppServices | None = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (generated), 1 (nothing generated or error), 2 (invalid image id)
    """
    args = parse_args(argv)
    if args.image <= 0:
        print("Missing or invalid image ID.", file=sys.stderr)
        return EXIT_INVALID

    try:
        if services is None:
            settings = Settings()  # type: ignore[call-arg]
            configure_logging(settings)
            services = build_services(settings)

        path = await services.generator.generate_blurred_variant(args.image, force=args.force)

    except Exception as e:
        logger.error("cli.blur_error", image_id=args.image, error=str(e), error_type=type(e).__name__)
        print(f"Fatal error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    if path is None:
        print("Blur generation skipped: source image missing or placeholder already exists.", file=sys.stderr)
        return EXIT_FAILURE

    print(f"Blur variant generated: {path}")
    return EXIT_OK


def main() -> None:
    """Synchronous entry point for CLI."""
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
