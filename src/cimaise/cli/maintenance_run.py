"""CLI command for the daily variant maintenance sweep.

Usage:
    python -m cimaise.cli.maintenance_run [OPTIONS]

Examples:
    # Run if it has not run today (UTC)
    python -m cimaise.cli.maintenance_run

    # Cron (daily at 3 AM): no summary, warnings on stderr only
    0 3 * * * cd /srv/cimaise && cimaise-maintenance --quiet-mode

    # Run even if it already ran today
    python -m cimaise.cli.maintenance_run --force

Exit status is 0 whenever the sweep was attempted, including per-image failures
and lock contention; 1 only when setup fails (configuration, database).
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace
from collections.abc import Sequence

import structlog

from cimaise.core import timezone  # noqa: F401
from cimaise.core.config import Settings, configure_logging
from cimaise.core.dependencies import AppServices, build_services
from cimaise.workers.variant_maintenance import MaintenanceStatus

logger = structlog.get_logger()


def parse_args(argv: Sequence[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(
        description="Run daily maintenance tasks (variant generation, blur for protected albums)",
        epilog="Uses a file lock and a last-run date so repeated triggers are cheap",
    )

    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Run even if maintenance already ran today",
    )

    parser.add_argument(
        "--quiet-mode",
        action="store_true",
        help="No progress or summary output; warnings and errors are logged to stderr (for cron)",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args(argv)


def _print_summary(status: MaintenanceStatus, stats: dict[str, int]) -> None:
    print("\n" + "=" * 60)
    print("Variant Maintenance Summary")
    print("=" * 60)
    print(f"Status: {status.value}")
    if status is MaintenanceStatus.COMPLETED or status is MaintenanceStatus.FAILED:
        print(f"Images checked: {stats['images_checked']}")
        print(f"Variants generated: {stats['variants_generated']}")
        print(f"Variants skipped: {stats['variants_skipped']}")
        print(f"Variants failed: {stats['variants_failed']}")
        print(f"Blur generated: {stats['blur_generated']}")
        print(f"Blur failed: {stats['blur_failed']}")
    elif status is MaintenanceStatus.ALREADY_RAN:
        print("Maintenance already ran today; use --force to run again")
    elif status is MaintenanceStatus.LOCKED:
        print("Another maintenance run is in progress")
    print("=" * 60 + "\n")


async def async_main(argv: Sequence[str] | None = None, services: AppServices | None = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (sweep attempted), 1 (setup error)
    """
    args = parse_args(argv)

    try:
        if services is None:
            settings = Settings()  # type: ignore[call-arg]
            if args.verbose:
                settings.log_level = "DEBUG"
            elif args.quiet_mode:
                settings.log_level = "WARNING"
            configure_logging(settings, stream=sys.stderr if args.quiet_mode else None)
            services = build_services(settings)

        logger.info("cli.started", force=args.force)

        if not args.quiet_mode:
            print("Running daily maintenance tasks...")

        outcome = await services.scheduler.run_daily(force=args.force)

    except KeyboardInterrupt:
        logger.info("cli.interrupted")
        if not args.quiet_mode:
            print("\nMaintenance interrupted by user", file=sys.stderr)
        return 130

    except Exception as e:
        logger.error("cli.unexpected_error", error=str(e), error_type=type(e).__name__)
        if not args.quiet_mode:
            print(f"\nMaintenance failed: {e}", file=sys.stderr)
        return 1

    if not args.quiet_mode:
        _print_summary(outcome.status, outcome.stats.as_dict())

    logger.info("cli.finished", status=outcome.status.value)
    return 0


def main() -> None:
    """Synchronous entry point for CLI."""
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
