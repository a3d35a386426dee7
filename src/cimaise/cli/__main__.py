"""CLI entry point for cimaise.cli module.

Enables execution via: python -m cimaise.cli (runs the daily maintenance sweep)
"""

from cimaise.cli.maintenance_run import main

if __name__ == "__main__":
    main()
