"""Batch workers run outside the request cycle."""

from cimaise.workers.variant_maintenance import (
    MaintenanceOutcome,
    MaintenanceScheduler,
    MaintenanceStats,
    MaintenanceStatus,
)

__all__ = [
    "MaintenanceScheduler",
    "MaintenanceOutcome",
    "MaintenanceStats",
    "MaintenanceStatus",
]
