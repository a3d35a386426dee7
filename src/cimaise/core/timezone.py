"""UTC helpers.

Importing this module pins the process TZ to UTC. The daily maintenance
marker is a UTC calendar date, so every "today" in the package comes from here.
"""

import os
from datetime import date, datetime, timezone

os.environ["TZ"] = "UTC"


def utc_now() -> datetime:
    """Return the current timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_today(now: datetime | None = None) -> date:
    """Return the UTC calendar date for ``now`` (defaults to the current time)."""
    moment = now or utc_now()
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(timezone.utc).date()
