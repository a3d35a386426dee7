"""Advisory locks for single-run batch jobs.

The daily maintenance sweep must not run twice at the same time. On a single
node this is a non-blocking ``flock`` on a well-known file; the kernel drops the
lock when the holding process exits, so a killed sweep never leaves a stale lock.

Multi-node deployments can provide another ``MaintenanceLock`` (a database row
lock, for example) with the same try_acquire/release contract.
"""

import fcntl
import os
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)


class MaintenanceLock(Protocol):
    """Non-blocking mutual exclusion contract used by the scheduler."""

    def try_acquire(self) -> bool: ...

    def release(self) -> None: ...


class FileLock:
    """Exclusive ``flock`` on a lock file.

    Locks belong to the open file description, so two FileLock instances on the
    same path exclude each other even inside one process. A held instance also
    refuses a second try_acquire(), so overlapping callers sharing one instance
    are excluded too.

    Example:
        lock = FileLock(Path("storage/tmp/variants_daily.lock"))
        if lock.try_acquire():
            try:
                ...
            finally:
                lock.release()
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._fd: int | None = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def try_acquire(self) -> bool:
        """Try to take the lock without blocking.

        Returns:
            True if this instance now holds the lock. False if the lock is already
            held, by another instance or by this one, or the lock file cannot be
            opened.
        """
        if self._fd is not None:
            return False

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o664)
        except OSError as e:
            logger.warning("lock.open_failed", lock_file=str(self.path), error=str(e))
            return False

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            return False
        except OSError as e:
            os.close(fd)
            logger.warning("lock.flock_failed", lock_file=str(self.path), error=str(e))
            return False

        self._fd = fd
        return True

    def release(self) -> None:
        """Release the lock if held (idempotent)."""
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

    def __enter__(self) -> bool:
        return self.try_acquire()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
