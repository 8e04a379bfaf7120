"""Advisory lock serialising concurrent engine imports.

Two engine processes importing at the same moment would otherwise both read
the same index and one of their appended entries would be lost.  The lock
is a sentinel file created with exclusive-create semantics.  The host
application never looks at it; it only coordinates engine processes.

A lock file older than ``stale_after`` seconds is assumed to belong to a
crashed process and is broken.

Classes
-------
FileLock
    Sentinel-file lock usable as a context manager.
"""
from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import IO

logger = logging.getLogger(__name__)

_POLL_INTERVAL_SECONDS: float = 0.05


class FileLock:
    """Cross-platform advisory file lock using exclusive file creation.

    Parameters
    ----------
    lock_path:
        Path to the sentinel lock file.  Created on acquisition and deleted
        on release.
    timeout:
        Seconds to wait before raising :class:`TimeoutError`.
    stale_after:
        Age in seconds after which an existing lock file is considered
        abandoned and removed.

    Raises
    ------
    TimeoutError
        If the lock cannot be acquired within *timeout* seconds.
    """

    def __init__(
        self,
        lock_path: str | Path,
        timeout: float = 10.0,
        stale_after: float = 120.0,
    ) -> None:
        self._lock_path: Path = Path(lock_path)
        self._timeout: float = timeout
        self._stale_after: float = stale_after
        self._lock_file: IO[str] | None = None

    @property
    def path(self) -> Path:
        return self._lock_path

    @property
    def is_held(self) -> bool:
        return self._lock_file is not None

    def _break_if_stale(self) -> None:
        try:
            age = time.time() - self._lock_path.stat().st_mtime
        except FileNotFoundError:
            return
        if age > self._stale_after:
            logger.warning("Removing stale lock %s (age %.0fs)", self._lock_path, age)
            self._lock_path.unlink(missing_ok=True)

    def acquire(self) -> None:
        """Acquire the lock, blocking until success or timeout.

        Raises
        ------
        TimeoutError
            If another holder keeps the lock past the timeout.
        OSError
            If the lock file cannot be created at all.
        """
        start = time.monotonic()
        self._lock_path.parent.mkdir(parents=True, exist_ok=True)
        while True:
            try:
                lock_file = open(self._lock_path, "x", encoding="utf-8")  # noqa: SIM115
            except FileExistsError:
                self._break_if_stale()
                if time.monotonic() - start >= self._timeout:
                    raise TimeoutError(
                        f"Could not acquire lock {self._lock_path} within {self._timeout}s"
                    ) from None
                time.sleep(_POLL_INTERVAL_SECONDS)
                continue
            try:
                lock_file.write(str(os.getpid()))
                lock_file.flush()
            except OSError:
                lock_file.close()
                self._lock_path.unlink(missing_ok=True)
                raise
            self._lock_file = lock_file
            return

    def release(self) -> None:
        """Release the lock and delete the sentinel file.  Safe to call twice."""
        if self._lock_file is None:
            return
        self._lock_file.close()
        self._lock_file = None
        try:
            self._lock_path.unlink(missing_ok=True)
        except OSError as exc:
            # Left for the stale-lock check of the next acquirer.
            logger.warning("Could not remove lock %s: %s", self._lock_path, exc)

    def __enter__(self) -> FileLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.release()
