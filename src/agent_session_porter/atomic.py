"""Crash-safe file replacement.

Files are written to a temporary sibling in the destination directory,
flushed to disk, and moved into place with :func:`os.replace`.  A reader
therefore sees either the previous content or the complete new content,
never a truncated file.  An interrupted process leaves at most a hidden
``.<name>.*.tmp`` file behind, which later writes ignore.
"""
from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path

from agent_session_porter.errors import FilesystemError

logger = logging.getLogger(__name__)


def atomic_write_bytes(
    path: str | Path,
    data: bytes,
    *,
    overwrite: bool = True,
    mode: int | None = None,
) -> Path:
    """Atomically write *data* to *path*.

    Parameters
    ----------
    path:
        Destination file.  Parent directories are created when missing.
        A symlink is followed and its target replaced, so the link survives.
    data:
        Complete file content.
    overwrite:
        When False, refuse to replace an existing file.
    mode:
        Permission bits for the new file.  Defaults to the mode of the file
        being replaced, or the tempfile default (``0o600``) for new files.

    Returns
    -------
    Path
        *path*, as given.

    Raises
    ------
    FilesystemError
        If any step fails, or if *overwrite* is False and *path* exists.
        The temporary file is removed before raising.
    """
    requested = Path(path)
    destination = requested
    try:
        if destination.is_symlink():
            destination = destination.resolve()
        exists = destination.exists()
        if not overwrite and exists:
            raise FilesystemError(f"Refusing to overwrite existing file {destination}")
        if mode is None and exists:
            mode = stat.S_IMODE(destination.stat().st_mode)
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=destination.parent, prefix=f".{destination.name}.", suffix=".tmp"
        )
    except OSError as exc:
        raise FilesystemError(f"Cannot prepare write of {destination}: {exc}") from exc

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(tmp_path, destination)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise FilesystemError(f"Failed to write {destination}: {exc}") from exc

    logger.debug("Wrote %d bytes to %s", len(data), destination)
    return requested


def atomic_write_text(
    path: str | Path,
    text: str,
    *,
    overwrite: bool = True,
    mode: int | None = None,
) -> Path:
    """Atomically write *text* (UTF-8) to *path*.  See :func:`atomic_write_bytes`."""
    return atomic_write_bytes(path, text.encode("utf-8"), overwrite=overwrite, mode=mode)
