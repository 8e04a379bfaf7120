"""Shared-directory artifact store.

Stores each artifact as a file in one directory, typically a team share or
a synced folder.  Locations are absolute file paths.

Classes
-------
- DirectoryArtifactStore  — file-per-artifact storage
"""
from __future__ import annotations

import os
from pathlib import Path

from agent_session_porter.atomic import atomic_write_bytes
from agent_session_porter.errors import ArtifactNotFoundError, FilesystemError
from agent_session_porter.storage.base import ArtifactStore


class DirectoryArtifactStore(ArtifactStore):
    """Stores artifacts as files under *storage_dir*.

    Parameters
    ----------
    storage_dir:
        Directory holding the artifacts.  Created on first write.
    """

    def __init__(self, storage_dir: str | Path) -> None:
        self._storage_dir: Path = Path(storage_dir)

    def _path_for(self, location: str) -> Path:
        """Return the file for *location* inside the storage directory.

        Only the final path component is used, so a location cannot point
        outside the store.
        """
        safe_name = os.path.basename(location.rstrip("/"))
        return self._storage_dir / safe_name

    def put(self, identifier: str, data: bytes) -> str:
        path = atomic_write_bytes(self._path_for(identifier), data, mode=0o644)
        return str(path.resolve())

    def get(self, location: str) -> bytes:
        path = self._path_for(location)
        if not path.is_file():
            raise ArtifactNotFoundError(location)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FilesystemError(f"Cannot read artifact {path}: {exc}") from exc

    def exists(self, location: str) -> bool:
        return self._path_for(location).is_file()

    def list(self) -> list[str]:
        if not self._storage_dir.is_dir():
            return []
        return [
            path.name
            for path in self._storage_dir.iterdir()
            if path.is_file() and not path.name.startswith(".")
        ]

    def __repr__(self) -> str:
        return f"DirectoryArtifactStore(storage_dir={str(self._storage_dir)!r})"
