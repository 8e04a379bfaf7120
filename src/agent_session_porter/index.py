"""Merging imported sessions into the host's shared session index.

The index (``~/.claude.json`` for Claude Code) belongs to the host
application, which may read or rewrite it at any time.  The engine only
ever appends: it reads the file, adds an entry under the target project in
memory, and installs the result with a temp-file-then-rename so a
concurrent reader sees either the old or the new index.  Everything else
in the file is written back exactly as read.

Index layout touched by the engine::

    {
        "projects": {
            "/Users/bob/app": {
                "lastSessionId": "<new id>",
                "importedSessions": [
                    {"sessionId": ..., "recordPath": ..., "importedAt": ...,
                     "sourceSessionId": ..., "exportedBy": ...}
                ],
                ...host fields...
            }
        },
        ...host fields...
    }

Classes
-------
IndexEntry
    One imported-session entry.
SessionIndex
    Read / validate / append / write of the index file.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from agent_session_porter.atomic import atomic_write_text
from agent_session_porter.document import dump_document, parse_document
from agent_session_porter.errors import FilesystemError, IndexFormatError, ParseError
from agent_session_porter.locking import FileLock

logger = logging.getLogger(__name__)

PROJECTS_KEY = "projects"
LAST_SESSION_KEY = "lastSessionId"
IMPORTED_KEY = "importedSessions"


@dataclass(frozen=True)
class IndexEntry:
    """A reference from the index to an imported session record."""

    session_id: str
    record_path: str
    imported_at: str
    source_session_id: str
    exported_by: str

    def to_dict(self) -> dict[str, str]:
        return {
            "sessionId": self.session_id,
            "recordPath": self.record_path,
            "importedAt": self.imported_at,
            "sourceSessionId": self.source_session_id,
            "exportedBy": self.exported_by,
        }


class SessionIndex:
    """The host's session index file.

    Parameters
    ----------
    path:
        Location of the index file.
    lock_timeout:
        Seconds to wait for another engine process to finish its merge.
    """

    def __init__(self, path: str | Path, lock_timeout: float = 10.0) -> None:
        self._path = Path(path)
        self._lock_timeout = lock_timeout

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lock_path(self) -> Path:
        return self._path.with_name(f".{self._path.name}.porter.lock")

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read(self) -> dict[str, Any]:
        """Return the parsed index, or an empty mapping when the file is absent.

        Raises
        ------
        IndexFormatError
            If the file is not a JSON object with a recognized layout.
        FilesystemError
            If the file exists but cannot be read.
        """
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise FilesystemError(f"Cannot read session index {self._path}: {exc}") from exc
        try:
            document = parse_document(text)
        except ParseError as exc:
            raise IndexFormatError(f"Session index {self._path} is not valid JSON: {exc}") from exc
        if not isinstance(document, dict):
            raise IndexFormatError(f"Session index {self._path} must contain a JSON object")
        projects = document.get(PROJECTS_KEY)
        if projects is not None and not isinstance(projects, dict):
            raise IndexFormatError(f"'{PROJECTS_KEY}' in {self._path} is not an object")
        return document

    def _project(self, document: dict[str, Any], project_root: str) -> dict[str, Any]:
        projects = document.setdefault(PROJECTS_KEY, {})
        project = projects.setdefault(project_root, {})
        if not isinstance(project, dict):
            raise IndexFormatError(
                f"Project entry {project_root!r} in {self._path} is not an object"
            )
        imported = project.get(IMPORTED_KEY)
        if imported is not None and not isinstance(imported, list):
            raise IndexFormatError(
                f"'{IMPORTED_KEY}' for {project_root!r} in {self._path} is not a list"
            )
        return project

    def entries(self, project_root: str) -> list[dict[str, Any]]:
        """Return the imported-session entries recorded for *project_root*."""
        projects = self.read().get(PROJECTS_KEY) or {}
        project = projects.get(project_root)
        if not isinstance(project, dict):
            return []
        imported = project.get(IMPORTED_KEY)
        return list(imported) if isinstance(imported, list) else []

    def contains(self, session_id: str) -> bool:
        """Return True if *session_id* is referenced anywhere in the index."""
        projects = self.read().get(PROJECTS_KEY) or {}
        for project in projects.values():
            if not isinstance(project, dict):
                continue
            if project.get(LAST_SESSION_KEY) == session_id:
                return True
            for entry in project.get(IMPORTED_KEY) or []:
                if isinstance(entry, dict) and entry.get("sessionId") == session_id:
                    return True
        return False

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def append(self, project_root: str, entry: IndexEntry) -> None:
        """Append *entry* under *project_root* and make it the project's latest session.

        The whole read-modify-write runs under an engine-only lock, and the
        new content replaces the file atomically.

        Raises
        ------
        IndexFormatError
            If the existing index has an unrecognized layout; the file is
            left untouched.
        FilesystemError
            If the new index cannot be written.
        """
        lock = FileLock(self.lock_path, timeout=self._lock_timeout)
        try:
            lock.acquire()
        except OSError as exc:
            raise FilesystemError(f"Cannot lock session index {self._path}: {exc}") from exc
        try:
            document = self.read()
            project = self._project(document, project_root)
            project.setdefault(IMPORTED_KEY, []).append(entry.to_dict())
            project[LAST_SESSION_KEY] = entry.session_id
            atomic_write_text(self._path, dump_document(document, indent=2) + "\n")
        finally:
            lock.release()
        logger.debug(
            "Registered session %s for %s in %s", entry.session_id, project_root, self._path
        )

    def __repr__(self) -> str:
        return f"SessionIndex(path={str(self._path)!r})"
