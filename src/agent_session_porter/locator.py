"""Enumeration of sessions in the host's local record store.

Claude Code keeps one JSON-lines file per session under
``~/.claude/projects/<encoded project path>/<session id>.jsonl``, where the
project directory name is the absolute project path with every character
outside ``[A-Za-z0-9-]`` replaced by ``-``.

Classes
-------
- LocatedSession  — summary of one session record on disk
- SessionLocator  — lists, finds and loads session records
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, PrivateAttr

from agent_session_porter.document import Document, parse_jsonl
from agent_session_porter.errors import SessionNotFoundError
from agent_session_porter.transcript import git_branch, summarize, working_directory

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".jsonl"
_UNSAFE_DIR_CHARS = re.compile(r"[^A-Za-z0-9-]")


def encode_project_dir(project_root: str) -> str:
    """Return the store directory name the host uses for *project_root*."""
    return _UNSAFE_DIR_CHARS.sub("-", project_root.rstrip("/") or "/")


def same_project_root(left: str, right: str) -> bool:
    """Return True when two project paths differ at most by trailing slashes."""
    return (left.rstrip("/") or "/") == (right.rstrip("/") or "/")


class LocatedSession(BaseModel):
    """A session record found in the host store.

    Parameters
    ----------
    session_id:
        The record's identifier (file stem).
    file_path:
        Location of the record file.
    project_path:
        Working directory the session was recorded in.
    last_modified:
        Modification time of the record file (UTC).
    summary:
        First user-authored text, truncated.
    git_branch:
        Git branch recorded by the host, if any.
    message_count:
        Number of transcript entries.
    """

    session_id: str
    file_path: Path
    project_path: str
    last_modified: datetime
    summary: str
    git_branch: str | None = None
    message_count: int = 0

    _entries: list[Any] = PrivateAttr(default_factory=list)

    @classmethod
    def from_file(cls, file_path: Path) -> LocatedSession:
        """Read and summarise the record at *file_path*.

        Malformed lines are skipped with a warning.

        Raises
        ------
        OSError
            If the file cannot be read.
        """
        text = file_path.read_text(encoding="utf-8")
        entries = parse_jsonl(text, strict=False)
        project_path = working_directory(entries) or file_path.parent.name.replace("-", "/")
        located = cls(
            session_id=file_path.stem,
            file_path=file_path,
            project_path=project_path,
            last_modified=datetime.fromtimestamp(file_path.stat().st_mtime, tz=timezone.utc),
            summary=summarize(entries),
            git_branch=git_branch(entries),
            message_count=len(entries),
        )
        located._entries = entries
        return located

    @property
    def entries(self) -> list[Document]:
        return self._entries

    def load(self) -> dict[str, Any]:
        """Return the session record document used as an envelope's ``session``."""
        return {
            "id": self.session_id,
            "project_path": self.project_path,
            "summary": self.summary,
            "git_branch": self.git_branch,
            "messages": list(self._entries),
        }

    def time_ago(self, now: datetime | None = None) -> str:
        """Return a compact age string such as ``"5m ago"``."""
        current = now or datetime.now(timezone.utc)
        seconds = max(0, int((current - self.last_modified).total_seconds()))
        if seconds < 60:
            return f"{seconds}s ago"
        if seconds < 3600:
            return f"{seconds // 60}m ago"
        if seconds < 86400:
            return f"{seconds // 3600}h ago"
        return f"{seconds // 86400}d ago"


class SessionLocator:
    """Find session records in the host store.

    Parameters
    ----------
    projects_dir:
        The host's per-project record directory.  Defaults to
        ``~/.claude/projects``.
    """

    def __init__(self, projects_dir: str | Path | None = None) -> None:
        self._projects_dir: Path = (
            Path(projects_dir)
            if projects_dir is not None
            else Path.home() / ".claude" / "projects"
        )

    @property
    def projects_dir(self) -> Path:
        return self._projects_dir

    def project_dir_for(self, project_root: str) -> Path:
        """Return the directory holding records for *project_root*."""
        return self._projects_dir / encode_project_dir(project_root)

    def record_path(self, project_root: str, session_id: str) -> Path:
        """Return where the record for *session_id* under *project_root* lives."""
        return self.project_dir_for(project_root) / f"{session_id}{RECORD_SUFFIX}"

    def _record_files(self) -> list[Path]:
        if not self._projects_dir.is_dir():
            return []
        return sorted(
            path
            for project_dir in self._projects_dir.iterdir()
            if project_dir.is_dir()
            for path in project_dir.glob(f"*{RECORD_SUFFIX}")
            if path.is_file()
        )

    def list_sessions(self) -> list[LocatedSession]:
        """Return every readable session, most recently modified first."""
        sessions: list[LocatedSession] = []
        for path in self._record_files():
            try:
                sessions.append(LocatedSession.from_file(path))
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Skipping unreadable session file %s: %s", path, exc)
        sessions.sort(key=lambda s: s.last_modified, reverse=True)
        return sessions

    def exists(self, session_id: str) -> bool:
        """Return True if any project holds a record named *session_id*."""
        return any(path.stem == session_id for path in self._record_files())

    def get(self, session_id: str) -> LocatedSession:
        """Return the session with *session_id*.

        Raises
        ------
        SessionNotFoundError
            If no record with that identifier exists.
        """
        for path in self._record_files():
            if path.stem == session_id:
                return LocatedSession.from_file(path)
        raise SessionNotFoundError(session_id)

    def latest_for_project(self, project_root: str) -> LocatedSession | None:
        """Return the newest session recorded in *project_root*, or ``None``."""
        for session in self.list_sessions():
            if same_project_root(session.project_path, project_root):
                return session
        return None

    def __repr__(self) -> str:
        return f"SessionLocator(projects_dir={str(self._projects_dir)!r})"
