"""Shared fixtures for the agent-session-porter test suite."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from agent_session_porter.envelope import Envelope, ProvenanceMetadata
from agent_session_porter.importer import SessionImporter
from agent_session_porter.index import SessionIndex
from agent_session_porter.locator import SessionLocator, encode_project_dir

ALICE_ROOT = "/Users/alice/app"
BOB_ROOT = "/Users/bob/app"
SOURCE_SESSION_ID = "0b7c5d52-1111-4222-8333-444455556666"


def make_entries(root: str = ALICE_ROOT, session_id: str = SOURCE_SESSION_ID) -> list[dict[str, Any]]:
    """Return a small Claude Code style transcript recorded under *root*."""
    return [
        {
            "type": "user",
            "isMeta": True,
            "cwd": root,
            "sessionId": session_id,
            "gitBranch": "feature/login",
            "message": {"role": "user", "content": "<command-name>/clear</command-name>"},
        },
        {
            "type": "user",
            "cwd": root,
            "sessionId": session_id,
            "gitBranch": "feature/login",
            "uuid": "u-1",
            "message": {"role": "user", "content": "Fix the login flow in src/auth.py"},
        },
        {
            "type": "assistant",
            "cwd": root,
            "sessionId": session_id,
            "uuid": "a-1",
            "parentUuid": "u-1",
            "message": {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "Reading the file."},
                    {
                        "type": "tool_use",
                        "id": "toolu_1",
                        "name": "Read",
                        "input": {"file_path": f"{root}/src/auth.py", "limit": 200},
                    },
                ],
            },
            "costUSD": 0.0123,
            "isSidechain": False,
        },
        {
            "type": "user",
            "cwd": root,
            "sessionId": session_id,
            "message": {
                "role": "user",
                "content": [
                    {
                        "type": "tool_result",
                        "tool_use_id": "toolu_1",
                        "content": f"Opened {root}/src/auth.py (120 lines)",
                    }
                ],
            },
            "toolUseResult": {"filePath": f"{root}/src/auth.py", "numLines": 120},
            "unknownFutureField": {"nested": [1, 2.5, None, True, f"{root}-other/x"]},
        },
    ]


def make_envelope(
    root: str = ALICE_ROOT,
    session_id: str = SOURCE_SESSION_ID,
    format_version: str = "1.0",
    **extra: Any,
) -> Envelope:
    """Return an envelope wrapping :func:`make_entries`."""
    metadata = ProvenanceMetadata(
        format_version=format_version,
        exported_at="2026-01-05T10:12:00+00:00",
        exported_by="alice@laptop",
        source_project_root=root,
        source_session_id=session_id,
        **extra,
    )
    session = {
        "id": session_id,
        "project_path": root,
        "summary": "Fix the login flow in src/auth.py",
        "git_branch": "feature/login",
        "messages": make_entries(root, session_id),
    }
    return Envelope(metadata=metadata, session=session)


def write_record(
    projects_dir: Path,
    root: str,
    session_id: str,
    entries: list[dict[str, Any]],
    mtime: float | None = None,
) -> Path:
    """Write a host record file the way Claude Code lays it out."""
    project_dir = projects_dir / encode_project_dir(root)
    project_dir.mkdir(parents=True, exist_ok=True)
    path = project_dir / f"{session_id}.jsonl"
    path.write_text("".join(json.dumps(e) + "\n" for e in entries), encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def snapshot(root: Path) -> dict[str, bytes]:
    """Return every file under *root* with its content."""
    return {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@dataclass
class Host:
    """A throwaway host environment rooted in a temporary directory."""

    root: Path
    projects_dir: Path
    index_path: Path
    locator: SessionLocator
    index: SessionIndex
    importer: SessionImporter


@pytest.fixture()
def host(tmp_path: Path) -> Host:
    home = tmp_path / "home"
    projects_dir = home / ".claude" / "projects"
    projects_dir.mkdir(parents=True)
    index_path = home / ".claude.json"
    index_path.write_text(
        json.dumps(
            {
                "numStartups": 12,
                "theme": "dark",
                "projects": {"/Users/bob/other": {"allowedTools": [], "lastSessionId": "old"}},
            },
            indent=2,
        ),
        encoding="utf-8",
    )
    locator = SessionLocator(projects_dir)
    index = SessionIndex(index_path, lock_timeout=1.0)
    return Host(
        root=home,
        projects_dir=projects_dir,
        index_path=index_path,
        locator=locator,
        index=index,
        importer=SessionImporter(locator=locator, index=index),
    )
