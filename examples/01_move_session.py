#!/usr/bin/env python3
"""Example: Moving a session between two checkouts

Builds a tiny Claude Code home in a temporary directory, records a session
under Alice's checkout, exports it, previews the artifact, and imports it
into Bob's checkout with every project path rewritten.

Usage:
    python examples/01_move_session.py

Requirements:
    pip install agent-session-porter
"""
from __future__ import annotations

import json
import tempfile
from pathlib import Path

import agent_session_porter
from agent_session_porter import (
    SessionImporter,
    SessionIndex,
    SessionLocator,
    dump_jsonl,
    export_session,
    preview_file,
)

ALICE_ROOT = "/Users/alice/app"
BOB_ROOT = "/Users/bob/app"


def main() -> None:
    print(f"agent-session-porter version: {agent_session_porter.__version__}")

    with tempfile.TemporaryDirectory() as tmp:
        home = Path(tmp)
        locator = SessionLocator(home / ".claude" / "projects")
        index = SessionIndex(home / ".claude.json")

        # Record a session the way Claude Code lays it out on disk
        record = locator.record_path(ALICE_ROOT, "demo-session")
        record.parent.mkdir(parents=True)
        record.write_text(
            dump_jsonl(
                [
                    {
                        "type": "user",
                        "cwd": ALICE_ROOT,
                        "sessionId": "demo-session",
                        "gitBranch": "main",
                        "message": {"role": "user", "content": "Tidy up src/app.py"},
                    },
                    {
                        "type": "assistant",
                        "cwd": ALICE_ROOT,
                        "sessionId": "demo-session",
                        "message": {
                            "role": "assistant",
                            "content": [
                                {
                                    "type": "tool_use",
                                    "name": "Edit",
                                    "input": {"file_path": f"{ALICE_ROOT}/src/app.py"},
                                }
                            ],
                        },
                    },
                ]
            ),
            encoding="utf-8",
        )

        # Export
        session = locator.latest_for_project(ALICE_ROOT)
        artifact = export_session(session, home / "mcc-export.json.gz", exported_by="alice@laptop")
        print(f"Exported {session.session_id} to {artifact.name}")

        # Preview without touching anything
        preview = preview_file(artifact)
        print(f"  Summary:  {preview.summary}")
        print(f"  Messages: {preview.message_count}")
        print(f"  Branch:   {preview.git_branch}")

        # Import into Bob's checkout
        result = SessionImporter(locator, index).import_file(artifact, target_root=BOB_ROOT)
        print(f"Imported as {result.session_id} ({result.fields_rewritten} paths rewritten)")

        entries = [json.loads(line) for line in result.record_path.read_text().splitlines()]
        print(f"  cwd:       {entries[0]['cwd']}")
        print(f"  edit path: {entries[1]['message']['content'][0]['input']['file_path']}")


if __name__ == "__main__":
    main()
