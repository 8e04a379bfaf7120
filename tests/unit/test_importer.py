"""Unit tests for agent_session_porter.importer.

Covers:
- The end-to-end move of a session between two project roots
- Fresh identifiers, including on repeated imports of one artifact
- Stage tagging of every failure and the no-partial-state guarantee
- Identifier collision handling
- Legacy artifacts and file-based imports
"""
from __future__ import annotations

import gzip
import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from conftest import (
    ALICE_ROOT,
    BOB_ROOT,
    SOURCE_SESSION_ID,
    Host,
    make_entries,
    make_envelope,
    snapshot,
    write_record,
)

from agent_session_porter.document import dump_document, parse_jsonl
from agent_session_porter.envelope import encode
from agent_session_porter.errors import (
    DecompressionError,
    FilesystemError,
    IdentifierCollisionError,
    IndexFormatError,
    ParseError,
    UnsupportedVersionError,
)
from agent_session_porter.importer import ImportResult, ImportStage, SessionImporter
from agent_session_porter.index import SessionIndex


def _record_entries(result: ImportResult) -> list[dict]:
    return parse_jsonl(result.record_path.read_text(encoding="utf-8"))


def _index(host: Host) -> dict:
    return json.loads(host.index_path.read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# ImportStage
# ---------------------------------------------------------------------------


class TestImportStage:
    def test_stage_order(self) -> None:
        assert [stage.value for stage in ImportStage] == [
            "received",
            "decoded",
            "version_checked",
            "rewritten",
            "record_written",
            "index_merged",
            "done",
        ]


# ---------------------------------------------------------------------------
# Successful imports
# ---------------------------------------------------------------------------


class TestImportBytes:
    def test_alice_to_bob(self, host: Host) -> None:
        result = host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)

        assert result.source_session_id == SOURCE_SESSION_ID
        assert result.session_id != SOURCE_SESSION_ID
        assert result.source_root == ALICE_ROOT
        assert result.target_root == BOB_ROOT
        assert result.index_path == host.index_path
        assert result.record_path == (
            host.projects_dir / "-Users-bob-app" / f"{result.session_id}.jsonl"
        )

        entries = _record_entries(result)
        assert len(entries) == 4
        assert all(entry["cwd"] == BOB_ROOT for entry in entries)
        tool_use = entries[2]["message"]["content"][1]
        assert tool_use["input"]["file_path"] == f"{BOB_ROOT}/src/auth.py"
        assert entries[3]["toolUseResult"]["filePath"] == f"{BOB_ROOT}/src/auth.py"

    def test_fields_rewritten_count(self, host: Host) -> None:
        result = host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        # session project_path, four cwd values, the tool input and the tool result path
        assert result.fields_rewritten == 7

    def test_non_path_content_preserved(self, host: Host) -> None:
        result = host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        entries = _record_entries(result)
        original = make_entries()

        assert entries[3]["message"]["content"][0]["content"] == (
            f"Opened {ALICE_ROOT}/src/auth.py (120 lines)"
        )
        assert entries[3]["unknownFutureField"] == original[3]["unknownFutureField"]
        assert entries[2]["costUSD"] == 0.0123
        assert entries[2]["isSidechain"] is False
        assert entries[0]["isMeta"] is True
        assert entries[1]["message"] == original[1]["message"]

    def test_session_id_rebound(self, host: Host) -> None:
        result = host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        assert {entry["sessionId"] for entry in _record_entries(result)} == {result.session_id}

    def test_index_registration(self, host: Host) -> None:
        result = host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        project = _index(host)["projects"][BOB_ROOT]

        assert project["lastSessionId"] == result.session_id
        [entry] = project["importedSessions"]
        assert entry["sessionId"] == result.session_id
        assert entry["sourceSessionId"] == SOURCE_SESSION_ID
        assert entry["exportedBy"] == "alice@laptop"
        assert entry["recordPath"] == str(result.record_path)
        assert entry["importedAt"]

    def test_host_index_content_preserved(self, host: Host) -> None:
        host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        index = _index(host)
        assert index["numStartups"] == 12
        assert index["theme"] == "dark"
        assert index["projects"]["/Users/bob/other"] == {"allowedTools": [], "lastSessionId": "old"}

    def test_imported_session_is_visible_to_locator(self, host: Host) -> None:
        result = host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        located = host.locator.get(result.session_id)
        assert located.project_path == BOB_ROOT
        assert located.summary == "Fix the login flow in src/auth.py"
        assert host.locator.latest_for_project(BOB_ROOT).session_id == result.session_id

    def test_same_root_import_rewrites_nothing(self, host: Host) -> None:
        result = host.importer.import_bytes(encode(make_envelope()), target_root=ALICE_ROOT)
        assert result.fields_rewritten == 0
        assert all(entry["cwd"] == ALICE_ROOT for entry in _record_entries(result))

    def test_trailing_slash_target(self, host: Host) -> None:
        result = host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT + "/")
        assert result.target_root == BOB_ROOT
        assert _record_entries(result)[1]["cwd"] == BOB_ROOT

    def test_defaults_to_working_directory(
        self, host: Host, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        workdir = tmp_path / "checkout"
        workdir.mkdir()
        monkeypatch.chdir(workdir)
        result = host.importer.import_bytes(encode(make_envelope()))
        assert result.target_root == os.getcwd()
        assert _record_entries(result)[0]["cwd"] == os.getcwd()

    def test_repeated_import_creates_independent_sessions(self, host: Host) -> None:
        data = encode(make_envelope())
        first = host.importer.import_bytes(data, target_root=BOB_ROOT)
        second = host.importer.import_bytes(data, target_root=BOB_ROOT)

        assert first.session_id != second.session_id
        assert first.record_path.exists()
        assert second.record_path.exists()
        project = _index(host)["projects"][BOB_ROOT]
        assert [e["sessionId"] for e in project["importedSessions"]] == [
            first.session_id,
            second.session_id,
        ]
        assert project["lastSessionId"] == second.session_id

    def test_existing_host_records_untouched(self, host: Host) -> None:
        existing = write_record(
            host.projects_dir, BOB_ROOT, "bob-own", make_entries(BOB_ROOT, "bob-own")
        )
        before = existing.read_bytes()
        host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        assert existing.read_bytes() == before

    def test_minor_version_with_unknown_header_fields(self, host: Host) -> None:
        envelope = make_envelope(format_version="1.7", checksum="abc")
        result = host.importer.import_bytes(encode(envelope), target_root=BOB_ROOT)
        assert result.session_id

    def test_envelope_without_messages(self, host: Host) -> None:
        envelope = make_envelope()
        envelope = envelope.model_copy(update={"session": {"id": SOURCE_SESSION_ID}})
        result = host.importer.import_bytes(encode(envelope), target_root=BOB_ROOT)
        assert result.record_path.read_text(encoding="utf-8") == ""

    def test_numbers_beyond_float_range_kept(self, host: Host) -> None:
        text = dump_document(make_envelope().to_payload())
        text = text.replace("0.0123", "1e400").replace("2.5", "0.10000000000000000555")
        data = gzip.compress(text.encode("utf-8"))

        result = host.importer.import_bytes(data, target_root=BOB_ROOT)

        record = result.record_path.read_text(encoding="utf-8")
        assert '"costUSD":1E+400' in record
        assert "[1,0.10000000000000000555,null,true," in record

    def test_legacy_artifact(self, host: Host) -> None:
        legacy = {
            "version": "1.0.0",
            "exported_at": "2025-11-01T08:00:00",
            "exported_by": "alice",
            "session": {
                "id": SOURCE_SESSION_ID,
                "project_path": ALICE_ROOT,
                "summary": "Fix the login flow in src/auth.py",
                "messages": make_entries(),
            },
        }
        data = gzip.compress(json.dumps(legacy).encode("utf-8"))
        result = host.importer.import_bytes(data, target_root=BOB_ROOT)
        assert result.source_root == ALICE_ROOT
        assert result.source_session_id == SOURCE_SESSION_ID
        assert _record_entries(result)[1]["cwd"] == BOB_ROOT


class TestImportFile:
    def test_reads_artifact(self, host: Host, tmp_path: Path) -> None:
        artifact = tmp_path / "mcc-export.json.gz"
        artifact.write_bytes(encode(make_envelope()))
        result = host.importer.import_file(artifact, target_root=BOB_ROOT)
        assert result.record_path.exists()

    def test_missing_artifact(self, host: Host, tmp_path: Path) -> None:
        with pytest.raises(FilesystemError) as excinfo:
            host.importer.import_file(tmp_path / "absent.json.gz", target_root=BOB_ROOT)
        assert excinfo.value.stage == "received"


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    @pytest.mark.parametrize(
        ("data", "error", "stage"),
        [
            (b"", DecompressionError, "decoded"),
            (b"definitely not gzip", DecompressionError, "decoded"),
            (gzip.compress(b"{not json"), ParseError, "decoded"),
            (gzip.compress(b"[1, 2, 3]"), ParseError, "decoded"),
            (gzip.compress(b'{"format_version": "1.0"}'), ParseError, "version_checked"),
            (gzip.compress(b'{"format_version": "x.y", "session": {}}'), ParseError, "version_checked"),
        ],
    )
    def test_bad_artifact_changes_nothing(
        self, host: Host, data: bytes, error: type, stage: str
    ) -> None:
        before = snapshot(host.root)
        with pytest.raises(error) as excinfo:
            host.importer.import_bytes(data, target_root=BOB_ROOT)
        assert excinfo.value.stage == stage
        assert str(excinfo.value).startswith(f"[{stage}]")
        assert snapshot(host.root) == before

    def test_newer_major_version(self, host: Host) -> None:
        before = snapshot(host.root)
        data = encode(make_envelope(format_version="2.0"))
        with pytest.raises(UnsupportedVersionError) as excinfo:
            host.importer.import_bytes(data, target_root=BOB_ROOT)
        assert excinfo.value.stage == "version_checked"
        assert excinfo.value.version == "2.0"
        assert snapshot(host.root) == before

    def test_unrecognized_index_changes_nothing(self, host: Host) -> None:
        host.index_path.write_text('{"projects": ["not", "an", "object"]}', encoding="utf-8")
        before = snapshot(host.root)
        with pytest.raises(IndexFormatError):
            host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        assert snapshot(host.root) == before

    def test_unrecognized_project_rolls_back_record(self, host: Host) -> None:
        host.index_path.write_text(json.dumps({"projects": {BOB_ROOT: "x"}}), encoding="utf-8")
        before = snapshot(host.root)
        with pytest.raises(IndexFormatError) as excinfo:
            host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        assert excinfo.value.stage == "index_merged"
        assert snapshot(host.root) == before

    def test_unrecognized_imported_list_rolls_back_record(self, host: Host) -> None:
        index = _index(host)
        index["projects"][BOB_ROOT] = {"importedSessions": "corrupt"}
        host.index_path.write_text(json.dumps(index), encoding="utf-8")
        before = snapshot(host.root)
        with pytest.raises(IndexFormatError):
            host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        assert snapshot(host.root) == before

    def test_record_directory_blocked(self, host: Host) -> None:
        (host.projects_dir / "-Users-bob-app").write_text("a file, not a directory")
        before = snapshot(host.root)
        with pytest.raises(FilesystemError) as excinfo:
            host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        assert excinfo.value.stage == "record_written"
        assert snapshot(host.root) == before

    def test_unwritable_index_location_rolls_back_record(
        self, host: Host, tmp_path: Path
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        index = SessionIndex(blocker / ".claude.json", lock_timeout=0.1)
        importer = SessionImporter(host.locator, index)
        before = snapshot(host.root)

        with pytest.raises(FilesystemError) as excinfo:
            importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)

        assert excinfo.value.stage == "index_merged"
        assert snapshot(host.root) == before

    def test_os_error_during_merge_is_filesystem_error(self, host: Host) -> None:
        before = snapshot(host.root)
        with patch.object(SessionIndex, "append", side_effect=PermissionError("denied")):
            with pytest.raises(FilesystemError, match="denied") as excinfo:
                host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        assert excinfo.value.stage == "index_merged"
        assert snapshot(host.root) == before

    def test_unexpected_error_still_removes_record(self, host: Host) -> None:
        before = snapshot(host.root)
        with patch.object(SessionIndex, "append", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError, match="boom"):
                host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        assert snapshot(host.root) == before


# ---------------------------------------------------------------------------
# Identifier generation
# ---------------------------------------------------------------------------


class TestIdentifiers:
    def _importer(self, host: Host, ids: list[str]) -> SessionImporter:
        candidates = iter(ids)
        return SessionImporter(host.locator, host.index, id_factory=lambda: next(candidates))

    def test_skips_source_identifier(self, host: Host) -> None:
        importer = self._importer(host, [SOURCE_SESSION_ID, "fresh-1"])
        result = importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        assert result.session_id == "fresh-1"

    def test_skips_identifier_with_existing_record(self, host: Host) -> None:
        write_record(host.projects_dir, "/Users/bob/elsewhere", "taken", make_entries())
        importer = self._importer(host, ["taken", "fresh-2"])
        result = importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        assert result.session_id == "fresh-2"

    def test_skips_identifier_known_to_index(self, host: Host) -> None:
        importer = self._importer(host, ["old", "fresh-3"])
        result = importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        assert result.session_id == "fresh-3"

    def test_gives_up_after_repeated_collisions(self, host: Host) -> None:
        before = snapshot(host.root)
        importer = SessionImporter(host.locator, host.index, id_factory=lambda: SOURCE_SESSION_ID)
        with pytest.raises(IdentifierCollisionError) as excinfo:
            importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        assert excinfo.value.stage == "record_written"
        assert snapshot(host.root) == before

    def test_default_identifiers_are_uuids(self, host: Host) -> None:
        result = host.importer.import_bytes(encode(make_envelope()), target_root=BOB_ROOT)
        assert len(result.session_id) == 36
        assert result.session_id.count("-") == 4
