"""Unit tests for agent_session_porter.storage.filesystem.DirectoryArtifactStore.

Uses pytest's tmp_path fixture to isolate all file I/O.
"""
from __future__ import annotations

import stat
from pathlib import Path

import pytest

from conftest import BOB_ROOT, Host, make_envelope

from agent_session_porter.envelope import encode
from agent_session_porter.errors import ArtifactNotFoundError
from agent_session_porter.storage import DirectoryArtifactStore


@pytest.fixture()
def store(tmp_path: Path) -> DirectoryArtifactStore:
    return DirectoryArtifactStore(tmp_path / "share")


class TestDirectoryArtifactStore:
    def test_put_creates_directory_and_returns_path(
        self, store: DirectoryArtifactStore, tmp_path: Path
    ) -> None:
        location = store.put("a.json.gz", b"payload")
        assert Path(location) == (tmp_path / "share" / "a.json.gz").resolve()
        assert Path(location).read_bytes() == b"payload"

    def test_shared_files_are_world_readable(self, store: DirectoryArtifactStore) -> None:
        location = store.put("a.json.gz", b"payload")
        assert stat.S_IMODE(Path(location).stat().st_mode) == 0o644

    def test_get_by_location_or_identifier(self, store: DirectoryArtifactStore) -> None:
        location = store.put("a.json.gz", b"payload")
        assert store.get(location) == b"payload"
        assert store.get("a.json.gz") == b"payload"

    def test_put_overwrites(self, store: DirectoryArtifactStore) -> None:
        store.put("a", b"1")
        store.put("a", b"2")
        assert store.get("a") == b"2"

    def test_get_missing(self, store: DirectoryArtifactStore) -> None:
        with pytest.raises(ArtifactNotFoundError):
            store.get("nope.json.gz")

    def test_location_cannot_escape_directory(
        self, store: DirectoryArtifactStore, tmp_path: Path
    ) -> None:
        (tmp_path / "secret").write_bytes(b"s")
        with pytest.raises(ArtifactNotFoundError):
            store.get("../secret")
        location = store.put("../../escape", b"x")
        assert Path(location).parent == (tmp_path / "share").resolve()

    def test_exists(self, store: DirectoryArtifactStore) -> None:
        store.put("a", b"1")
        assert store.exists("a")
        assert not store.exists("b")

    def test_list_skips_hidden_files(self, store: DirectoryArtifactStore, tmp_path: Path) -> None:
        store.put("a", b"1")
        store.put("b", b"2")
        (tmp_path / "share" / ".a.123.tmp").write_bytes(b"")
        assert sorted(store.list()) == ["a", "b"]

    def test_list_missing_directory(self, store: DirectoryArtifactStore) -> None:
        assert store.list() == []

    def test_share_then_fetch_and_import(self, host: Host, store: DirectoryArtifactStore) -> None:
        location = store.put("mcc-export.json.gz", encode(make_envelope()))
        result = host.importer.import_bytes(store.get(location), target_root=BOB_ROOT)
        assert result.record_path.exists()
