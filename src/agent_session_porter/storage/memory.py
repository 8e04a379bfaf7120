"""In-memory artifact store.

Keeps artifacts in a plain dict; everything is lost when the process exits.
Useful for tests.

Classes
-------
- InMemoryArtifactStore  — dict-backed ephemeral store
"""
from __future__ import annotations

from agent_session_porter.errors import ArtifactNotFoundError
from agent_session_porter.storage.base import ArtifactStore

_SCHEME = "memory://"


class InMemoryArtifactStore(ArtifactStore):
    """Ephemeral, in-process artifact store.

    Parameters
    ----------
    initial_data:
        Optional pre-populated mapping of identifiers to artifact bytes.
        A shallow copy is taken.
    """

    def __init__(self, initial_data: dict[str, bytes] | None = None) -> None:
        self._store: dict[str, bytes] = dict(initial_data or {})

    @staticmethod
    def _identifier(location: str) -> str:
        return location[len(_SCHEME):] if location.startswith(_SCHEME) else location

    def put(self, identifier: str, data: bytes) -> str:
        self._store[identifier] = bytes(data)
        return f"{_SCHEME}{identifier}"

    def get(self, location: str) -> bytes:
        identifier = self._identifier(location)
        if identifier not in self._store:
            raise ArtifactNotFoundError(location)
        return self._store[identifier]

    def exists(self, location: str) -> bool:
        return self._identifier(location) in self._store

    def list(self) -> list[str]:
        return list(self._store.keys())

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"InMemoryArtifactStore(artifacts={len(self._store)})"
