"""Abstract base class for artifact stores.

A store holds exported artifacts so they can be shared between users.  The
engine does not care where an artifact came from: ``fetch`` simply hands
the bytes returned by :meth:`ArtifactStore.get` to the importer.

Classes
-------
- ArtifactStore  — abstract base for all stores
"""
from __future__ import annotations

from abc import ABC, abstractmethod


class ArtifactStore(ABC):
    """Protocol for uploading and downloading artifact bytes.

    Implementations must be safe for sequential (single-threaded) use.
    """

    @abstractmethod
    def put(self, identifier: str, data: bytes) -> str:
        """Store *data* under *identifier* and return its location.

        An existing artifact with the same identifier is overwritten.

        Parameters
        ----------
        identifier:
            Name for the artifact, typically the local file name.
        data:
            Compressed envelope bytes.

        Returns
        -------
        str
            A location string that :meth:`get` accepts, suitable for
            sending to another user.
        """

    @abstractmethod
    def get(self, location: str) -> bytes:
        """Return the artifact stored at *location*.

        Parameters
        ----------
        location:
            A location returned by :meth:`put`, or a bare identifier.

        Raises
        ------
        ArtifactNotFoundError
            If nothing is stored at *location*.
        FilesystemError
            If the store cannot be read.
        """

    @abstractmethod
    def exists(self, location: str) -> bool:
        """Return True if an artifact is stored at *location*."""

    @abstractmethod
    def list(self) -> list[str]:
        """Return the identifiers of all stored artifacts.  Order is unspecified."""
