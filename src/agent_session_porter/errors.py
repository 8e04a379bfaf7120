"""Error taxonomy for the session portability engine.

Every error raised by the engine derives from :class:`PortabilityError`.
Errors raised while importing carry the name of the import stage that
failed in :attr:`PortabilityError.stage`; the importer sets it and then
re-raises the original exception object unchanged.

Classes
-------
- PortabilityError          — base class, carries ``stage``
- DecompressionError        — artifact is not valid compressed data
- ParseError                — decompressed content is not well-formed
- UnsupportedVersionError   — envelope major version is too new
- IndexFormatError          — host session index has an unrecognized shape
- FilesystemError           — I/O failure while writing
- IdentifierCollisionError  — no free session identifier could be generated
- SessionNotFoundError      — the host store has no such session
- ArtifactNotFoundError     — an artifact store has no such location
- ConfigError               — configuration file unreadable or invalid
"""
from __future__ import annotations


class PortabilityError(Exception):
    """Base class for all engine errors.

    Parameters
    ----------
    message:
        Human-readable description.
    stage:
        Name of the import stage that failed, when raised during an import.
    """

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage

    def __str__(self) -> str:
        message = Exception.__str__(self)
        if self.stage:
            return f"[{self.stage}] {message}"
        return message


class DecompressionError(PortabilityError):
    """Raised when an artifact cannot be decompressed."""


class ParseError(PortabilityError):
    """Raised when content is not well-formed structured data."""


class UnsupportedVersionError(PortabilityError):
    """Raised when an envelope's major format version is newer than supported."""

    def __init__(self, version: str, supported_major: int) -> None:
        self.version = version
        self.supported_major = supported_major
        super().__init__(
            f"Unsupported envelope format version {version!r}. "
            f"Highest supported major version: {supported_major}"
        )


class IndexFormatError(PortabilityError):
    """Raised when the host session index is not in a recognized format.

    The index file is never written after this error is raised.
    """


class FilesystemError(PortabilityError):
    """Raised when a read or write step fails at the operating-system level."""


class IdentifierCollisionError(PortabilityError):
    """Raised when no unused session identifier could be generated."""


class SessionNotFoundError(PortabilityError, KeyError):
    """Raised when a requested session does not exist in the host store."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id!r} not found.")

    def __str__(self) -> str:
        return PortabilityError.__str__(self)


class ArtifactNotFoundError(PortabilityError, KeyError):
    """Raised when an artifact store holds nothing at the requested location."""

    def __init__(self, location: str) -> None:
        self.location = location
        super().__init__(f"Artifact {location!r} not found.")

    def __str__(self) -> str:
        return PortabilityError.__str__(self)


class ConfigError(PortabilityError):
    """Raised when the configuration file cannot be read or is invalid."""
