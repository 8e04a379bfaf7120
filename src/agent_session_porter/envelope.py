"""Export envelope models and the envelope codec.

An envelope is the sole unit of transfer between environments.  On the wire
it is gzip-compressed JSON::

    {
        "format_version": "1.0",
        "exported_at": "2026-01-05T10:12:00+00:00",
        "exported_by": "alice@laptop",
        "source_project_root": "/Users/alice/app",
        "source_session_id": "5f0c...",
        "session": { ...host-owned session record... }
    }

Top-level fields this library does not know about are kept on
:class:`ProvenanceMetadata` as extra attributes and written back out by
:func:`encode`, so envelopes from newer minor versions survive a
decode/encode cycle intact.

Classes
-------
ProvenanceMetadata
    Frozen Pydantic model of the envelope header.
Envelope
    Header plus the opaque session record.

Functions
---------
encode / decode
    Envelope to compressed bytes and back.
read_envelope / write_envelope
    File-level helpers.
"""
from __future__ import annotations

import gzip
import logging
import zlib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from agent_session_porter.atomic import atomic_write_bytes
from agent_session_porter.document import dump_document, parse_document
from agent_session_porter.errors import DecompressionError, FilesystemError, ParseError
from agent_session_porter.versioning import EnvelopeMigrator, FormatVersion

logger = logging.getLogger(__name__)

_SESSION_KEY = "session"
_MIGRATOR = EnvelopeMigrator()


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class ProvenanceMetadata(BaseModel):
    """Fixed header identifying an envelope's origin and format version.

    Parameters
    ----------
    format_version:
        ``"major.minor"`` format version of the envelope.
    exported_at:
        ISO-8601 UTC timestamp of the export.
    exported_by:
        Exporter identity, conventionally ``"user@hostname"``.
    source_project_root:
        Absolute project directory the session was recorded in.
    source_session_id:
        Identifier of the session in the exporting environment.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    format_version: str = Field(default=FormatVersion.CURRENT)
    exported_at: str
    exported_by: str
    source_project_root: str
    source_session_id: str

    @field_validator("format_version")
    @classmethod
    def _validate_version(cls, value: str) -> str:
        FormatVersion.parse(value)
        return value

    @field_validator("source_project_root")
    @classmethod
    def _validate_root(cls, value: str) -> str:
        if not value:
            raise ValueError("source_project_root must not be empty")
        return value

    @property
    def passthrough(self) -> dict[str, Any]:
        """Header fields unknown to this library, in arrival order."""
        return dict(self.model_extra or {})


class Envelope(BaseModel):
    """A provenance header plus the opaque host session record."""

    metadata: ProvenanceMetadata
    session: dict[str, Any]

    @property
    def messages(self) -> list[Any]:
        """The session's transcript entries, or an empty list."""
        messages = self.session.get("messages")
        return messages if isinstance(messages, list) else []

    def to_payload(self) -> dict[str, Any]:
        """Return the wire-level mapping (header fields flattened, then session)."""
        payload = self.metadata.model_dump()
        payload[_SESSION_KEY] = self.session
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Envelope:
        """Build an envelope from a wire-level mapping in the current layout.

        Raises
        ------
        ParseError
            If the session object or a required header field is missing or
            has the wrong type.
        """
        header = dict(payload)
        session = header.pop(_SESSION_KEY, None)
        if not isinstance(session, dict):
            raise ParseError("Envelope has no 'session' object")
        try:
            metadata = ProvenanceMetadata.model_validate(header)
        except ValidationError as exc:
            raise ParseError(f"Invalid envelope header: {exc}") from exc
        return cls(metadata=metadata, session=session)


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


def encode(envelope: Envelope) -> bytes:
    """Serialise *envelope* to compressed bytes.

    The gzip header timestamp is fixed, so identical envelopes always
    produce identical bytes.
    """
    text = dump_document(envelope.to_payload(), indent=2)
    return gzip.compress(text.encode("utf-8"), mtime=0)


def _decompress(data: bytes) -> bytes:
    if not data:
        raise DecompressionError("Artifact is empty")
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise DecompressionError(f"Artifact is not valid gzip data: {exc}") from exc


def load_payload(data: bytes) -> dict[str, Any]:
    """Decompress and parse *data* into a wire-level mapping in the current layout.

    Raises
    ------
    DecompressionError
        If *data* is not valid compressed data.
    ParseError
        If the decompressed content is not a JSON object.
    """
    payload = parse_document(_decompress(data))
    if not isinstance(payload, dict):
        raise ParseError("Envelope content must be a JSON object")
    return _MIGRATOR.migrate(payload)


def check_version(payload: dict[str, Any]) -> None:
    """Apply the major-version gate to a wire-level mapping.

    Raises
    ------
    ParseError
        If ``format_version`` is missing or malformed.
    UnsupportedVersionError
        If the major version is newer than this library reads.
    """
    FormatVersion.check(payload.get("format_version"))


def decode(data: bytes) -> Envelope:
    """Decompress and parse an envelope.

    Raises
    ------
    DecompressionError
        If *data* is not valid compressed data.
    ParseError
        If the decompressed content is not a well-formed envelope.
    UnsupportedVersionError
        If the envelope's major version is newer than this library reads.
    """
    payload = load_payload(data)
    check_version(payload)
    envelope = Envelope.from_payload(payload)
    logger.debug(
        "Decoded envelope v%s for session %s",
        envelope.metadata.format_version,
        envelope.metadata.source_session_id,
    )
    return envelope


def read_envelope(path: str | Path) -> Envelope:
    """Read and decode the artifact at *path*.

    Raises
    ------
    FilesystemError
        If the file cannot be read.
    """
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise FilesystemError(f"Cannot read artifact {path}: {exc}") from exc
    return decode(data)


def write_envelope(envelope: Envelope, path: str | Path) -> Path:
    """Encode *envelope* and write it atomically to *path*."""
    return atomic_write_bytes(path, encode(envelope))
