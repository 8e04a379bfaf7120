"""agent-session-porter — Portable Claude Code sessions.

Export a session (transcript, tool calls, working-directory and git
metadata) into a single compressed artifact, and import that artifact on
another machine so ``/resume`` picks it up, with project paths rewritten
for the new checkout.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import agent_session_porter
>>> agent_session_porter.__version__
'0.1.0'
"""
from __future__ import annotations

# Errors
from agent_session_porter.errors import (
    ArtifactNotFoundError,
    ConfigError,
    DecompressionError,
    FilesystemError,
    IdentifierCollisionError,
    IndexFormatError,
    ParseError,
    PortabilityError,
    SessionNotFoundError,
    UnsupportedVersionError,
)

# Document model
from agent_session_porter.document import (
    Document,
    dump_document,
    dump_jsonl,
    parse_document,
    parse_jsonl,
)

# Envelope and codec
from agent_session_porter.envelope import (
    Envelope,
    ProvenanceMetadata,
    decode,
    encode,
    read_envelope,
    write_envelope,
)
from agent_session_porter.versioning import EnvelopeMigrator, FormatVersion

# Host store and index
from agent_session_porter.locator import LocatedSession, SessionLocator, encode_project_dir
from agent_session_porter.index import IndexEntry, SessionIndex

# Operations
from agent_session_porter.exporter import build_envelope, export_session
from agent_session_porter.rewrite import PathMapping, RewriteResult, rewrite_paths
from agent_session_porter.importer import ImportResult, ImportStage, SessionImporter
from agent_session_porter.preview import EnvelopePreview, preview_bytes, preview_file

# Configuration and sharing
from agent_session_porter.config import PorterConfig
from agent_session_porter.storage import (
    ArtifactStore,
    DirectoryArtifactStore,
    InMemoryArtifactStore,
)

__version__: str = "0.1.0"

__all__ = [
    "__version__",
    # Errors
    "ArtifactNotFoundError",
    "ConfigError",
    "DecompressionError",
    "FilesystemError",
    "IdentifierCollisionError",
    "IndexFormatError",
    "ParseError",
    "PortabilityError",
    "SessionNotFoundError",
    "UnsupportedVersionError",
    # Document model
    "Document",
    "dump_document",
    "dump_jsonl",
    "parse_document",
    "parse_jsonl",
    # Envelope
    "Envelope",
    "EnvelopeMigrator",
    "FormatVersion",
    "ProvenanceMetadata",
    "decode",
    "encode",
    "read_envelope",
    "write_envelope",
    # Host store
    "IndexEntry",
    "LocatedSession",
    "SessionIndex",
    "SessionLocator",
    "encode_project_dir",
    # Operations
    "EnvelopePreview",
    "ImportResult",
    "ImportStage",
    "PathMapping",
    "RewriteResult",
    "SessionImporter",
    "build_envelope",
    "export_session",
    "preview_bytes",
    "preview_file",
    "rewrite_paths",
    # Configuration and sharing
    "ArtifactStore",
    "DirectoryArtifactStore",
    "InMemoryArtifactStore",
    "PorterConfig",
]
