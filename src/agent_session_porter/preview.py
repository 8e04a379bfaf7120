"""Read-only inspection of export artifacts.

Previewing decodes an artifact and derives a short summary from it.  It
never rewrites paths, never touches the host store or index, and never
writes any file; on malformed input the decode error is the only effect.
"""
from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

from agent_session_porter.envelope import Envelope, ProvenanceMetadata, decode
from agent_session_porter.errors import FilesystemError
from agent_session_porter.transcript import git_branch, summarize


class EnvelopePreview(BaseModel):
    """What an artifact contains, without importing it.

    Parameters
    ----------
    metadata:
        The envelope header, including passthrough fields.
    message_count:
        Number of transcript entries.
    summary:
        Earliest user-authored text, truncated.
    git_branch:
        Git branch recorded with the session, if any.
    project_path:
        Project path recorded in the session (falls back to the header root).
    """

    metadata: ProvenanceMetadata
    message_count: int
    summary: str
    git_branch: str | None = None
    project_path: str

    @classmethod
    def from_envelope(cls, envelope: Envelope) -> EnvelopePreview:
        session = envelope.session
        entries = envelope.messages
        branch = session.get("git_branch")
        if not isinstance(branch, str) or not branch:
            branch = git_branch(entries)
        project_path = session.get("project_path")
        if not isinstance(project_path, str) or not project_path:
            project_path = envelope.metadata.source_project_root
        return cls(
            metadata=envelope.metadata,
            message_count=len(entries),
            summary=summarize(entries),
            git_branch=branch,
            project_path=project_path,
        )


def preview_bytes(data: bytes) -> EnvelopePreview:
    """Decode *data* and summarise it.

    Raises
    ------
    DecompressionError, ParseError, UnsupportedVersionError
        Exactly as :func:`~agent_session_porter.envelope.decode` does.
    """
    return EnvelopePreview.from_envelope(decode(data))


def preview_file(path: str | Path) -> EnvelopePreview:
    """Read the artifact at *path* and summarise it.

    Raises
    ------
    FilesystemError
        If the file cannot be read.
    """
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise FilesystemError(f"Cannot read artifact {path}: {exc}") from exc
    return preview_bytes(data)
