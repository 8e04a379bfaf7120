"""Building and writing export envelopes.

Paths inside the session are left exactly as recorded; the envelope header
records the source project root so the importer can rewrite them later.
"""
from __future__ import annotations

import getpass
import logging
import re
import socket
from datetime import datetime, timezone
from pathlib import Path

from agent_session_porter.envelope import Envelope, ProvenanceMetadata, write_envelope
from agent_session_porter.locator import LocatedSession
from agent_session_porter.versioning import FormatVersion

logger = logging.getLogger(__name__)

EXPORT_SUFFIX = ".json.gz"
_SLUG_CHARS = re.compile(r"[^A-Za-z0-9 -]")


def default_exported_by() -> str:
    """Return ``"user@hostname"`` for the current process."""
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = "unknown"
    host = socket.gethostname() or "unknown"
    return f"{user}@{host}"


def build_envelope(
    session: LocatedSession,
    *,
    exported_by: str | None = None,
    now: datetime | None = None,
) -> Envelope:
    """Wrap *session* in a freshly stamped envelope.

    Parameters
    ----------
    session:
        The session to export.
    exported_by:
        Exporter identity.  Defaults to :func:`default_exported_by`.
    now:
        Export timestamp.  Defaults to the current UTC time.
    """
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    metadata = ProvenanceMetadata(
        format_version=FormatVersion.CURRENT,
        exported_at=stamp,
        exported_by=exported_by or default_exported_by(),
        source_project_root=session.project_path,
        source_session_id=session.session_id,
    )
    return Envelope(metadata=metadata, session=session.load())


def default_export_filename(session: LocatedSession, now: datetime | None = None) -> str:
    """Return a filename like ``20260105-101200-fix-the-login-flow.json.gz``."""
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d-%H%M%S")
    slug = _SLUG_CHARS.sub("", session.summary)[:30].strip().replace(" ", "-").lower()
    if not slug:
        return f"{stamp}{EXPORT_SUFFIX}"
    return f"{stamp}-{slug}{EXPORT_SUFFIX}"


def export_session(
    session: LocatedSession,
    output_path: str | Path,
    *,
    exported_by: str | None = None,
    now: datetime | None = None,
) -> Path:
    """Export *session* to a compressed artifact at *output_path*.

    The artifact is written atomically; an existing file is replaced.

    Returns
    -------
    Path
        The artifact location.
    """
    envelope = build_envelope(session, exported_by=exported_by, now=now)
    path = write_envelope(envelope, output_path)
    logger.debug("Exported session %s to %s", session.session_id, path)
    return path
