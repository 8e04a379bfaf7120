"""Restoring an exported session into the local host environment.

An import moves through a fixed sequence of stages::

    RECEIVED -> DECODED -> VERSION_CHECKED -> REWRITTEN
             -> RECORD_WRITTEN -> INDEX_MERGED -> DONE

Any error stops the import.  The error is re-raised unchanged except that
:attr:`PortabilityError.stage` names the stage that was being entered when
it occurred; operating-system errors surface as ``FilesystemError``.  Nothing
is left half-visible: the record and index are each installed by atomic
rename, and a record is removed again if anything fails after it was
written.

Re-importing the same artifact always creates a second, independent session
with its own identifier.

Classes
-------
- ImportStage     — the stage enum
- ImportResult    — what an import produced
- SessionImporter — runs imports against one host environment
"""
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable
from uuid import uuid4

from pydantic import BaseModel

from agent_session_porter.atomic import atomic_write_text
from agent_session_porter.document import dump_jsonl
from agent_session_porter.envelope import Envelope, check_version, load_payload
from agent_session_porter.errors import (
    FilesystemError,
    IdentifierCollisionError,
    PortabilityError,
)
from agent_session_porter.index import IndexEntry, SessionIndex
from agent_session_porter.locator import SessionLocator
from agent_session_porter.rewrite import PathMapping, rewrite_paths
from agent_session_porter.transcript import rebind_session_id

logger = logging.getLogger(__name__)

_MAX_ID_ATTEMPTS = 5


class ImportStage(str, Enum):
    """Stages of an import, in order."""

    RECEIVED = "received"
    DECODED = "decoded"
    VERSION_CHECKED = "version_checked"
    REWRITTEN = "rewritten"
    RECORD_WRITTEN = "record_written"
    INDEX_MERGED = "index_merged"
    DONE = "done"


class ImportResult(BaseModel):
    """Outcome of a successful import.

    Parameters
    ----------
    session_id:
        The freshly generated identifier of the imported session.
    source_session_id:
        The identifier the session had in the exporting environment.
    record_path:
        Where the session record was written.
    index_path:
        The index file the session was registered in.
    source_root:
        Project root recorded at export time.
    target_root:
        Project root the paths were rewritten to.
    fields_rewritten:
        Number of string fields whose path prefix was rewritten.
    """

    session_id: str
    source_session_id: str
    record_path: Path
    index_path: Path
    source_root: str
    target_root: str
    fields_rewritten: int


class SessionImporter:
    """Import envelopes into a host environment.

    The record file holds only the envelope's ``messages`` entries, one JSON
    document per line, which is the host's own record format.  Session-level
    fields such as ``summary``, ``git_branch`` or unknown keys stay in the
    artifact; the host derives its summary from the entries themselves.

    Parameters
    ----------
    locator:
        Locator for the host record store; decides where records go.
    index:
        The host session index to register imported sessions in.
    id_factory:
        Callable producing candidate session identifiers.  Defaults to
        random UUID4 strings.
    """

    def __init__(
        self,
        locator: SessionLocator,
        index: SessionIndex,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._locator = locator
        self._index = index
        self._id_factory = id_factory or (lambda: str(uuid4()))

    # ------------------------------------------------------------------
    # Stage helpers
    # ------------------------------------------------------------------

    def _fresh_id(self, source_session_id: str, project_root: str) -> str:
        for _ in range(_MAX_ID_ATTEMPTS):
            candidate = self._id_factory()
            if candidate == source_session_id:
                continue
            if self._locator.record_path(project_root, candidate).exists():
                continue
            if self._locator.exists(candidate) or self._index.contains(candidate):
                continue
            return candidate
        raise IdentifierCollisionError(
            f"Could not generate an unused session identifier in {_MAX_ID_ATTEMPTS} attempts"
        )

    def _write_record(self, envelope: Envelope, session_id: str, target_root: str) -> Path:
        source_id = envelope.metadata.source_session_id
        entries = rebind_session_id(envelope.messages, source_id, session_id)
        path = self._locator.record_path(target_root, session_id)
        return atomic_write_text(path, dump_jsonl(entries), overwrite=False)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def import_bytes(self, data: bytes, target_root: str | None = None) -> ImportResult:
        """Import the artifact *data*.

        Parameters
        ----------
        data:
            Compressed envelope bytes.
        target_root:
            Project root in this environment.  Defaults to the current
            working directory.

        Returns
        -------
        ImportResult
            Identifiers and locations of the new session.

        Raises
        ------
        PortabilityError
            Any subclass; ``error.stage`` names the failing stage.  An
            operating-system error is raised as :class:`FilesystemError`.
            Whatever the error, a record already written is removed again.
        """
        stage = ImportStage.RECEIVED
        record_path: Path | None = None
        completed = False
        logger.debug("Import stage %s (%d bytes)", stage.value, len(data))
        try:
            stage = ImportStage.DECODED
            payload = load_payload(data)

            stage = ImportStage.VERSION_CHECKED
            check_version(payload)
            envelope = Envelope.from_payload(payload)
            metadata = envelope.metadata

            stage = ImportStage.REWRITTEN
            mapping = PathMapping(metadata.source_project_root, target_root or os.getcwd())
            result = rewrite_paths(envelope.session, mapping)
            rewritten = envelope.model_copy(update={"session": result.document})
            logger.debug(
                "Rewrote %d fields from %s to %s",
                result.fields_rewritten,
                mapping.source_root,
                mapping.target_root,
            )

            stage = ImportStage.RECORD_WRITTEN
            session_id = self._fresh_id(metadata.source_session_id, mapping.target_root)
            record_path = self._write_record(rewritten, session_id, mapping.target_root)

            stage = ImportStage.INDEX_MERGED
            entry = IndexEntry(
                session_id=session_id,
                record_path=str(record_path),
                imported_at=datetime.now(timezone.utc).isoformat(),
                source_session_id=metadata.source_session_id,
                exported_by=metadata.exported_by,
            )
            self._index.append(mapping.target_root, entry)
            completed = True
        except PortabilityError as exc:
            exc.stage = stage.value
            raise
        except OSError as exc:
            raise FilesystemError(str(exc), stage=stage.value) from exc
        finally:
            # A record without its index entry is never left behind.
            if not completed and record_path is not None:
                self._discard(record_path)

        stage = ImportStage.DONE
        logger.debug(
            "Import stage %s: %s imported as %s", stage.value, metadata.source_session_id, session_id
        )
        return ImportResult(
            session_id=session_id,
            source_session_id=metadata.source_session_id,
            record_path=record_path,
            index_path=self._index.path,
            source_root=mapping.source_root,
            target_root=mapping.target_root,
            fields_rewritten=result.fields_rewritten,
        )

    def import_file(self, path: str | Path, target_root: str | None = None) -> ImportResult:
        """Read the artifact at *path* and import it.  See :meth:`import_bytes`."""
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise FilesystemError(
                f"Cannot read artifact {path}: {exc}", stage=ImportStage.RECEIVED.value
            ) from exc
        return self.import_bytes(data, target_root=target_root)

    def _discard(self, record_path: Path) -> None:
        try:
            record_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove orphaned record %s: %s", record_path, exc)
        else:
            logger.debug("Removed record %s after failed import", record_path)
