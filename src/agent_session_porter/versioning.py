"""Envelope format versioning and migration.

Envelope versions are ``"major.minor"`` strings.  A reader accepts every
envelope whose major component is not newer than :attr:`FormatVersion.SUPPORTED_MAJOR`;
minor bumps only ever add fields, which the codec passes through untouched.

Artifacts written by the earlier ``mcc`` tool carry a ``"version"`` key
instead of ``"format_version"`` and keep their provenance inside the
``session`` object.  :class:`EnvelopeMigrator` lifts those payloads to the
current layout before validation.

Classes
-------
FormatVersion
    Current version string, major-version gate and parsing.
EnvelopeMigrator
    Registers and applies migrations keyed by payload layout.
"""
from __future__ import annotations

import logging
from typing import Callable

from agent_session_porter.errors import ParseError, UnsupportedVersionError

logger = logging.getLogger(__name__)

Payload = dict[str, object]

LEGACY_LAYOUT = "legacy"
CURRENT_LAYOUT = "current"


# ---------------------------------------------------------------------------
# FormatVersion
# ---------------------------------------------------------------------------


class FormatVersion:
    """Envelope format version registry.

    Attributes
    ----------
    CURRENT:
        The version written by this library.
    SUPPORTED_MAJOR:
        The highest major version this library can read.
    """

    CURRENT: str = "1.0"
    SUPPORTED_MAJOR: int = 1

    @staticmethod
    def parse(version: object) -> tuple[int, int]:
        """Split *version* into ``(major, minor)``.

        A missing minor component reads as ``0``; any patch component
        (``"1.0.0"``) is ignored.

        Raises
        ------
        ParseError
            If *version* is not a string of dot-separated integers.
        """
        if not isinstance(version, str) or not version:
            raise ParseError(f"format_version must be a non-empty string, got {version!r}")
        parts = version.split(".")
        try:
            numbers = [int(part) for part in parts]
        except ValueError as exc:
            raise ParseError(f"Malformed format_version {version!r}") from exc
        if any(number < 0 for number in numbers):
            raise ParseError(f"Malformed format_version {version!r}")
        major = numbers[0]
        minor = numbers[1] if len(numbers) > 1 else 0
        return major, minor

    @staticmethod
    def is_supported(version: str) -> bool:
        """Return ``True`` when an envelope at *version* can be read."""
        major, _ = FormatVersion.parse(version)
        return major <= FormatVersion.SUPPORTED_MAJOR

    @staticmethod
    def check(version: object) -> None:
        """Raise :class:`UnsupportedVersionError` unless *version* is readable.

        Raises
        ------
        ParseError
            If *version* is malformed.
        UnsupportedVersionError
            If its major component exceeds :attr:`SUPPORTED_MAJOR`.
        """
        major, _ = FormatVersion.parse(version)
        if major > FormatVersion.SUPPORTED_MAJOR:
            raise UnsupportedVersionError(str(version), FormatVersion.SUPPORTED_MAJOR)


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------


def _migrate_legacy(data: Payload) -> Payload:
    """Lift a legacy ``mcc`` payload to the current envelope layout.

    Legacy layout::

        {"version": "1.0.0", "exported_at": ..., "exported_by": ...,
         "session": {"id": ..., "project_path": ..., "messages": [...], ...}}
    """
    session = data.get("session")
    if not isinstance(session, dict):
        raise ParseError("Legacy artifact has no 'session' object")
    migrated: Payload = {
        "format_version": data["version"],
        "exported_at": data.get("exported_at", ""),
        "exported_by": data.get("exported_by", "unknown"),
        "source_project_root": session.get("project_path"),
        "source_session_id": session.get("id"),
    }
    for key, value in data.items():
        if key not in migrated and key != "version":
            migrated[key] = value
    return migrated


class EnvelopeMigrator:
    """Registration-based migration engine for raw envelope payloads.

    Migrations are keyed by the payload layout they accept.  The migrator
    detects the layout, applies the registered function, and returns the
    payload in the current layout.

    Example
    -------
    .. code-block:: python

        migrator = EnvelopeMigrator()
        payload = migrator.migrate(json.loads(text))
    """

    def __init__(self) -> None:
        self._migrations: dict[str, Callable[[Payload], Payload]] = {
            LEGACY_LAYOUT: _migrate_legacy,
        }

    def register_migration(
        self,
        layout: str,
        migrate_fn: Callable[[Payload], Payload],
    ) -> None:
        """Register *migrate_fn* for payloads detected as *layout*."""
        self._migrations[layout] = migrate_fn

    def detect_layout(self, data: Payload) -> str:
        """Return the layout name of *data*."""
        if "format_version" not in data and "version" in data:
            return LEGACY_LAYOUT
        return CURRENT_LAYOUT

    def migrate(self, data: Payload) -> Payload:
        """Return *data* in the current layout.

        Raises
        ------
        ParseError
            If *data* is in a layout with no registered migration.
        """
        layout = self.detect_layout(data)
        if layout == CURRENT_LAYOUT:
            return data
        if layout not in self._migrations:
            raise ParseError(f"No migration registered for envelope layout {layout!r}")
        logger.debug("Migrating envelope payload from %s layout", layout)
        return self._migrations[layout](data)
