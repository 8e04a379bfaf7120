"""User configuration for agent-session-porter.

Settings live in ``~/.mcc/config.yaml`` (or the file named by the
``MCC_CONFIG`` environment variable).  Every field can also be overridden
with an ``MCC_<FIELD NAME>`` environment variable, e.g. ``MCC_BUCKET``.
A missing file simply yields the defaults.

Saving writes back only what the file already held plus settings changed
through :meth:`PorterConfig.with_settings`; environment overrides and
home-derived defaults are never pinned into the file.

Example ``config.yaml``::

    bucket: team-sessions
    bucket_prefix: claude/
    exported_by: alice
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, PrivateAttr, ValidationError

from agent_session_porter.atomic import atomic_write_text
from agent_session_porter.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "MCC_CONFIG"
ENV_PREFIX = "MCC_"


def _home() -> Path:
    return Path.home()


class PorterConfig(BaseModel):
    """Resolved settings.

    Parameters
    ----------
    claude_home:
        The host's data directory; records live under ``projects/``.
    index_path:
        The host's session index file.
    export_dir:
        Where ``export --named`` writes timestamped artifacts.
    export_filename:
        Default artifact name for ``export`` / ``import`` in the current
        directory.
    bucket:
        S3 bucket used by ``share`` / ``fetch``.  Empty disables S3.
    bucket_prefix:
        Key prefix for shared artifacts.
    storage_dir:
        Shared directory used by ``share`` / ``fetch`` when no bucket is set.
    exported_by:
        Identity written into envelopes.  Defaults to ``user@hostname``.
    lock_timeout:
        Seconds to wait for another import to finish updating the index.
    """

    claude_home: Path = Field(default_factory=lambda: _home() / ".claude")
    index_path: Path = Field(default_factory=lambda: _home() / ".claude.json")
    export_dir: Path = Field(default_factory=lambda: _home() / ".mcc" / "exports")
    export_filename: str = "mcc-export.json.gz"
    bucket: str = ""
    bucket_prefix: str = "sessions/"
    storage_dir: Path | None = None
    exported_by: str | None = None
    lock_timeout: float = 10.0

    # Raw mapping read from the config file; None when not loaded from one.
    _stored: dict[str, Any] | None = PrivateAttr(default=None)

    @property
    def projects_dir(self) -> Path:
        return self.claude_home / "projects"

    @property
    def sharing_enabled(self) -> bool:
        return bool(self.bucket) or self.storage_dir is not None

    @staticmethod
    def default_path() -> Path:
        """Return the configuration file location."""
        override = os.environ.get(CONFIG_PATH_ENV)
        if override:
            return Path(override).expanduser()
        return _home() / ".mcc" / "config.yaml"

    @classmethod
    def _env_overrides(cls) -> dict[str, str]:
        overrides: dict[str, str] = {}
        for name in cls.model_fields:
            value = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
            if value is not None:
                overrides[name] = value
        return overrides

    @classmethod
    def load(cls, path: str | Path | None = None) -> PorterConfig:
        """Load settings from *path* (default :meth:`default_path`) and the environment.

        Raises
        ------
        ConfigError
            If the file is unreadable, is not a YAML mapping, or holds
            invalid values.
        """
        config_path = Path(path) if path is not None else cls.default_path()
        data: dict[str, Any] = {}
        if config_path.exists():
            try:
                loaded = yaml.safe_load(config_path.read_text(encoding="utf-8"))
            except (OSError, yaml.YAMLError) as exc:
                raise ConfigError(f"Cannot read config {config_path}: {exc}") from exc
            if loaded is not None and not isinstance(loaded, dict):
                raise ConfigError(f"Config {config_path} must be a YAML mapping")
            data.update(loaded or {})
            logger.debug("Loaded config from %s", config_path)
        stored = dict(data)
        data.update(cls._env_overrides())
        try:
            config = cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid config {config_path}: {exc}") from exc
        config._stored = stored
        return config

    def stored_settings(self) -> dict[str, Any]:
        """Return the mapping :meth:`save` would write.

        For a loaded config this is the file content; for one built in code
        it is the fields passed to the constructor.
        """
        if self._stored is not None:
            return dict(self._stored)
        return self.model_dump(mode="json", include=self.model_fields_set, exclude_none=True)

    def with_settings(self, **changes: Any) -> PorterConfig:
        """Return a copy with *changes* applied and recorded for :meth:`save`."""
        updated = self.model_copy(update=changes)
        stored = self.stored_settings()
        for key, value in updated.model_dump(mode="json", include=set(changes)).items():
            if value is None:
                stored.pop(key, None)
            else:
                stored[key] = value
        updated._stored = stored
        return updated

    def save(self, path: str | Path | None = None) -> Path:
        """Write the stored settings as YAML to *path* (default :meth:`default_path`).

        Environment overrides and defaults are not written; see
        :meth:`stored_settings`.
        """
        config_path = Path(path) if path is not None else self.default_path()
        data = self.stored_settings()
        text = yaml.safe_dump(data, default_flow_style=False, sort_keys=True)
        return atomic_write_text(config_path, text)
