"""Artifact store subpackage.

All stores implement the ``ArtifactStore`` ABC.  The S3 store guards its
``boto3`` import so the package stays installable without that extra;
import it from ``agent_session_porter.storage.s3`` directly.

Public surface
--------------
- ArtifactStore           — abstract base class
- DirectoryArtifactStore  — artifacts as files in a shared directory
- InMemoryArtifactStore   — in-process dict (useful for testing)
"""
from __future__ import annotations

from agent_session_porter.storage.base import ArtifactStore
from agent_session_porter.storage.filesystem import DirectoryArtifactStore
from agent_session_porter.storage.memory import InMemoryArtifactStore

__all__ = [
    "ArtifactStore",
    "DirectoryArtifactStore",
    "InMemoryArtifactStore",
]
