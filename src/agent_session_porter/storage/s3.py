"""AWS S3 artifact store.

Import-guarded: ``boto3`` is an optional dependency.  Instantiating
``S3ArtifactStore`` without ``boto3`` installed raises ``ImportError``.

Each artifact is one object whose key is ``<prefix><identifier>``; the
location handed out is ``s3://<bucket>/<key>``.

Classes
-------
- S3ArtifactStore  — AWS S3 object-storage store
"""
from __future__ import annotations

from agent_session_porter.errors import ArtifactNotFoundError, FilesystemError
from agent_session_porter.storage.base import ArtifactStore

_BOTO3_IMPORT_ERROR = (
    "The 'boto3' package is required for S3ArtifactStore. "
    "Install it with: pip install 'agent-session-porter[s3]'"
)
_SCHEME = "s3://"
_MISSING_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def _error_code(exc: Exception) -> str:
    response = getattr(exc, "response", None) or {}
    return str(response.get("Error", {}).get("Code", ""))


class S3ArtifactStore(ArtifactStore):
    """Stores artifacts as objects in an S3 bucket.

    Parameters
    ----------
    bucket_name:
        Name of the target bucket.  A leading ``s3://`` is ignored.
    prefix:
        Key prefix for all artifacts (note the trailing slash).
    region_name:
        AWS region for the bucket.
    endpoint_url:
        Optional custom endpoint URL (e.g. for LocalStack or MinIO).
    """

    def __init__(
        self,
        bucket_name: str,
        prefix: str = "sessions/",
        region_name: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        try:
            import boto3  # noqa: PLC0415
        except ImportError as exc:
            raise ImportError(_BOTO3_IMPORT_ERROR) from exc

        session = boto3.session.Session(region_name=region_name)
        self._s3 = session.client("s3", endpoint_url=endpoint_url)
        self._bucket = bucket_name.removeprefix(_SCHEME).rstrip("/")
        self._prefix = prefix

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _object_key(self, location: str) -> str:
        """Return the object key for a location or bare identifier.

        Raises
        ------
        ValueError
            If *location* is an ``s3://`` URL for a different bucket.
        """
        if location.startswith(_SCHEME):
            bucket, _, key = location[len(_SCHEME):].partition("/")
            if bucket != self._bucket:
                raise ValueError(
                    f"Location {location!r} is not in bucket {self._bucket!r}"
                )
            return key
        return f"{self._prefix}{location}"

    # ------------------------------------------------------------------
    # ArtifactStore interface
    # ------------------------------------------------------------------

    def put(self, identifier: str, data: bytes) -> str:
        """Upload *data* as ``<prefix><identifier>``.

        Raises
        ------
        FilesystemError
            If the upload fails (credentials, permissions, network).
        """
        key = self._object_key(identifier)
        try:
            self._s3.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType="application/gzip",
            )
        except Exception as exc:
            raise FilesystemError(f"Cannot upload s3://{self._bucket}/{key}: {exc}") from exc
        return f"{_SCHEME}{self._bucket}/{key}"

    def get(self, location: str) -> bytes:
        """Download the object at *location*.

        Raises
        ------
        ArtifactNotFoundError
            If the object does not exist.
        FilesystemError
            For any other S3 or transport failure.
        """
        key = self._object_key(location)
        try:
            response = self._s3.get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read()
        except Exception as exc:
            if _error_code(exc) in _MISSING_CODES:
                raise ArtifactNotFoundError(location) from exc
            raise FilesystemError(f"Cannot download s3://{self._bucket}/{key}: {exc}") from exc

    def exists(self, location: str) -> bool:
        key = self._object_key(location)
        try:
            self._s3.head_object(Bucket=self._bucket, Key=key)
        except Exception as exc:
            if _error_code(exc) in _MISSING_CODES:
                return False
            raise FilesystemError(f"Cannot check s3://{self._bucket}/{key}: {exc}") from exc
        return True

    def list(self) -> list[str]:
        """List artifact identifiers under the prefix, using pagination."""
        prefix_len = len(self._prefix)
        identifiers: list[str] = []
        paginator = self._s3.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self._bucket, Prefix=self._prefix):
            for obj in page.get("Contents", []):
                key: str = obj["Key"]
                if key.startswith(self._prefix):
                    identifiers.append(key[prefix_len:])
        return identifiers

    def __repr__(self) -> str:
        return f"S3ArtifactStore(bucket={self._bucket!r}, prefix={self._prefix!r})"
