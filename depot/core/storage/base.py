"""StorageBackend protocol — the capability contract every backend satisfies.

Implementations:
- LocalStorage (rooted directory on the local filesystem)
- S3Storage (bucket on an S3-compatible object store)

Write, delete and directory operations return a ``StorageResult`` that is
truthy on success and carries a ``StorageError`` otherwise. ``get`` raises
``StorageError`` instead, since callers cannot continue without the content.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import BinaryIO, Protocol, runtime_checkable

from depot.core.errors import StorageResult

# Returned by last_modified() when the timestamp cannot be read
ZERO_TIME = datetime.min.replace(tzinfo=timezone.utc)


@runtime_checkable
class StorageBackend(Protocol):
    """Whole-file storage addressed by relative paths.

    Paths are resolved against the backend's root (a base directory,
    or a bucket key prefix) after normalization.
    """

    def put(self, path: str, contents: str) -> StorageResult:
        """Create or truncate a file with text content (UTF-8)."""
        ...

    def put_data(self, path: str, contents: bytes) -> StorageResult:
        """Create or truncate a file with raw bytes."""
        ...

    def put_from_file(self, path: str, source: BinaryIO) -> StorageResult:
        """Create a file from everything readable in ``source``."""
        ...

    def delete(self, path: str) -> StorageResult:
        ...

    def copy(self, src: str, dst: str) -> StorageResult:
        ...

    def move(self, src: str, dst: str) -> StorageResult:
        ...

    def exists(self, path: str) -> bool:
        ...

    def get(self, path: str) -> bytes:
        """Read a whole file. Raises StorageError on failure."""
        ...

    def size(self, path: str) -> int:
        """Size in bytes, 0 when it cannot be determined."""
        ...

    def last_modified(self, path: str) -> datetime:
        """Modification time (UTC), ZERO_TIME when it cannot be determined."""
        ...

    def url(self, path: str) -> str:
        """Public URL for a path. Does not check that the file exists."""
        ...

    def make_dir(self, path: str) -> StorageResult:
        ...

    def delete_dir(self, path: str) -> StorageResult:
        ...

    def append(self, path: str, data: str) -> StorageResult:
        """Append text to the end of a file (created if missing)."""
        ...
