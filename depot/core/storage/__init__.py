"""Storage backends.

Public API::

    from depot.core.storage import StorageBackend, LocalStorage, S3Storage
"""
from __future__ import annotations

from depot.core.storage.base import ZERO_TIME, StorageBackend
from depot.core.storage.local import LocalStorage
from depot.core.storage.s3 import S3Storage

__all__ = ["LocalStorage", "S3Storage", "StorageBackend", "ZERO_TIME"]
