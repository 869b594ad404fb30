"""depot core — embeddable storage abstraction.

Public API::

    from depot.core import StorageConfig, build_registry

    registry = build_registry(StorageConfig(storage_dir="/srv/files"))
    storage = registry.instance()          # default backend
    if storage.put("notes.txt", "hello"):
        data = storage.get("notes.txt")
"""
from __future__ import annotations

from depot.core._builder import build_registry
from depot.core.config import StorageConfig, StorageConfigError
from depot.core.errors import ErrorKind, StorageError, StorageResult
from depot.core.registry import StorageRegistry
from depot.core.storage import ZERO_TIME, LocalStorage, S3Storage, StorageBackend

__all__ = [
    "ErrorKind",
    "LocalStorage",
    "S3Storage",
    "StorageBackend",
    "StorageConfig",
    "StorageConfigError",
    "StorageError",
    "StorageRegistry",
    "StorageResult",
    "ZERO_TIME",
    "build_registry",
]
