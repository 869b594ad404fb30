"""Storage registry — name-indexed backends with a default name.

The registry is owned by the composition root (see ``build_registry``) and
passed to whatever needs to resolve a backend. It is meant to be filled
before readers start; the lock only keeps late registrations from tearing
the mapping.
"""
from __future__ import annotations

import logging
import threading

from depot.core.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class StorageRegistry:
    """Maps backend-type names ("local", "s3", ...) to backend instances."""

    def __init__(self, default_name: str = "local") -> None:
        self._default_name = default_name
        self._backends: dict[str, StorageBackend] = {}
        self._lock = threading.Lock()

    @property
    def default_name(self) -> str:
        return self._default_name

    def register(self, name: str, backend: StorageBackend) -> None:
        """Add or replace the backend registered under ``name``."""
        with self._lock:
            replaced = name in self._backends
            self._backends[name] = backend
        logger.debug("%s storage backend %r: %r", "Replaced" if replaced else "Registered", name, backend)

    def instance(self, name: str | None = None) -> StorageBackend | None:
        """Backend registered under ``name``, or under the default name.

        Returns None when nothing is registered; that is a configuration
        mistake on the caller's side.
        """
        resolved = name or self._default_name
        with self._lock:
            backend = self._backends.get(resolved)
        if backend is None:
            logger.warning("No storage backend registered as %r", resolved)
        return backend

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._backends)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._backends

    def __repr__(self) -> str:
        return f"StorageRegistry(default={self._default_name!r}, backends={self.names()!r})"
