"""Local filesystem storage backend.

Maps relative paths to a root directory on the local filesystem. Writes
made with ``put_from_file`` and ``copy`` are fsync'd before success is
reported; ``put``/``put_data`` are not.
"""
from __future__ import annotations

import logging
import os
import shutil
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, BinaryIO, Iterator

from depot.core.errors import ErrorKind, StorageError, StorageResult, failed, wrap_error
from depot.core.storage.base import ZERO_TIME

logger = logging.getLogger(__name__)


def _has_prefix(path: str, root: str) -> bool:
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


def _is_within(path: str, root: str) -> bool:
    return _has_prefix(os.path.abspath(path), os.path.abspath(root))


@contextmanager
def managed_open(path: str | Path, mode: str) -> Iterator[IO]:
    """Open a file and always release it; close errors are only logged."""
    handle = open(path, mode)
    try:
        yield handle
    finally:
        try:
            handle.close()
        except OSError as exc:
            logger.error("Unable to close file %r: %s", str(path), exc)


class LocalStorage:
    """Local filesystem storage backend.

    Args:
        root: Base directory. All paths are resolved relative to this.
        app_url: Application base URL used to build public URLs.
    """

    def __init__(self, root: str | Path = "storage", app_url: str = "") -> None:
        self.root = os.path.normpath(str(root))
        self.app_url = app_url
        os.makedirs(self.root, exist_ok=True)

    def path(self, path: str) -> str:
        """Normalized location of ``path`` under root.

        A path that already starts with root is used as is.
        """
        cleaned = os.path.normpath(str(path)) if path else self.root
        if _has_prefix(cleaned, self.root):
            return cleaned
        return os.path.normpath(os.path.join(self.root, cleaned.lstrip(os.sep)))

    def _resolve(self, path: str) -> str:
        full = self.path(path)
        if not _is_within(full, self.root):
            raise StorageError(
                f"Path escapes storage root: {path}",
                kind=ErrorKind.INVALID_PATH,
                path=path,
            )
        return full

    @staticmethod
    def _ensure_parent(full: str) -> None:
        parent = os.path.dirname(full)
        if parent:
            os.makedirs(parent, exist_ok=True)

    def _stat(self, path: str) -> os.stat_result | None:
        try:
            return os.stat(self._resolve(path))
        except FileNotFoundError:
            logger.info("File %r does not exist", path)
        except (OSError, StorageError) as exc:
            logger.error("Unable to stat %r: %s", path, exc)
        return None

    # --- Writes ---

    def put(self, path: str, contents: str) -> StorageResult:
        return self.put_data(path, contents.encode("utf-8"))

    def put_data(self, path: str, contents: bytes) -> StorageResult:
        try:
            full = self._resolve(path)
            self._ensure_parent(full)
            with managed_open(full, "wb") as f:
                f.write(contents)
                f.flush()
        except (OSError, StorageError) as exc:
            return failed(logger, "write file", path, exc)
        return StorageResult.success()

    def put_from_file(self, path: str, source: BinaryIO) -> StorageResult:
        try:
            full = self._resolve(path)
            self._ensure_parent(full)
            with managed_open(full, "wb") as f:
                shutil.copyfileobj(source, f)
                f.flush()
                os.fsync(f.fileno())
        except (OSError, StorageError) as exc:
            return failed(logger, "write file", path, exc)
        return StorageResult.success()

    def put_from_local_path(self, path: str, local_path: str | Path) -> StorageResult:
        """Copy a file from anywhere on the local disk into storage."""
        try:
            with managed_open(local_path, "rb") as source:
                return self.put_from_file(path, source)
        except OSError as exc:
            return failed(logger, "read file", str(local_path), exc)

    def append(self, path: str, data: str) -> StorageResult:
        try:
            full = self._resolve(path)
            self._ensure_parent(full)
            with managed_open(full, "ab") as f:
                f.write(data.encode("utf-8"))
                f.flush()
        except (OSError, StorageError) as exc:
            return failed(logger, "append to file", path, exc)
        return StorageResult.success()

    # --- File manipulation ---

    def delete(self, path: str) -> StorageResult:
        try:
            os.remove(self._resolve(path))
        except (OSError, StorageError) as exc:
            return failed(logger, "delete file", path, exc)
        return StorageResult.success()

    def copy(self, src: str, dst: str) -> StorageResult:
        try:
            full_src = self._resolve(src)
            full_dst = self._resolve(dst)
            # Opening dst for writing would truncate src
            if os.path.exists(full_dst) and os.path.samefile(full_src, full_dst):
                logger.debug("Copy of %r onto itself, nothing to do", src)
                return StorageResult.success()
            with managed_open(full_src, "rb") as source:
                self._ensure_parent(full_dst)
                with managed_open(full_dst, "wb") as target:
                    shutil.copyfileobj(source, target)
                    # Durability is part of success
                    target.flush()
                    os.fsync(target.fileno())
        except (OSError, StorageError) as exc:
            return failed(logger, f"copy file to {dst!r} from", src, exc)
        return StorageResult.success()

    def move(self, src: str, dst: str) -> StorageResult:
        try:
            full_src = self._resolve(src)
            full_dst = self._resolve(dst)
            self._ensure_parent(full_dst)
            os.replace(full_src, full_dst)
        except (OSError, StorageError) as exc:
            return failed(logger, f"move file to {dst!r} from", src, exc)
        return StorageResult.success()

    # --- Queries ---

    def exists(self, path: str) -> bool:
        return self._stat(path) is not None

    def get(self, path: str) -> bytes:
        try:
            with managed_open(self._resolve(path), "rb") as f:
                return f.read()
        except (OSError, StorageError) as exc:
            error = wrap_error(exc, path)
            logger.error("Unable to read file %r (%s): %s", path, error.kind.value, error.message)
            if error is exc:
                raise
            raise error from exc

    def size(self, path: str) -> int:
        info = self._stat(path)
        return info.st_size if info else 0

    def last_modified(self, path: str) -> datetime:
        info = self._stat(path)
        if info is None:
            return ZERO_TIME
        return datetime.fromtimestamp(info.st_mtime, tz=timezone.utc)

    def url(self, path: str) -> str:
        return self.app_url.rstrip("/") + "/" + path.replace("\\", "/").lstrip("/")

    # --- Directories ---

    def make_dir(self, path: str) -> StorageResult:
        try:
            os.makedirs(self._resolve(path), exist_ok=True)
        except (OSError, StorageError) as exc:
            return failed(logger, "make dir", path, exc)
        return StorageResult.success()

    def delete_dir(self, path: str) -> StorageResult:
        """Remove an empty directory. Non-empty directories are not wiped."""
        try:
            os.rmdir(self._resolve(path))
        except (OSError, StorageError) as exc:
            return failed(logger, "delete dir", path, exc)
        return StorageResult.success()

    def __repr__(self) -> str:
        return f"LocalStorage(root={self.root!r})"
