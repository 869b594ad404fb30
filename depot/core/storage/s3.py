"""S3-compatible storage backend.

Works with AWS S3, MinIO, and any S3-compatible service.

The object namespace is flat, so filesystem concepts are emulated:

- Directories are a marker object at ``<dir>/.info`` or simply a shared
  ``<dir>/`` key prefix. ``delete_dir`` removes both.
- ``append`` is not supported and always fails without touching the object.
- ``move`` is copy-then-delete and is not atomic.
- ``exists`` is by default "size is non-zero", so an empty object reads as
  missing. Pass ``empty_is_missing=False`` to use a HEAD request instead.

Text and byte uploads are staged to a local temporary file first, then
uploaded from that file and the staged copy removed.
"""
from __future__ import annotations

import logging
import mimetypes
import posixpath
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO

import boto3
import botocore.exceptions

from depot.core.config import default_temp_dir
from depot.core.errors import (
    ErrorKind,
    StorageError,
    StorageResult,
    classify_code,
    classify_error,
    failed,
    wrap_error,
)
from depot.core.storage.base import ZERO_TIME
from depot.core.storage.local import LocalStorage, managed_open

logger = logging.getLogger(__name__)

MARKER_NAME = ".info"
MARKER_CONTENT = "Info"
# DeleteObjects accepts at most 1000 keys per request
DELETE_BATCH_SIZE = 1000

_S3_ERRORS = (
    botocore.exceptions.BotoCoreError,
    botocore.exceptions.ClientError,
    OSError,
    StorageError,
)


class S3Storage:
    """S3-compatible object storage backend.

    Args:
        bucket: S3 bucket name.
        region: AWS region (default: us-west-1).
        prefix: Key prefix for all objects. Paths already starting with it
            are not prefixed again.
        endpoint_url: S3 endpoint URL (for MinIO or custom S3).
        url_domain: Domain used to build public virtual-hosted URLs.
        temp_dir: Directory used to stage uploads.
        empty_is_missing: Treat zero-byte objects as nonexistent in ``exists``.
        client: Pre-built boto3 S3 client. Built from the default credential
            chain when omitted.
    """

    def __init__(
        self,
        bucket: str,
        region: str = "us-west-1",
        prefix: str = "",
        endpoint_url: str = "",
        url_domain: str = "amazonaws.com",
        temp_dir: str | Path | None = None,
        empty_is_missing: bool = True,
        client: Any = None,
    ) -> None:
        if client is None:
            kwargs: dict[str, Any] = {"region_name": region}
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            client = boto3.client("s3", **kwargs)

        self._client = client
        self._bucket = bucket
        self._region = region
        self._prefix = prefix.strip("/")
        self._endpoint_url = endpoint_url
        self._url_domain = url_domain
        self.empty_is_missing = empty_is_missing
        self._staging = LocalStorage(temp_dir or default_temp_dir())

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def region(self) -> str:
        return self._region

    @staticmethod
    def _clean(path: str) -> str:
        cleaned = posixpath.normpath(path.replace("\\", "/")).lstrip("/")
        return "" if cleaned == "." else cleaned

    def key(self, path: str) -> str:
        """Normalized object key for ``path`` (prefix applied once)."""
        cleaned = self._clean(path)
        if not self._prefix:
            return cleaned
        if cleaned == self._prefix or cleaned.startswith(self._prefix + "/"):
            return cleaned
        return f"{self._prefix}/{cleaned}" if cleaned else self._prefix

    def _key(self, path: str) -> str:
        cleaned = self._clean(path)
        if not cleaned or cleaned == self._prefix or ".." in cleaned.split("/"):
            raise StorageError(
                f"Invalid object key for path: {path!r}",
                kind=ErrorKind.INVALID_PATH,
                path=path,
            )
        return self.key(path)

    @staticmethod
    def _content_type(key: str) -> dict[str, str]:
        content_type, _ = mimetypes.guess_type(key)
        return {"ContentType": content_type} if content_type else {}

    # --- Writes ---

    def put(self, path: str, contents: str) -> StorageResult:
        return self.put_data(path, contents.encode("utf-8"))

    def put_data(self, path: str, contents: bytes) -> StorageResult:
        base_name = posixpath.basename(path.replace("\\", "/")) or "object"
        staged_name = f"{uuid.uuid4().hex[:12]}_{base_name}"

        staged = self._staging.put_data(staged_name, contents)
        if not staged:
            return staged

        staged_path = self._staging.path(staged_name)
        try:
            with managed_open(staged_path, "rb") as source:
                return self.put_from_file(path, source)
        except OSError as exc:
            return failed(logger, "open staged file", staged_path, exc)
        finally:
            self._staging.delete(staged_name)

    def put_from_file(self, path: str, source: BinaryIO) -> StorageResult:
        try:
            key = self._key(path)
            self._client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=source,
                **self._content_type(key),
            )
        except _S3_ERRORS as exc:
            return failed(logger, "upload object", path, exc)
        return StorageResult.success()

    def put_from_local_path(self, path: str, local_path: str | Path) -> StorageResult:
        """Upload a file already on local disk, without staging."""
        try:
            with managed_open(local_path, "rb") as source:
                return self.put_from_file(path, source)
        except OSError as exc:
            return failed(logger, "read file", str(local_path), exc)

    def append(self, path: str, data: str) -> StorageResult:
        error = StorageError(
            "append is not yet implemented for object storage",
            kind=ErrorKind.UNSUPPORTED,
            path=path,
        )
        return failed(logger, f"append {len(data)} character(s) to", path, error)

    # --- Object manipulation ---

    def delete(self, path: str) -> StorageResult:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=self._key(path))
        except _S3_ERRORS as exc:
            return failed(logger, "delete object", path, exc)
        return StorageResult.success()

    def copy(self, src: str, dst: str) -> StorageResult:
        try:
            self._client.copy_object(
                Bucket=self._bucket,
                Key=self._key(dst),
                CopySource={"Bucket": self._bucket, "Key": self._key(src)},
            )
        except _S3_ERRORS as exc:
            return failed(logger, f"copy object to {dst!r} from", src, exc)
        return StorageResult.success()

    def move(self, src: str, dst: str) -> StorageResult:
        copied = self.copy(src, dst)
        if not copied:
            return copied
        deleted = self.delete(src)
        if not deleted:
            logger.warning(
                "Copied %r to %r but could not remove the source; both objects exist",
                src, dst,
            )
        return deleted

    # --- Queries ---

    def _attributes(self, path: str) -> dict[str, Any] | None:
        try:
            return self._client.get_object_attributes(
                Bucket=self._bucket,
                Key=self._key(path),
                ObjectAttributes=["ObjectSize"],
            )
        except _S3_ERRORS as exc:
            if classify_error(exc) is ErrorKind.NOT_FOUND:
                logger.info("Object %r does not exist", path)
            else:
                logger.error("Unable to get info of %r: %s", path, exc)
            return None

    def exists(self, path: str) -> bool:
        if self.empty_is_missing:
            return self.size(path) != 0
        try:
            self._client.head_object(Bucket=self._bucket, Key=self._key(path))
        except _S3_ERRORS as exc:
            if classify_error(exc) is not ErrorKind.NOT_FOUND:
                logger.error("Unable to check object %r: %s", path, exc)
            return False
        return True

    def get(self, path: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=self._key(path))
            body = response["Body"]
            try:
                return body.read()
            finally:
                try:
                    body.close()
                except _S3_ERRORS as exc:
                    logger.error("Unable to close body of %r: %s", path, exc)
        except _S3_ERRORS as exc:
            error = wrap_error(exc, path)
            logger.error("Unable to get object %r (%s): %s", path, error.kind.value, error.message)
            if error is exc:
                raise
            raise error from exc

    def size(self, path: str) -> int:
        attributes = self._attributes(path)
        if not attributes:
            return 0
        return int(attributes.get("ObjectSize") or 0)

    def last_modified(self, path: str) -> datetime:
        attributes = self._attributes(path)
        if not attributes or "LastModified" not in attributes:
            return ZERO_TIME
        return attributes["LastModified"]

    def url(self, path: str) -> str:
        """Public URL; assumes the bucket allows anonymous reads."""
        key = self.key(path)
        if self._endpoint_url:
            return f"{self._endpoint_url.rstrip('/')}/{self._bucket}/{key}"
        return f"https://{self._bucket}.s3.{self._region}.{self._url_domain}/{key}"

    # --- Directories ---

    def make_dir(self, path: str) -> StorageResult:
        return self.put(f"{path.rstrip('/')}/{MARKER_NAME}", MARKER_CONTENT)

    def _list_keys(self, prefix: str) -> list[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        keys = []
        for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
        return keys

    def delete_dir(self, path: str) -> StorageResult:
        """Delete a directory marker, the directory key and everything under it."""
        try:
            dir_key = self._key(path).rstrip("/")
            keys = [dir_key] + self._list_keys(dir_key + "/")

            for start in range(0, len(keys), DELETE_BATCH_SIZE):
                batch = keys[start:start + DELETE_BATCH_SIZE]
                response = self._client.delete_objects(
                    Bucket=self._bucket,
                    Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
                )
                errors = response.get("Errors") or []
                if errors:
                    first = errors[0]
                    raise StorageError(
                        f"{len(errors)} object(s) not deleted, first {first.get('Key')!r}: "
                        f"{first.get('Message') or first.get('Code')}",
                        kind=classify_code(str(first.get("Code", ""))),
                        path=path,
                    )
            logger.debug("Deleted %d object(s) under %r", len(keys), dir_key)
        except _S3_ERRORS as exc:
            return failed(logger, "delete dir", path, exc)
        return StorageResult.success()

    def __repr__(self) -> str:
        return (
            f"S3Storage(bucket={self._bucket!r}, "
            f"region={self._region!r}, prefix={self._prefix!r})"
        )
