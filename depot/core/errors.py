"""Structured storage errors.

Backends never let an exception escape a write/delete/directory operation.
Each failure is classified into an ``ErrorKind``, logged, and handed back
inside a falsy ``StorageResult`` so callers can branch on *why* it failed.
Only ``get()`` raises, because a read without content is useless.
"""
from __future__ import annotations

import errno
import logging
from dataclasses import dataclass
from enum import Enum

import botocore.exceptions


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    TRANSIENT_NETWORK = "transient_network"
    UNSUPPORTED = "unsupported"
    INVALID_PATH = "invalid_path"
    UNKNOWN = "unknown"


class StorageError(Exception):
    """A failed storage operation, tagged with its kind and path."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        path: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.path = path

    def __repr__(self) -> str:
        return f"StorageError(kind={self.kind.value!r}, path={self.path!r}, message={self.message!r})"


@dataclass(frozen=True)
class StorageResult:
    """Outcome of a storage operation. Truthy on success."""

    ok: bool
    error: StorageError | None = None

    def __bool__(self) -> bool:
        return self.ok

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error else None

    @classmethod
    def success(cls) -> StorageResult:
        return cls(ok=True)

    @classmethod
    def failure(cls, error: StorageError) -> StorageResult:
        return cls(ok=False, error=error)

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


# S3 error codes grouped by what a caller can do about them
_NOT_FOUND_CODES = {"NoSuchKey", "NoSuchBucket", "NotFound", "404"}
_PERMISSION_CODES = {"AccessDenied", "Forbidden", "403", "InvalidAccessKeyId", "SignatureDoesNotMatch"}
_TRANSIENT_CODES = {
    "SlowDown", "Throttling", "ThrottlingException", "RequestTimeout",
    "RequestTimeTooSkewed", "InternalError", "ServiceUnavailable",
    "500", "502", "503", "504",
}


def classify_code(code: str) -> ErrorKind:
    """Map an S3 error code onto an ErrorKind."""
    if code in _NOT_FOUND_CODES:
        return ErrorKind.NOT_FOUND
    if code in _PERMISSION_CODES:
        return ErrorKind.PERMISSION_DENIED
    if code in _TRANSIENT_CODES:
        return ErrorKind.TRANSIENT_NETWORK
    if code in ("NotImplemented", "MethodNotAllowed"):
        return ErrorKind.UNSUPPORTED
    return ErrorKind.UNKNOWN


def classify_error(error: BaseException) -> ErrorKind:
    """Map a raw exception onto an ErrorKind."""
    if isinstance(error, StorageError):
        return error.kind
    if isinstance(error, botocore.exceptions.ClientError):
        return classify_code(str(error.response.get("Error", {}).get("Code", "")))
    if isinstance(error, botocore.exceptions.NoCredentialsError):
        return ErrorKind.PERMISSION_DENIED
    if isinstance(
        error,
        (botocore.exceptions.ConnectionError, botocore.exceptions.HTTPClientError),
    ):
        return ErrorKind.TRANSIENT_NETWORK
    if isinstance(error, FileNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(error, PermissionError):
        return ErrorKind.PERMISSION_DENIED
    if isinstance(error, (TimeoutError, ConnectionError)):
        return ErrorKind.TRANSIENT_NETWORK
    if isinstance(error, (IsADirectoryError, NotADirectoryError)):
        return ErrorKind.INVALID_PATH
    if isinstance(error, OSError) and error.errno == errno.EXDEV:
        return ErrorKind.UNSUPPORTED
    return ErrorKind.UNKNOWN


def wrap_error(error: BaseException, path: str = "") -> StorageError:
    if isinstance(error, StorageError):
        return error
    return StorageError(str(error), kind=classify_error(error), path=path)


def failed(
    logger: logging.Logger,
    action: str,
    path: str,
    error: BaseException,
) -> StorageResult:
    """Log a failed operation and return the matching falsy result."""
    wrapped = wrap_error(error, path)
    logger.error("Unable to %s %r (%s): %s", action, path, wrapped.kind.value, wrapped.message)
    return StorageResult.failure(wrapped)
