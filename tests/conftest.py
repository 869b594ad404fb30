"""Shared fixtures — local storage on tmp_path and an in-memory S3 client."""
from __future__ import annotations

import io
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from botocore.exceptions import ClientError

from depot.core.storage.local import LocalStorage
from depot.core.storage.s3 import S3Storage

BUCKET = "depot-test"
REGION = "us-west-1"


def client_error(code: str, operation: str, message: str = "") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message or code}}, operation)


class FakePaginator:
    def __init__(self, client: FakeS3Client, page_size: int = 2) -> None:
        self._client = client
        self._page_size = page_size

    def paginate(self, Bucket: str, Prefix: str = "") -> Any:
        keys = sorted(k for k in self._client.objects if k.startswith(Prefix))
        if not keys:
            yield {"KeyCount": 0}
            return
        for start in range(0, len(keys), self._page_size):
            chunk = keys[start:start + self._page_size]
            yield {"Contents": [{"Key": k} for k in chunk], "KeyCount": len(chunk)}


class FakeS3Client:
    """Just enough of the boto3 S3 client surface, backed by a dict."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, datetime]] = {}
        self.put_kwargs: dict[str, dict[str, Any]] = {}
        self.copy_sources: list[dict[str, str]] = []
        self.delete_batches: list[list[str]] = []
        self.fail_delete_keys: set[str] = set()
        self.bodies: list[io.BytesIO] = []

    def _require(self, key: str, operation: str, code: str = "NoSuchKey") -> tuple[bytes, datetime]:
        if key not in self.objects:
            raise client_error(code, operation, f"The specified key does not exist: {key}")
        return self.objects[key]

    def put_object(self, Bucket: str, Key: str, Body: Any, **kwargs: Any) -> dict:
        data = Body.read() if hasattr(Body, "read") else bytes(Body)
        self.objects[Key] = (data, datetime.now(timezone.utc))
        self.put_kwargs[Key] = kwargs
        return {"ETag": '"etag"'}

    def get_object(self, Bucket: str, Key: str) -> dict:
        data, modified = self._require(Key, "GetObject")
        body = io.BytesIO(data)
        self.bodies.append(body)
        return {"Body": body, "ContentLength": len(data), "LastModified": modified}

    def head_object(self, Bucket: str, Key: str) -> dict:
        data, modified = self._require(Key, "HeadObject", code="404")
        return {"ContentLength": len(data), "LastModified": modified}

    def get_object_attributes(self, Bucket: str, Key: str, ObjectAttributes: list[str]) -> dict:
        data, modified = self._require(Key, "GetObjectAttributes")
        return {"ObjectSize": len(data), "LastModified": modified}

    def delete_object(self, Bucket: str, Key: str) -> dict:
        self.objects.pop(Key, None)
        return {}

    def copy_object(self, Bucket: str, Key: str, CopySource: dict[str, str]) -> dict:
        self.copy_sources.append(CopySource)
        data, _ = self._require(CopySource["Key"], "CopyObject")
        self.objects[Key] = (data, datetime.now(timezone.utc))
        return {}

    def get_paginator(self, name: str) -> FakePaginator:
        assert name == "list_objects_v2"
        return FakePaginator(self)

    def delete_objects(self, Bucket: str, Delete: dict[str, Any]) -> dict:
        keys = [obj["Key"] for obj in Delete["Objects"]]
        self.delete_batches.append(keys)
        errors = []
        for key in keys:
            if key in self.fail_delete_keys:
                errors.append({"Key": key, "Code": "AccessDenied", "Message": "Access Denied"})
            else:
                self.objects.pop(key, None)
        return {"Errors": errors} if errors else {}


@pytest.fixture
def local_storage(tmp_path: Path) -> LocalStorage:
    return LocalStorage(root=tmp_path / "storage", app_url="https://example.com/")


@pytest.fixture
def fake_s3() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    return tmp_path / "staging"


@pytest.fixture
def s3_storage(fake_s3: FakeS3Client, staging_dir: Path) -> S3Storage:
    return S3Storage(bucket=BUCKET, region=REGION, temp_dir=staging_dir, client=fake_s3)
