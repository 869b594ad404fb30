"""Configuration — loads .env and builds a StorageConfig from the environment."""
from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv

from depot.core.config import StorageConfig, default_temp_dir

_TRUTHY = {"1", "true", "yes", "on"}


def _find_env_file(start: Path | None = None) -> Path | None:
    """Walk up from ``start`` (default: cwd) to the nearest .env file."""
    p = (start or Path.cwd()).resolve()
    while True:
        candidate = p / ".env"
        if candidate.is_file():
            return candidate
        if p == p.parent:
            return None
        p = p.parent


def load_environment(start: Path | None = None) -> Path | None:
    """Load the nearest .env into os.environ. Variables already set win.

    Returns the file that was loaded, if any.
    """
    env_file = _find_env_file(start)
    if env_file is not None:
        load_dotenv(env_file)
    return env_file


def _flag(value: str) -> bool:
    return value.strip().lower() in _TRUTHY


def config_from_env(environ: Mapping[str, str] | None = None) -> StorageConfig:
    """Build a StorageConfig from environment variables.

    | variable                 | default                  |
    |--------------------------|--------------------------|
    | FILESYSTEM_TYPE          | local                    |
    | STORAGE_DIR              | storage                  |
    | APP_URL                  | (empty)                  |
    | TEMP_DIR                 | <system temp>/depot      |
    | AWS_S3_BUCKET            | (empty: s3 disabled)     |
    | AWS_S3_REGION            | us-west-1                |
    | AWS_S3_PREFIX            | (empty)                  |
    | AWS_S3_ENDPOINT_URL      | (empty)                  |
    | AWS_S3_URL_DOMAIN        | amazonaws.com            |
    | AWS_S3_EMPTY_IS_MISSING  | true                     |
    """
    env = os.environ if environ is None else environ
    return StorageConfig(
        default_backend=env.get("FILESYSTEM_TYPE", "local"),
        storage_dir=env.get("STORAGE_DIR", "storage"),
        app_url=env.get("APP_URL", ""),
        temp_dir=env.get("TEMP_DIR") or default_temp_dir(),
        s3_bucket=env.get("AWS_S3_BUCKET", ""),
        s3_region=env.get("AWS_S3_REGION", "us-west-1"),
        s3_prefix=env.get("AWS_S3_PREFIX", ""),
        s3_endpoint_url=env.get("AWS_S3_ENDPOINT_URL", ""),
        s3_url_domain=env.get("AWS_S3_URL_DOMAIN", "amazonaws.com"),
        s3_empty_is_missing=_flag(env.get("AWS_S3_EMPTY_IS_MISSING", "true")),
    )
