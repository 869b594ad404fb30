"""StorageConfig — storage configuration dataclass.

This is the pure-data configuration for depot. No env vars, no dotenv, no
side effects at import time. The environment layer (depot.config) reads
the environment and builds a StorageConfig from it.

Applications embedding depot can construct StorageConfig directly.
"""
from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field

VALID_BACKENDS = {"local", "s3"}


def default_temp_dir() -> str:
    return os.path.join(tempfile.gettempdir(), "depot")


class StorageConfigError(ValueError):
    """Raised when StorageConfig validation fails."""


@dataclass
class StorageConfig:
    """Storage configuration. Every field has a usable default.

    The "s3" backend is only available when ``s3_bucket`` is set.
    """

    default_backend: str = "local"          # "local" | "s3"

    # --- Local ---
    storage_dir: str = "storage"
    app_url: str = ""                       # base for LocalStorage.url()

    # --- Staging ---
    temp_dir: str = field(default_factory=default_temp_dir)

    # --- S3 ---
    s3_bucket: str = ""
    s3_region: str = "us-west-1"
    s3_prefix: str = ""
    s3_endpoint_url: str = ""               # MinIO / S3-compatible services
    s3_url_domain: str = "amazonaws.com"
    s3_empty_is_missing: bool = True        # exists() treats empty objects as missing

    def available_backends(self) -> set[str]:
        names = {"local"}
        if self.s3_bucket:
            names.add("s3")
        return names

    def validate(self) -> None:
        """Validate configuration. Raises StorageConfigError on problems."""
        errors: list[str] = []

        if not self.default_backend:
            errors.append("default_backend is required (e.g. 'local', 's3')")
        elif self.default_backend not in VALID_BACKENDS:
            errors.append(
                f"default_backend '{self.default_backend}' not recognized. "
                f"Valid: {', '.join(sorted(VALID_BACKENDS))}"
            )
        elif self.default_backend == "s3" and not self.s3_bucket:
            errors.append("default_backend 's3' requires s3_bucket")

        if not self.storage_dir:
            errors.append("storage_dir is required")

        if not self.temp_dir:
            errors.append("temp_dir is required")

        if self.s3_bucket and not self.s3_region:
            errors.append("s3_region is required when s3_bucket is set")

        if errors:
            raise StorageConfigError(
                f"StorageConfig validation failed ({len(errors)} error(s)):\n"
                + "\n".join(f"  - {e}" for e in errors)
            )
