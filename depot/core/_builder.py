"""Registry builder — constructs backends from a StorageConfig.

This is the composition root: it is the only place that knows which
backend types exist and how to build them.
"""
from __future__ import annotations

import logging
from typing import Any

from depot.core.config import StorageConfig
from depot.core.registry import StorageRegistry
from depot.core.storage.local import LocalStorage
from depot.core.storage.s3 import S3Storage

logger = logging.getLogger(__name__)


def build_registry(config: StorageConfig, s3_client: Any = None) -> StorageRegistry:
    """Validate ``config`` and register every backend it enables.

    Args:
        config: Storage configuration.
        s3_client: Optional pre-built boto3 client for the "s3" backend.

    Raises:
        StorageConfigError: If the configuration is invalid.
    """
    config.validate()

    registry = StorageRegistry(default_name=config.default_backend)
    registry.register("local", LocalStorage(root=config.storage_dir, app_url=config.app_url))

    if config.s3_bucket:
        registry.register(
            "s3",
            S3Storage(
                bucket=config.s3_bucket,
                region=config.s3_region,
                prefix=config.s3_prefix,
                endpoint_url=config.s3_endpoint_url,
                url_domain=config.s3_url_domain,
                temp_dir=config.temp_dir,
                empty_is_missing=config.s3_empty_is_missing,
                client=s3_client,
            ),
        )
    else:
        logger.debug("AWS_S3_BUCKET not set, s3 backend not registered")

    return registry
