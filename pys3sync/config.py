"""Configuration for pys3sync, read from the environment."""

import os
from typing import Optional

from .utils import DEFAULT_CONCURRENCY, DEFAULT_MAX_RETRIES, DEFAULT_REGION


def _int_from_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


class Config:
    """Environment-backed settings.

    Command line options always take precedence over these values; the
    config object only supplies defaults.
    """

    @property
    def region(self) -> str:
        """AWS region to connect to."""
        return (
            os.environ.get("PYS3SYNC_REGION")
            or os.environ.get("AWS_DEFAULT_REGION")
            or DEFAULT_REGION
        )

    @property
    def access_key(self) -> Optional[str]:
        """AWS access key id, if set in the environment."""
        return os.environ.get("AWS_ACCESS_KEY_ID") or None

    @property
    def secret_key(self) -> Optional[str]:
        """AWS secret access key, if set in the environment."""
        return os.environ.get("AWS_SECRET_ACCESS_KEY") or None

    @property
    def endpoint_url(self) -> Optional[str]:
        """Custom endpoint for S3-compatible stores (MinIO, R2, ...)."""
        endpoint = os.environ.get("PYS3SYNC_ENDPOINT_URL", "").rstrip("/")
        return endpoint or None

    @property
    def concurrency(self) -> int:
        """Default number of concurrent transfers."""
        return _int_from_env("PYS3SYNC_CONCURRENCY", DEFAULT_CONCURRENCY)

    @property
    def retries(self) -> int:
        """Default number of attempts per job."""
        return _int_from_env("PYS3SYNC_RETRIES", DEFAULT_MAX_RETRIES)


config = Config()
