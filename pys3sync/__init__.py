"""pys3sync - mirror local directories to and from S3 buckets."""

from .api import S3Client
from .exceptions import (
    ConfigurationError,
    ListingError,
    PathConflictError,
    S3SyncError,
    SchedulerError,
    TransferError,
    UnsafePathError,
)

__version__ = "0.1.3"

__all__ = [
    "S3Client",
    "S3SyncError",
    "ConfigurationError",
    "ListingError",
    "PathConflictError",
    "SchedulerError",
    "TransferError",
    "UnsafePathError",
    "__version__",
]
