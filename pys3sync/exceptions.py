"""Exceptions raised by pys3sync."""


class S3SyncError(Exception):
    """Base exception for all sync errors."""


class ConfigurationError(S3SyncError):
    """Invalid run configuration.

    Raised before any job is submitted: bad wildcard expressions, missing
    credentials, unknown regions or an unusable bucket target.
    """


class TransferError(S3SyncError):
    """A single get/put/head/delete operation failed.

    Jobs treat this as a retryable failure.
    """


class PathConflictError(S3SyncError):
    """A local path component that should be a directory is a regular file."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"{path} is a file, expected directory")


class ListingError(S3SyncError):
    """The remote namespace could not be enumerated.

    Fatal to the whole run; no reconciliation is attempted.
    """


class UnsafePathError(S3SyncError):
    """An object key would resolve to a path outside the local directory."""

    def __init__(self, key: str, local_dir: str):
        self.key = key
        self.local_dir = local_dir
        super().__init__(f"Key '{key}' resolves outside {local_dir}")


class SchedulerError(S3SyncError):
    """A job could not be started. Fatal to the whole run."""
