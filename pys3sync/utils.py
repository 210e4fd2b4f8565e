"""Utility functions for pys3sync."""

import mimetypes
import os
import posixpath
from pathlib import Path

# =============================================================================
# Constants for sync operations
# =============================================================================

# Number of concurrent transfers
DEFAULT_CONCURRENCY: int = 20

# Attempts per job before it is reported as failed
DEFAULT_MAX_RETRIES: int = 3

# Keys requested per listing page
DEFAULT_PAGE_LIMIT: int = 1000

DEFAULT_REGION: str = "us-east-1"

# Canned ACL for uploaded objects and created buckets
DEFAULT_ACL: str = "private"

# Read size for hashing and streaming
READ_CHUNK_SIZE: int = 1024 * 1024

S3_SCHEME: str = "s3://"

WILDCARD: str = "*"


# =============================================================================
# Path utilities
# =============================================================================


def to_slash(path: str) -> str:
    """Normalize path separators to the store's ``/`` convention.

    Examples:
        >>> to_slash("photos/2020/a.jpg")
        'photos/2020/a.jpg'
    """
    if os.sep != "/":
        path = path.replace(os.sep, "/")
    if os.altsep and os.altsep != "/":
        path = path.replace(os.altsep, "/")
    return path


def join_key(*parts: str) -> str:
    """Join key parts with ``/`` and clean the result.

    Empty parts are skipped, duplicate slashes and trailing slashes
    are removed.

    Examples:
        >>> join_key("backups/", "docs/a.txt")
        'backups/docs/a.txt'
        >>> join_key("", "a.txt")
        'a.txt'
    """
    non_empty = [p for p in parts if p]
    if not non_empty:
        return ""
    return posixpath.normpath(posixpath.join(*non_empty))


def local_path_for_key(local_dir: str, key: str) -> Path:
    """Map a full object key onto a path below ``local_dir``."""
    return Path(local_dir).joinpath(*[p for p in key.split("/") if p])


# =============================================================================
# Formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


def detect_content_type(file_path: Path) -> str:
    """Guess the MIME type of a file from its name.

    Returns:
        MIME type string (defaults to 'application/octet-stream')
    """
    mime_type, _ = mimetypes.guess_type(str(file_path))
    return mime_type or "application/octet-stream"
