"""Content-digest comparison between local files and remote objects."""

import hashlib
import logging
from pathlib import Path
from typing import BinaryIO, Optional, Union

from ..utils import READ_CHUNK_SIZE

logger = logging.getLogger(__name__)


def format_content_tag(digest: bytes) -> str:
    """Format a raw MD5 digest the way S3 reports ETags (quoted hex)."""
    return f'"{digest.hex()}"'


def hash_stream(stream: BinaryIO) -> tuple[str, int]:
    """Hash everything readable from ``stream``.

    Returns:
        ``(content_tag, bytes_read)``
    """
    h = hashlib.md5()
    nbytes = 0
    while True:
        chunk = stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        h.update(chunk)
        nbytes += len(chunk)
    return format_content_tag(h.digest()), nbytes


def compute_content_tag(path: Union[str, Path]) -> tuple[str, int]:
    """Compute the content tag and size of a local file.

    Raises:
        OSError: If the file can't be read
    """
    with open(path, "rb") as f:
        return hash_stream(f)


def is_same(path: Union[str, Path], remote_tag: Optional[str]) -> bool:
    """Check whether a local file already has the remote object's content.

    Any error reading the local file counts as "different", so the caller
    transfers the file instead of failing.

    Args:
        path: Local file path
        remote_tag: Remote content tag (quoted hex), if known

    Returns:
        True if the local digest equals ``remote_tag`` exactly
    """
    if not remote_tag:
        return False
    try:
        local_tag, _ = compute_content_tag(path)
    except OSError as e:
        # Missing or unreadable local files just mean we transfer again
        logger.debug(f"Could not hash {path}: {e}")
        return False
    return local_tag == remote_tag
