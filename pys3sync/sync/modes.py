"""Sync directions."""

from enum import Enum


class SyncDirection(str, Enum):
    """Which side of a sync is the source."""

    UPLOAD = "upload"
    """Local directory → bucket"""

    DOWNLOAD = "download"
    """Bucket → local directory"""

    @property
    def is_upload(self) -> bool:
        return self == SyncDirection.UPLOAD

    @property
    def is_download(self) -> bool:
        return self == SyncDirection.DOWNLOAD
