"""Data models for remote listings."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class ObjectEntry:
    """A single object in the remote store."""

    key: str
    """Full object key"""

    etag: str
    """Content tag as returned by the store, quotes included"""

    size: int = 0
    """Object size in bytes"""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "ObjectEntry":
        """Create an ObjectEntry from one ``Contents`` item of a listing.

        Args:
            data: Object dictionary from ``list_objects``

        Returns:
            ObjectEntry instance
        """
        return cls(
            key=data["Key"],
            etag=data.get("ETag", ""),
            size=int(data.get("Size", 0)),
        )


@dataclass
class ListPage:
    """One page of a lexically sorted remote listing."""

    entries: list[ObjectEntry] = field(default_factory=list)
    is_truncated: bool = False

    @property
    def last_key(self) -> Optional[str]:
        """Continuation marker for the next page."""
        if not self.entries:
            return None
        return self.entries[-1].key

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "ListPage":
        """Create a ListPage from a ``list_objects`` response."""
        return cls(
            entries=[ObjectEntry.from_api_response(c) for c in data.get("Contents", [])],
            is_truncated=bool(data.get("IsTruncated", False)),
        )
