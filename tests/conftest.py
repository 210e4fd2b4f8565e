"""Shared fixtures for pys3sync tests."""

import hashlib
import io
import tempfile
import threading
from pathlib import Path

import pytest

from pys3sync.exceptions import ListingError, SchedulerError, TransferError
from pys3sync.models import ListPage, ObjectEntry
from pys3sync.sync.runner import JobRunner


def etag_of(data: bytes) -> str:
    """S3-style content tag of ``data``."""
    return f'"{hashlib.md5(data).hexdigest()}"'


class InMemoryStore:
    """Stand-in for S3Client keeping objects in a dict.

    Records every call so tests can assert on data movement.
    """

    def __init__(self, objects=None, has_bucket=True):
        self.objects: dict[str, bytes] = dict(objects or {})
        self.has_bucket = has_bucket
        self.fail_puts: set[str] = set()
        self.fail_gets: set[str] = set()
        self.fail_listing = False
        self.list_calls: list[tuple[str, str, int]] = []
        self.head_calls: list[str] = []
        self.get_calls: list[str] = []
        self.request_keys: list[str] = []
        self.put_calls: list[str] = []
        self.delete_calls: list[str] = []
        self._lock = threading.Lock()

    def check_credentials(self):
        pass

    def ensure_bucket(self):
        if self.has_bucket:
            return False
        self.has_bucket = True
        return True

    def list_objects(self, prefix="", marker="", max_keys=1000):
        with self._lock:
            self.list_calls.append((prefix, marker, max_keys))
            if self.fail_listing:
                raise ListingError("Could not list bucket 'test'")
            keys = sorted(k for k in self.objects if k.startswith(prefix) and k > marker)
            page = keys[:max_keys]
            return ListPage(
                entries=[
                    ObjectEntry(key=k, etag=etag_of(self.objects[k]), size=len(self.objects[k]))
                    for k in page
                ],
                is_truncated=len(keys) > max_keys,
            )

    def head_object(self, key):
        with self._lock:
            self.head_calls.append(key)
            if key not in self.objects:
                raise TransferError(f"Head request for '{key}' failed: 404")
            return etag_of(self.objects[key])

    def get_object(self, key, request_key=None):
        with self._lock:
            self.get_calls.append(key)
            self.request_keys.append(request_key or key)
            if key in self.fail_gets or key not in self.objects:
                raise TransferError(f"Error making request for {request_key}")
            return io.BytesIO(self.objects[key])

    def put_object(self, key, body, length, content_type, acl="private"):
        data = body.read(length)
        with self._lock:
            self.put_calls.append(key)
            if key in self.fail_puts:
                raise TransferError(f"Error uploading '{key}'")
            self.objects[key] = data

    def delete_object(self, key):
        with self._lock:
            self.delete_calls.append(key)
            if key not in self.objects:
                raise TransferError(f"Error deleting key '{key}' (NoSuchKey)")
            del self.objects[key]


class StartFailingRunner(JobRunner):
    """Runner that can only start ``capacity`` jobs, like a host out of threads."""

    def __init__(self, capacity):
        super().__init__(0)
        self.capacity = capacity
        self.started = 0

    def submit(self, job):
        if self.started >= self.capacity:
            raise SchedulerError(f"Could not start {job.kind} of {job.source}")
        self.started += 1
        super().submit(job)


@pytest.fixture
def store():
    """Empty in-memory object store."""
    return InMemoryStore()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def read_tree(root: Path) -> dict[str, bytes]:
    """Map relative posix paths to file contents for every file under root."""
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }
