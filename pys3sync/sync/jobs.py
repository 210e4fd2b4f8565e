"""Upload, download and delete jobs.

Every job exposes the same ``execute()`` operation, which runs one attempt
and returns a ``JobResult``. Expected failures (store errors, local I/O
errors, path conflicts) are reported through the result; anything else is
left to the job runner to contain.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO, ClassVar, Optional

from ..exceptions import PathConflictError, TransferError, UnsafePathError
from ..utils import READ_CHUNK_SIZE, detect_content_type, join_key, to_slash
from .comparator import hash_stream, is_same
from .filters import RuleSet

logger = logging.getLogger(__name__)

# Key segments that would move the download target away from its place
_RELATIVE_SEGMENTS = frozenset({".", ".."})


class JobState(str, Enum):
    """States a job passes through while executing."""

    PENDING = "pending"
    FILTERED_OUT = "filtered_out"
    PATH_RESOLVED = "path_resolved"
    HASH_CHECKED = "hash_checked"
    SKIPPED = "skipped"
    TRANSFERRING = "transferring"
    TRANSFERRED = "transferred"
    DELETED = "deleted"
    FAILED = "failed"
    PATH_CONFLICT = "path_conflict"


class JobStatus(str, Enum):
    """Outcome of one job attempt."""

    TRANSFERRED = "transferred"
    """Data was moved"""

    SKIPPED = "skipped"
    """Content already matched, nothing transferred"""

    FILTERED_OUT = "filtered_out"
    """Path is out of scope, nothing to do"""

    DELETED = "deleted"
    """Remote key was deleted"""

    FAILED = "failed"
    """I/O or store error; worth another attempt"""

    PATH_CONFLICT = "path_conflict"
    """A file sits where a directory is needed; retrying won't help"""


_SUCCESS_STATUSES = frozenset(
    {
        JobStatus.TRANSFERRED,
        JobStatus.SKIPPED,
        JobStatus.FILTERED_OUT,
        JobStatus.DELETED,
    }
)


@dataclass
class JobResult:
    """Result of a single job attempt."""

    status: JobStatus
    bytes_transferred: int = 0
    error: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status in _SUCCESS_STATUSES

    @property
    def is_retryable(self) -> bool:
        return self.status == JobStatus.FAILED


@dataclass(kw_only=True)
class SyncJob(ABC):
    """Fields and bookkeeping shared by all job variants.

    Variants implement ``source`` and ``execute``.
    """

    kind: ClassVar[str] = "job"

    client: Any = field(repr=False)
    """Remote store client (``S3Client`` or compatible)"""

    attempts_left: int = 1
    """Remaining attempt budget"""

    attempts: int = 0
    """Attempts made so far"""

    is_successful: bool = False

    result_path: str = ""
    """Realized destination (key or local path), set during execution"""

    state: JobState = JobState.PENDING

    result: Optional[JobResult] = None
    """Result of the last attempt"""

    @property
    @abstractmethod
    def source(self) -> str:
        """What the job reads from: a local path or a key."""

    @property
    def destination(self) -> str:
        return self.result_path

    @abstractmethod
    def execute(self) -> JobResult:
        """Run one attempt of this job."""

    def _finish(self, state: JobState, result: JobResult) -> JobResult:
        self.state = state
        return result

    def _fail(self, error: Exception) -> JobResult:
        logger.debug("%s of %s failed: %s", self.kind, self.source, error)
        return self._finish(
            JobState.FAILED, JobResult(JobStatus.FAILED, error=str(error))
        )


@dataclass(kw_only=True)
class UploadJob(SyncJob):
    """Upload one local file to ``key_prefix`` + its path below ``local_dir``."""

    kind: ClassVar[str] = "upload"

    local_file: Path
    local_dir: str
    key_prefix: str = ""
    etag: Optional[str] = None
    """Remote content tag, filled in by the head request"""

    @property
    def source(self) -> str:
        return str(self.local_file)

    def object_key(self) -> str:
        """Destination key for the local file."""
        relative = os.path.relpath(self.local_file, self.local_dir)
        return join_key(self.key_prefix, to_slash(relative))

    def _remote_tag(self, key: str) -> Optional[str]:
        try:
            self.etag = self.client.head_object(key)
        except TransferError:
            # Not on the store yet (or not reachable); upload it
            return None
        return self.etag

    def execute(self) -> JobResult:
        self.state = JobState.PENDING
        try:
            key = self.object_key()
        except ValueError as e:
            return self._fail(e)
        self.result_path = key

        try:
            with open(self.local_file, "rb") as f:
                local_tag, nbytes = hash_stream(f)
                self.state = JobState.HASH_CHECKED

                if local_tag == self._remote_tag(key):
                    logger.debug(f"File already uploaded: {self.local_file}")
                    return self._finish(
                        JobState.SKIPPED, JobResult(JobStatus.SKIPPED)
                    )

                f.seek(0)
                self.state = JobState.TRANSFERRING
                self.client.put_object(
                    key, f, nbytes, detect_content_type(self.local_file)
                )
        except (TransferError, OSError) as e:
            return self._fail(e)

        return self._finish(
            JobState.TRANSFERRED,
            JobResult(JobStatus.TRANSFERRED, bytes_transferred=nbytes),
        )


def create_download_path(local_dir: str, key: str) -> Path:
    """Create the directories needed to download ``key`` below ``local_dir``.

    Every directory on the way is created on demand, ``local_dir`` included.

    Returns:
        Local file path for the key

    Raises:
        UnsafePathError: If the key has a ``.`` or ``..`` segment
        PathConflictError: If a path component exists as a regular file
        OSError: If a directory can't be created
    """
    parts = key.split("/")
    if any(part in _RELATIVE_SEGMENTS for part in parts):
        raise UnsafePathError(key, local_dir)

    target = Path(local_dir)
    for part in parts:
        if target.exists() and not target.is_dir():
            raise PathConflictError(str(target))
        try:
            target.mkdir(exist_ok=True)
        except FileExistsError as e:
            raise PathConflictError(str(target)) from e
        target = target / part
    return target


def request_key_for(key: str) -> str:
    """Key in request-line form for logs and errors; spaces show as ``+``."""
    return key.replace(" ", "+")


def _copy_stream(body: Any, out: BinaryIO) -> int:
    nbytes = 0
    while True:
        chunk = body.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        out.write(chunk)
        nbytes += len(chunk)
    return nbytes


@dataclass(kw_only=True)
class DownloadJob(SyncJob):
    """Download one object to ``local_dir`` joined with its full key."""

    kind: ClassVar[str] = "download"

    key: str
    local_dir: str
    etag: Optional[str] = None
    rules: RuleSet = field(default_factory=RuleSet)

    @property
    def source(self) -> str:
        return self.key

    def execute(self) -> JobResult:
        self.state = JobState.PENDING
        if not self.rules.matches(self.key):
            logger.debug(f"Ignoring key: {self.key}")
            return self._finish(
                JobState.FILTERED_OUT, JobResult(JobStatus.FILTERED_OUT)
            )

        try:
            target = create_download_path(self.local_dir, self.key)
        except (PathConflictError, UnsafePathError) as e:
            return self._finish(
                JobState.PATH_CONFLICT,
                JobResult(JobStatus.PATH_CONFLICT, error=str(e)),
            )
        except OSError as e:
            return self._fail(e)
        self.result_path = str(target)
        self.state = JobState.PATH_RESOLVED

        if is_same(target, self.etag):
            self.state = JobState.HASH_CHECKED
            logger.debug(f"File already downloaded: {self.key}")
            return self._finish(JobState.SKIPPED, JobResult(JobStatus.SKIPPED))
        self.state = JobState.HASH_CHECKED

        try:
            self.state = JobState.TRANSFERRING
            body = self.client.get_object(self.key, request_key_for(self.key))
            try:
                with open(target, "wb") as f:
                    nbytes = _copy_stream(body, f)
            finally:
                body.close()
        except (TransferError, OSError) as e:
            return self._fail(e)

        return self._finish(
            JobState.TRANSFERRED,
            JobResult(JobStatus.TRANSFERRED, bytes_transferred=nbytes),
        )


@dataclass(kw_only=True)
class DeleteJob(SyncJob):
    """Delete one remote key."""

    kind: ClassVar[str] = "delete"

    key: str

    @property
    def source(self) -> str:
        return self.key

    def execute(self) -> JobResult:
        self.state = JobState.PENDING
        self.result_path = self.key
        try:
            self.client.delete_object(self.key)
        except TransferError as e:
            return self._fail(e)
        return self._finish(JobState.DELETED, JobResult(JobStatus.DELETED))
