"""Bounded concurrent job runner.

Jobs are submitted with ``submit()`` and collected, in completion order,
with ``drain()``. Callers must drain exactly once per submitted job: a job
that is never drained keeps its completion queued and, in bounded mode,
nothing else notices the missing call.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from ..exceptions import SchedulerError
from .jobs import JobResult, JobState, JobStatus, SyncJob

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Concurrency:
    """Concurrency setting: ``bounded(n)`` or ``unbounded()``."""

    limit: Optional[int] = None

    @classmethod
    def bounded(cls, limit: int) -> "Concurrency":
        if limit < 1:
            raise ValueError(f"Concurrency limit must be at least 1, got {limit}")
        return cls(limit=limit)

    @classmethod
    def unbounded(cls) -> "Concurrency":
        return cls(limit=None)

    @classmethod
    def from_limit(cls, limit: int) -> "Concurrency":
        """Map a user-supplied limit; zero or negative means unbounded."""
        if limit <= 0:
            return cls.unbounded()
        return cls.bounded(limit)

    @property
    def is_bounded(self) -> bool:
        return self.limit is not None

    def __str__(self) -> str:
        return str(self.limit) if self.is_bounded else "unbounded"


def execute_with_retries(job: SyncJob) -> JobResult:
    """Run a job until it succeeds, hits a permanent failure or runs out of attempts.

    There is no delay between attempts.

    Returns:
        Result of the last attempt
    """
    result: Optional[JobResult] = None
    while job.attempts_left > 0:
        job.attempts_left -= 1
        job.attempts += 1
        result = job.execute()
        job.result = result
        if result.is_success:
            job.is_successful = True
            return result
        if not result.is_retryable:
            break
        logger.debug(
            "Attempt %d of %s %s failed: %s",
            job.attempts,
            job.kind,
            job.source,
            result.error,
        )

    if result is None:
        result = JobResult(JobStatus.FAILED, error="no attempts left")
        job.result = result
        job.state = JobState.FAILED
    logger.warning(
        f"Giving up on {job.kind} of {job.source} after {job.attempts} "
        f"attempt(s): {result.error}"
    )
    return result


class JobRunner:
    """Runs jobs on worker threads with an optional concurrency bound."""

    def __init__(self, concurrency: Union[Concurrency, int] = 0):
        """Initialize the runner.

        Args:
            concurrency: Concurrency setting, or an int where ``<= 0``
                means unbounded
        """
        if isinstance(concurrency, int):
            concurrency = Concurrency.from_limit(concurrency)
        self.concurrency = concurrency
        self._tokens: Optional[threading.Semaphore] = (
            threading.Semaphore(concurrency.limit) if concurrency.is_bounded else None
        )
        self._done: "queue.Queue[SyncJob]" = queue.Queue()
        self._lock = threading.Lock()
        self._pending = 0
        self._active = 0
        self._max_active = 0

    @property
    def pending(self) -> int:
        """Jobs submitted but not yet drained."""
        with self._lock:
            return self._pending

    @property
    def max_active(self) -> int:
        """Highest number of jobs that were executing at the same time."""
        with self._lock:
            return self._max_active

    def submit(self, job: SyncJob) -> None:
        """Start a job in the background.

        In bounded mode this blocks while all tokens are held.

        Raises:
            SchedulerError: If no worker thread can be started for the job
        """
        if self._tokens is not None:
            self._tokens.acquire()
        with self._lock:
            self._pending += 1

        worker = threading.Thread(
            target=self._run,
            args=(job,),
            name=f"pys3sync-{job.kind}",
            daemon=True,
        )
        try:
            worker.start()
        except RuntimeError as e:
            with self._lock:
                self._pending -= 1
            if self._tokens is not None:
                self._tokens.release()
            raise SchedulerError(
                f"Could not start {job.kind} of {job.source}: {e}"
            ) from e

    def _run(self, job: SyncJob) -> None:
        with self._lock:
            self._active += 1
            self._max_active = max(self._max_active, self._active)
        try:
            execute_with_retries(job)
        except Exception as e:
            logger.exception(f"Unexpected error in {job.kind} of {job.source}")
            job.is_successful = False
            job.state = JobState.FAILED
            job.result = JobResult(JobStatus.FAILED, error=f"unexpected error: {e}")
        finally:
            with self._lock:
                self._active -= 1
            if self._tokens is not None:
                self._tokens.release()
            self._done.put(job)

    def drain(self) -> SyncJob:
        """Block until a submitted job completes and return it."""
        job = self._done.get()
        with self._lock:
            self._pending -= 1
        return job

    def drain_many(self, count: int) -> Iterator[SyncJob]:
        """Drain ``count`` completions, yielding each as it arrives."""
        for _ in range(count):
            yield self.drain()

    def drain_pending(self) -> int:
        """Wait for every outstanding job and discard the completions.

        Returns:
            Number of completions drained
        """
        count = self.pending
        for _ in self.drain_many(count):
            pass
        return count
