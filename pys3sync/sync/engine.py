"""Core sync engine: enumerate, submit, drain, reconcile."""

import logging
import os
import time
from pathlib import Path
from typing import Any, Optional

from ..exceptions import ConfigurationError, S3SyncError
from ..output import OutputFormatter
from ..utils import DEFAULT_MAX_RETRIES, DEFAULT_PAGE_LIMIT, format_size
from .jobs import DeleteJob, DownloadJob, JobStatus, SyncJob, UploadJob
from .pair import SyncPair
from .reconciler import (
    SuccessSet,
    iter_remote_objects,
    reconcile_local,
    reconcile_remote,
)
from .runner import JobRunner

logger = logging.getLogger(__name__)


class Syncer:
    """Drives one sync run between a local directory and a bucket."""

    def __init__(
        self,
        client: Any,
        pair: SyncPair,
        runner: JobRunner,
        output: Optional[OutputFormatter] = None,
        full_sync: bool = False,
        max_attempts: int = DEFAULT_MAX_RETRIES,
        page_limit: int = DEFAULT_PAGE_LIMIT,
    ):
        """Initialize the syncer.

        Args:
            client: Remote store client (``S3Client`` or compatible)
            pair: Local and remote ends of the sync
            runner: Job runner that executes transfers
            output: Output formatter for per-job reporting
            full_sync: Delete destination items missing from the source
            max_attempts: Attempts per job
            page_limit: Keys requested per listing page
        """
        self.client = client
        self.pair = pair
        self.runner = runner
        self.output = output or OutputFormatter()
        self.full_sync = full_sync
        self.max_attempts = max(1, max_attempts)
        self.page_limit = page_limit

    def run(self) -> dict:
        """Run the sync in the pair's direction.

        Returns:
            Dictionary with sync statistics

        Raises:
            ConfigurationError: If the run can't start
            ListingError: If the remote namespace can't be listed
            SchedulerError: If a job can't be started
        """
        try:
            if self.pair.direction.is_upload:
                return self.upload()
            return self.download()
        except S3SyncError:
            # Jobs already running still finish before the error propagates
            drained = self.runner.drain_pending()
            logger.debug(f"Drained {drained} outstanding job(s) after a fatal error")
            raise

    def _create_empty_stats(self) -> dict:
        return {
            "uploads": 0,
            "downloads": 0,
            "skips": 0,
            "failures": 0,
            "deletes_remote": 0,
            "deletes_local": 0,
            "bytes": 0,
        }

    # =========================
    # Upload
    # =========================

    def _iter_local_files(self):
        """Yield every file below the local directory (walk errors are fatal)."""

        def on_error(e: OSError) -> None:
            raise ConfigurationError(f"Error uploading directory: {e}") from e

        for root, _dirs, files in os.walk(self.pair.local_dir, onerror=on_error):
            for name in files:
                yield Path(root) / name

    def upload(self) -> dict:
        """Upload new and changed files; in full sync, delete stale keys."""
        start_time = time.time()
        local_dir = self.pair.local_dir
        if not Path(local_dir).is_dir():
            raise ConfigurationError(f"Local path is not a directory: {local_dir}")

        if self.client.ensure_bucket():
            self.output.info(f"Bucket '{self.pair.bucket}' not found: created it")

        rules = self.pair.rules
        n_jobs = 0
        for path in self._iter_local_files():
            # The file must match all rules
            if not rules.matches(str(path)):
                continue
            self.runner.submit(
                UploadJob(
                    client=self.client,
                    local_file=path,
                    local_dir=local_dir,
                    key_prefix=self.pair.key_prefix,
                    attempts_left=self.max_attempts,
                )
            )
            n_jobs += 1
        logger.debug(f"Submitted {n_jobs} upload job(s)")

        stats = self._create_empty_stats()
        success = self._drain_transfers(n_jobs, stats)

        if self.full_sync:
            self.output.info("Doing a full sync")
            n_deletes = reconcile_remote(
                self.client,
                self.runner,
                self.pair.key_prefix,
                rules,
                success,
                max_attempts=self.max_attempts,
                page_limit=self.page_limit,
            )
            self._drain_deletes(n_deletes, stats)
            self.output.info("Full sync cleanup done")

        logger.debug("Upload finished in %.2fs", time.time() - start_time)
        return stats

    # =========================
    # Download
    # =========================

    def download(self) -> dict:
        """Download new and changed objects; in full sync, delete stale files."""
        start_time = time.time()
        rules = self.pair.rules
        n_jobs = 0
        for entry in iter_remote_objects(
            self.client, self.pair.key_prefix, self.page_limit
        ):
            if entry.key.endswith("/"):
                logger.debug(f"Skipping directory marker: {entry.key}")
                continue
            # Make sure this key matches all rules passed to the sync
            if not rules.matches(entry.key):
                logger.debug(f"Ignoring key: {entry.key}")
                continue
            self.runner.submit(
                DownloadJob(
                    client=self.client,
                    key=entry.key,
                    etag=entry.etag,
                    local_dir=self.pair.local_dir,
                    rules=rules,
                    attempts_left=self.max_attempts,
                )
            )
            n_jobs += 1
        logger.debug(f"Submitted {n_jobs} download job(s)")

        stats = self._create_empty_stats()
        success = self._drain_transfers(n_jobs, stats)

        if self.full_sync:
            self.output.info(
                f"Doing cleanup for full sync on dir: {self.pair.local_dir}"
            )
            removed = reconcile_local(
                self.pair.local_dir, self.pair.key_prefix, rules, success
            )
            for path in removed:
                self.output.info(f"Removed unmatched local file: {path}")
            stats["deletes_local"] = len(removed)
            self.output.info("Full sync cleanup done")

        logger.debug("Download finished in %.2fs", time.time() - start_time)
        return stats

    # =========================
    # Draining and reporting
    # =========================

    def _drain_transfers(self, n_jobs: int, stats: dict) -> SuccessSet:
        """Drain the transfer batch and collect the paths that made it."""
        success = SuccessSet()
        for job in self.runner.drain_many(n_jobs):
            self._report(job)
            self._count(job, stats)
            if job.is_successful and job.result_path:
                success.add(job.result_path)
        success.freeze()
        return success

    def _drain_deletes(self, n_jobs: int, stats: dict) -> None:
        for job in self.runner.drain_many(n_jobs):
            self._report(job)
            self._count(job, stats)

    def _count(self, job: SyncJob, stats: dict) -> None:
        result = job.result
        if not job.is_successful or result is None:
            stats["failures"] += 1
            return
        if result.status == JobStatus.SKIPPED:
            stats["skips"] += 1
        elif result.status == JobStatus.DELETED:
            stats["deletes_remote"] += 1
        elif result.status == JobStatus.TRANSFERRED:
            if isinstance(job, UploadJob):
                stats["uploads"] += 1
            else:
                stats["downloads"] += 1
            stats["bytes"] += result.bytes_transferred

    def _report(self, job: SyncJob) -> None:
        """Print one line per completed job."""
        result = job.result
        if not job.is_successful or result is None:
            error = result.error if result else "unknown error"
            self.output.error(f"Failed to {job.kind} '{job.source}': {error}")
            return

        if result.status == JobStatus.SKIPPED:
            if isinstance(job, UploadJob):
                self.output.info(f"File already uploaded: {job.source}")
            else:
                self.output.info(f"File already downloaded: {job.source}")
        elif result.status == JobStatus.TRANSFERRED:
            verb = "Uploaded" if isinstance(job, UploadJob) else "Downloaded"
            self.output.info(
                f"[{result.bytes_transferred:>10d} bytes] {verb} file: '{job.source}'"
            )
        elif isinstance(job, DeleteJob):
            self.output.info(f"Successfully deleted key: '{job.source}'")

    def display_summary(self, stats: dict) -> None:
        """Display sync summary."""
        self.output.print("")
        total_actions = (
            stats["uploads"]
            + stats["downloads"]
            + stats["deletes_remote"]
            + stats["deletes_local"]
        )
        if total_actions > 0:
            self.output.success("Sync complete!")
            self.output.info(f"Total actions: {total_actions}")
            if stats["uploads"] > 0:
                self.output.info(f"  Uploaded: {stats['uploads']}")
            if stats["downloads"] > 0:
                self.output.info(f"  Downloaded: {stats['downloads']}")
            if stats["deletes_remote"] > 0:
                self.output.info(f"  Deleted remotely: {stats['deletes_remote']}")
            if stats["deletes_local"] > 0:
                self.output.info(f"  Deleted locally: {stats['deletes_local']}")
            self.output.info(f"  Transferred: {format_size(stats['bytes'])}")
        else:
            self.output.success("No changes needed - everything is in sync!")
        if stats["skips"] > 0:
            self.output.info(f"  Unchanged: {stats['skips']}")
        if stats["failures"] > 0:
            self.output.warning(f"  Failed: {stats['failures']}")
