"""Sync engine for pys3sync - one-way upload/download with full-sync cleanup."""

from .comparator import compute_content_tag, is_same
from .engine import Syncer
from .filters import RuleSet, ScopeRule, split_wildcard
from .jobs import (
    DeleteJob,
    DownloadJob,
    JobResult,
    JobState,
    JobStatus,
    SyncJob,
    UploadJob,
)
from .modes import SyncDirection
from .pair import SyncPair
from .reconciler import (
    SuccessSet,
    iter_remote_objects,
    reconcile_local,
    reconcile_remote,
)
from .runner import Concurrency, JobRunner

__all__ = [
    "Syncer",
    "SyncDirection",
    "SyncPair",
    "SyncJob",
    "UploadJob",
    "DownloadJob",
    "DeleteJob",
    "JobResult",
    "JobState",
    "JobStatus",
    "JobRunner",
    "Concurrency",
    "RuleSet",
    "ScopeRule",
    "split_wildcard",
    "compute_content_tag",
    "is_same",
    "SuccessSet",
    "iter_remote_objects",
    "reconcile_local",
    "reconcile_remote",
]
