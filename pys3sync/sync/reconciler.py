"""Full-sync reconciliation.

After the transfer batch has drained, anything in scope on the destination
that was not transferred (or confirmed identical) during this run is
deleted: remote keys through delete jobs, local files directly.
"""

import bisect
import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from ..models import ObjectEntry
from ..utils import DEFAULT_PAGE_LIMIT, local_path_for_key
from .filters import RuleSet, ScopeRule
from .jobs import DeleteJob
from .runner import JobRunner

logger = logging.getLogger(__name__)


class SuccessSet:
    """Paths or keys transferred successfully in the current run.

    Written by the draining thread only, then frozen into a sorted tuple
    that is never modified again.
    """

    def __init__(self, items: Iterable[str] = ()):
        self._items: list[str] = list(items)
        self._sorted: tuple[str, ...] | None = None

    def add(self, item: str) -> None:
        if self._sorted is not None:
            raise RuntimeError("SuccessSet is frozen")
        self._items.append(item)

    def freeze(self) -> tuple[str, ...]:
        """Sort once and stop accepting new items."""
        if self._sorted is None:
            self._sorted = tuple(sorted(self._items))
        return self._sorted

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, str):
            return False
        items = self.freeze()
        i = bisect.bisect_left(items, item)
        return i < len(items) and items[i] == item

    def __len__(self) -> int:
        return len(self._items)


def iter_remote_objects(
    client: Any,
    prefix: str,
    page_limit: int = DEFAULT_PAGE_LIMIT,
) -> Iterator[ObjectEntry]:
    """Yield every object under ``prefix`` across all listing pages.

    Each page request uses the last key of the previous page as marker.

    Raises:
        ListingError: If a page can't be fetched
    """
    marker = ""
    page_num = 0
    while True:
        page = client.list_objects(prefix=prefix, marker=marker, max_keys=page_limit)
        page_num += 1
        logger.debug(
            "Listing page %d: %d key(s), truncated=%s",
            page_num,
            len(page.entries),
            page.is_truncated,
        )
        yield from page.entries
        # Once the returned list is not truncated we're done
        if not page.is_truncated or page.last_key is None:
            break
        marker = page.last_key


def reconcile_remote(
    client: Any,
    runner: JobRunner,
    key_prefix: str,
    rules: RuleSet,
    success: SuccessSet,
    max_attempts: int = 1,
    page_limit: int = DEFAULT_PAGE_LIMIT,
) -> int:
    """Submit delete jobs for in-scope remote keys missing from ``success``.

    Returns:
        Number of delete jobs submitted; the caller drains that many
    """
    success.freeze()
    submitted = 0
    for entry in iter_remote_objects(client, key_prefix, page_limit):
        # Make sure this key matches all rules passed to the sync
        if not rules.matches(entry.key):
            continue
        if entry.key in success:
            continue
        runner.submit(
            DeleteJob(client=client, key=entry.key, attempts_left=max_attempts)
        )
        submitted += 1
    logger.debug(f"Submitted {submitted} delete job(s)")
    return submitted


def local_scope_rules(local_dir: str, key_prefix: str, rules: RuleSet) -> RuleSet:
    """Add a rule restricting ``rules`` to the local mirror of ``key_prefix``."""
    prefix_path = local_path_for_key(local_dir, key_prefix)
    # Path(".") renders as "." while walked paths below it don't
    prefix = "" if prefix_path == Path(".") else str(prefix_path)
    return rules.with_rule(ScopeRule.prefix_rule(prefix))


def _walk_files(local_dir: str) -> Iterator[Path]:
    def on_error(e: OSError) -> None:
        logger.warning(f"Error walking {e.filename}: {e}")

    for root, _dirs, files in os.walk(local_dir, onerror=on_error):
        for name in files:
            yield Path(root) / name


def reconcile_local(
    local_dir: str,
    key_prefix: str,
    rules: RuleSet,
    success: SuccessSet,
) -> list[Path]:
    """Delete in-scope local files missing from ``success``.

    Deletion is direct and best effort: a failed removal is logged and the
    walk continues.

    Returns:
        Paths that were removed
    """
    success.freeze()
    scope = local_scope_rules(local_dir, key_prefix, rules)
    removed: list[Path] = []
    for path in _walk_files(local_dir):
        if not scope.matches(str(path)):
            continue
        if str(path) in success:
            continue
        logger.debug(f"Removing unmatched local file: {path}")
        try:
            os.remove(path)
        except OSError as e:
            logger.warning(f"Could not remove {path}: {e}")
            continue
        removed.append(path)
    return removed
