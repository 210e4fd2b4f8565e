"""Tests for full-sync reconciliation."""

import os
from unittest.mock import patch

import pytest

from conftest import InMemoryStore
from pys3sync.sync.filters import RuleSet, ScopeRule
from pys3sync.sync.reconciler import (
    SuccessSet,
    iter_remote_objects,
    local_scope_rules,
    reconcile_local,
    reconcile_remote,
)
from pys3sync.sync.runner import JobRunner


class TestSuccessSet:
    """Tests for SuccessSet."""

    def test_membership(self):
        success = SuccessSet(["p/b.json", "p/a.json"])
        success.add("p/c.json")
        success.freeze()

        assert "p/a.json" in success
        assert "p/c.json" in success
        assert "p/old.json" not in success
        assert len(success) == 3

    def test_exact_match_only(self):
        success = SuccessSet(["p/a.json"])
        assert "p/a" not in success
        assert "p/a.json.bak" not in success

    def test_freeze_is_sorted(self):
        success = SuccessSet(["c", "a", "b"])
        assert success.freeze() == ("a", "b", "c")

    def test_frozen_set_rejects_adds(self):
        success = SuccessSet(["a"])
        success.freeze()
        with pytest.raises(RuntimeError):
            success.add("b")

    def test_empty_set(self):
        success = SuccessSet()
        assert "anything" not in success


class TestIterRemoteObjects:
    """Tests for paginated listing."""

    def test_walks_all_pages(self):
        objects = {f"p/key{i:02d}": b"x" for i in range(7)}
        store = InMemoryStore(objects)

        keys = [entry.key for entry in iter_remote_objects(store, "p/", page_limit=3)]

        assert keys == sorted(objects)
        # Three pages, each starting after the previous page's last key
        assert store.list_calls == [
            ("p/", "", 3),
            ("p/", "p/key02", 3),
            ("p/", "p/key05", 3),
        ]

    def test_exact_page_boundary(self):
        """A full last page that isn't truncated ends the listing."""
        store = InMemoryStore({f"k{i}": b"x" for i in range(4)})

        keys = [entry.key for entry in iter_remote_objects(store, "", page_limit=2)]

        assert keys == ["k0", "k1", "k2", "k3"]
        assert len(store.list_calls) == 2

    def test_prefix_scopes_listing(self):
        store = InMemoryStore({"a/1": b"x", "b/1": b"x"})
        keys = [entry.key for entry in iter_remote_objects(store, "a/")]
        assert keys == ["a/1"]


class TestReconcileRemote:
    """Tests for remote reconciliation."""

    def test_deletes_stale_keys_in_scope(self):
        store = InMemoryStore(
            {"p/b.json": b"new", "p/old.json": b"old", "p/notes.txt": b"keep"}
        )
        runner = JobRunner(2)
        success = SuccessSet(["p/b.json"])
        rules = RuleSet.of([ScopeRule.postfix_rule(".json")])

        submitted = reconcile_remote(store, runner, "p", rules, success)
        drained = list(runner.drain_many(submitted))

        assert submitted == 1
        assert [job.key for job in drained] == ["p/old.json"]
        assert all(job.is_successful for job in drained)
        assert sorted(store.objects) == ["p/b.json", "p/notes.txt"]

    def test_nothing_stale(self):
        store = InMemoryStore({"p/a": b"x"})
        runner = JobRunner(1)

        submitted = reconcile_remote(store, runner, "p", RuleSet(), SuccessSet(["p/a"]))

        assert submitted == 0
        assert runner.pending == 0
        assert store.delete_calls == []

    def test_attempts_are_passed_on(self):
        store = InMemoryStore({"p/gone": b"x"})
        runner = JobRunner(1)

        reconcile_remote(store, runner, "p", RuleSet(), SuccessSet(), max_attempts=4)
        job = runner.drain()

        assert job.attempts == 1
        assert job.attempts_left == 3


class TestReconcileLocal:
    """Tests for local reconciliation."""

    def _make_tree(self, root, paths):
        for rel in paths:
            path = root.joinpath(*rel.split("/"))
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"x")

    def test_removes_unmatched_files(self, temp_dir):
        self._make_tree(temp_dir, ["data/a.json", "data/stale.json", "data/b.txt"])
        success = SuccessSet([str(temp_dir / "data" / "a.json")])
        rules = RuleSet.of([ScopeRule.postfix_rule(".json")])

        removed = reconcile_local(str(temp_dir), "data", rules, success)

        assert removed == [temp_dir / "data" / "stale.json"]
        assert (temp_dir / "data" / "a.json").exists()
        # Out of scope: wrong suffix
        assert (temp_dir / "data" / "b.txt").exists()

    def test_files_outside_prefix_are_kept(self, temp_dir):
        self._make_tree(temp_dir, ["data/x.json", "other/y.json"])

        removed = reconcile_local(str(temp_dir), "data", RuleSet(), SuccessSet())

        assert removed == [temp_dir / "data" / "x.json"]
        assert (temp_dir / "other" / "y.json").exists()

    def test_empty_prefix_covers_whole_dir(self, temp_dir):
        self._make_tree(temp_dir, ["a", "sub/b"])
        removed = reconcile_local(str(temp_dir), "", RuleSet(), SuccessSet())
        assert sorted(removed) == [temp_dir / "a", temp_dir / "sub" / "b"]

    def test_relative_dot_dir(self, temp_dir):
        self._make_tree(temp_dir, ["keep", "stale"])
        cwd = os.getcwd()
        os.chdir(temp_dir)
        try:
            removed = reconcile_local(".", "", RuleSet(), SuccessSet(["keep"]))
        finally:
            os.chdir(cwd)

        assert [p.name for p in removed] == ["stale"]
        assert (temp_dir / "keep").exists()

    def test_remove_errors_do_not_stop_the_walk(self, temp_dir):
        self._make_tree(temp_dir, ["a", "b"])
        real_remove = os.remove

        def flaky_remove(path):
            if os.path.basename(path) == "a":
                raise PermissionError(13, "Permission denied", str(path))
            real_remove(path)

        with patch("pys3sync.sync.reconciler.os.remove", side_effect=flaky_remove):
            removed = reconcile_local(str(temp_dir), "", RuleSet(), SuccessSet())

        assert removed == [temp_dir / "b"]
        assert (temp_dir / "a").exists()

    def test_missing_local_dir(self, temp_dir):
        removed = reconcile_local(
            str(temp_dir / "missing"), "", RuleSet(), SuccessSet()
        )
        assert removed == []


class TestLocalScopeRules:
    """Tests for local_scope_rules function."""

    def test_adds_prefix_rule(self, temp_dir):
        rules = local_scope_rules(str(temp_dir), "data/2024", RuleSet())
        assert rules.matches(str(temp_dir / "data" / "2024" / "a.json"))
        assert not rules.matches(str(temp_dir / "data" / "2023" / "a.json"))

    def test_keeps_existing_rules(self, temp_dir):
        base = RuleSet.of([ScopeRule.postfix_rule(".json")])
        rules = local_scope_rules(str(temp_dir), "", base)
        assert len(rules) == 2
        assert rules.matches(str(temp_dir / "a.json"))
        assert not rules.matches(str(temp_dir / "a.txt"))
