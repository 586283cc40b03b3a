"""Tests for the repository model and its graph queries."""

import dataclasses

import pytest

from conftest import make_snapshot
from gitsim import (
    EMPTY,
    Commit,
    Head,
    Snapshot,
    Tag,
    effective_head_commit,
    is_ancestor,
    next_timestamp,
    resolve_reference,
    resolve_revision,
)
from gitsim.model import INIT_COMMIT_ID, current_branch, first_parent_lineage, head_commit


class TestSnapshot:
    def test_lists_become_tuples(self):
        s = Snapshot(commits=[Commit("a", "A")], branches=[], tags=[])
        assert isinstance(s.commits, tuple)
        assert isinstance(s.branches, tuple)

    def test_frozen(self, linear):
        with pytest.raises(dataclasses.FrozenInstanceError):
            linear.head = Head("commit", "init")  # type: ignore[misc]

    def test_with_branch_creates_and_moves(self, linear):
        created = linear.with_branch("new", "aaaa111")
        assert created.branch("new").commit_id == "aaaa111"
        moved = created.with_branch("new", "bbbb222")
        assert moved.branch("new").commit_id == "bbbb222"
        assert linear.branch("new") is None

    def test_to_dict_shape(self, diamond):
        data = diamond.to_dict()
        merge = next(c for c in data["commits"] if c["id"] == "merge")
        assert merge["parentId"] == "left"
        assert merge["secondParentId"] == "right"
        assert data["branches"] == [{"name": "main", "commitId": "merge"}]
        assert data["head"] == {"type": "branch", "ref": "main"}

    def test_from_dict_restores(self, linear):
        assert Snapshot.from_dict(linear.to_dict()) == linear

    def test_from_dict_rejects_bad_head(self):
        with pytest.raises(ValueError, match="Unknown head type"):
            Snapshot.from_dict({"head": {"type": "tree", "ref": "x"}})


class TestHead:
    def test_attached(self, linear):
        assert effective_head_commit(linear) == "cccc333"
        assert current_branch(linear) == "main"

    def test_detached(self, linear):
        s = linear.with_head(Head("commit", "aaaa111"))
        assert effective_head_commit(s) == "aaaa111"
        assert current_branch(s) is None

    def test_missing_branch_falls_back_to_init(self, linear):
        s = linear.with_head(Head("branch", "ghost"))
        assert effective_head_commit(s) == INIT_COMMIT_ID

    def test_head_commit_on_unborn_branch(self):
        assert head_commit(EMPTY) is None


class TestResolveReference:
    def test_branch(self, linear):
        assert resolve_reference(linear, "main") == "cccc333"

    def test_tag(self, linear):
        assert resolve_reference(linear, "v1") == "cccc333"

    def test_exact_commit_id(self, linear):
        assert resolve_reference(linear, "bbbb222") == "bbbb222"

    def test_unique_prefix(self, linear):
        assert resolve_reference(linear, "aaa") == "aaaa111"

    def test_ambiguous_prefix(self):
        s = make_snapshot(
            [("abc1", "x", None, None, 1), ("abc2", "y", "abc1", None, 2)],
            [("main", "abc2")],
        )
        assert resolve_reference(s, "abc") is None

    def test_head_literal(self, linear):
        assert resolve_reference(linear, "HEAD") == "cccc333"

    def test_head_on_unborn_branch(self):
        assert resolve_reference(EMPTY, "HEAD") is None

    def test_branch_beats_tag(self, linear):
        s = linear.with_branch("release", "aaaa111")
        s = dataclasses.replace(s, tags=s.tags + (Tag("release", "bbbb222"),))
        assert resolve_reference(s, "release") == "aaaa111"

    def test_tag_beats_commit_prefix(self, linear):
        s = dataclasses.replace(linear, tags=(Tag("aaaa", "bbbb222"),))
        assert resolve_reference(s, "aaaa") == "bbbb222"

    def test_unknown_and_empty(self, linear):
        assert resolve_reference(linear, "nope") is None
        assert resolve_reference(linear, "") is None


class TestResolveRevision:
    def test_plain_reference(self, linear):
        assert resolve_revision(linear, "other") == "cccc333"

    def test_tilde_count(self, linear):
        assert resolve_revision(linear, "HEAD~1") == "bbbb222"
        assert resolve_revision(linear, "HEAD~3") == "init"

    def test_tilde_and_caret_default_to_one(self, linear):
        assert resolve_revision(linear, "main~") == "bbbb222"
        assert resolve_revision(linear, "main^") == "bbbb222"
        assert resolve_revision(linear, "main^^") == "aaaa111"

    def test_beyond_root(self, linear):
        assert resolve_revision(linear, "HEAD~4") is None

    def test_bad_count(self, linear):
        assert resolve_revision(linear, "HEAD~x") is None

    def test_follows_first_parent_only(self, diamond):
        assert resolve_revision(diamond, "HEAD~1") == "left"


class TestIsAncestor:
    def test_reflexive(self, diamond):
        for c in diamond.commits:
            assert is_ancestor(diamond, c.id, c.id)

    def test_through_second_parent(self, diamond):
        assert is_ancestor(diamond, "right", "merge")
        assert is_ancestor(diamond, "root", "merge")

    def test_direction(self, diamond):
        assert not is_ancestor(diamond, "merge", "root")

    def test_siblings(self, diamond):
        assert not is_ancestor(diamond, "left", "right")

    def test_terminates_on_many_diamonds(self):
        commits = [("c0", "0", None, None, 0)]
        for i in range(1, 40):
            commits.append((f"l{i}", "l", f"c{i - 1}", None, i * 10))
            commits.append((f"r{i}", "r", f"c{i - 1}", None, i * 10 + 1))
            commits.append((f"c{i}", "m", f"l{i}", f"r{i}", i * 10 + 2))
        s = make_snapshot(commits, [("main", "c39")])
        assert is_ancestor(s, "c0", "c39")
        assert not is_ancestor(s, "missing", "c39")


class TestLineageAndTime:
    def test_first_parent_lineage(self, diamond):
        assert list(first_parent_lineage(diamond, "merge")) == ["merge", "left", "root"]

    def test_next_timestamp_after_latest(self, linear):
        assert next_timestamp(linear, now=0) > 4000

    def test_next_timestamp_at_least_now(self, linear):
        assert next_timestamp(linear, now=10**12) == 10**12

    def test_next_timestamp_empty(self):
        assert next_timestamp(EMPTY, now=5) == 5
