"""Shared fixtures: deterministic engines and small hand-built histories."""

import itertools

import pytest

from gitsim import Branch, Commit, Engine, Head, Snapshot, Tag

NOW = 1_700_000_000_000


def counter_ids():
    """Id factory yielding 0000001, 0000002, ..."""
    counter = itertools.count(1)
    return lambda: f"{next(counter):07x}"


@pytest.fixture
def engine():
    return Engine(id_factory=counter_ids(), clock=lambda: NOW)


@pytest.fixture
def repo(engine):
    return engine.initial()


def make_snapshot(commits, branches, head=("branch", "main"), tags=()):
    """Build a snapshot from (id, message, parent, second_parent, ts) tuples."""
    return Snapshot(
        commits=tuple(
            Commit(cid, msg, parent, second, timestamp=ts)
            for cid, msg, parent, second, ts in commits
        ),
        branches=tuple(Branch(name, cid) for name, cid in branches),
        tags=tags,
        head=Head(*head),
    )


@pytest.fixture
def linear():
    """init <- a <- b <- c on main, with ``other`` and tag v1 at c."""
    return make_snapshot(
        [
            ("init", "Initial commit", None, None, 1000),
            ("aaaa111", "A", "init", None, 2000),
            ("bbbb222", "B", "aaaa111", None, 3000),
            ("cccc333", "C", "bbbb222", None, 4000),
        ],
        [("main", "cccc333"), ("other", "cccc333")],
        tags=(Tag("v1", "cccc333"),),
    )


@pytest.fixture
def diverged():
    """main and feature forked from init: init <- m1 (main), init <- f1 <- f2 (feature)."""
    return make_snapshot(
        [
            ("init", "Initial commit", None, None, 1000),
            ("m1", "Main fix", "init", None, 2000),
            ("f1", "Feature one", "init", None, 3000),
            ("f2", "Feature two", "f1", None, 4000),
        ],
        [("main", "m1"), ("feature", "f2")],
    )


@pytest.fixture
def diamond():
    """root <- left, root <- right, merge(left, right) on main."""
    return make_snapshot(
        [
            ("root", "Root", None, None, 1000),
            ("left", "Left", "root", None, 2000),
            ("right", "Right", "root", None, 3000),
            ("merge", "Merge", "left", "right", 4000),
        ],
        [("main", "merge")],
    )
