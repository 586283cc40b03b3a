"""Repository model: commits, refs, HEAD and graph queries.

A ``Snapshot`` is an immutable value. Every helper here is a pure query or
returns a new snapshot; nothing mutates its arguments.
"""

from collections import deque
from dataclasses import dataclass, field, replace
from typing import Callable, Iterator, Literal

INIT_COMMIT_ID = "init"
DEFAULT_BRANCH = "main"
REMOTE_PREFIX = "origin/"
TIMESTAMP_STEP = 2000

HeadType = Literal["branch", "commit"]


@dataclass(frozen=True)
class Commit:
    """A node in the commit graph.

    Commits are records identified by ``id``, not content-addressed values:
    ``commit --amend`` replaces the record that carries the same id.
    """

    id: str
    message: str
    first_parent: str | None = None
    second_parent: str | None = None
    timestamp: int = 0
    author: str = "User"

    @property
    def parents(self) -> tuple[str, ...]:
        return tuple(p for p in (self.first_parent, self.second_parent) if p)

    @property
    def is_merge(self) -> bool:
        return self.second_parent is not None


@dataclass(frozen=True)
class Branch:
    name: str
    commit_id: str

    @property
    def is_remote(self) -> bool:
        return self.name.startswith(REMOTE_PREFIX)


@dataclass(frozen=True)
class Tag:
    name: str
    commit_id: str


@dataclass(frozen=True)
class Head:
    """Either attached to a branch (``type="branch"``) or detached at a commit."""

    type: HeadType
    ref: str

    @property
    def attached(self) -> bool:
        return self.type == "branch"


@dataclass(frozen=True)
class Snapshot:
    """The whole repository state at one step."""

    commits: tuple[Commit, ...] = ()
    branches: tuple[Branch, ...] = ()
    tags: tuple[Tag, ...] = ()
    head: Head = field(default_factory=lambda: Head("branch", DEFAULT_BRANCH))

    def __post_init__(self) -> None:
        # Accept lists from callers, store tuples.
        for name in ("commits", "branches", "tags"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))

    # -- Lookups --

    def commit(self, commit_id: str | None) -> Commit | None:
        if commit_id is None:
            return None
        for c in self.commits:
            if c.id == commit_id:
                return c
        return None

    def branch(self, name: str) -> Branch | None:
        for b in self.branches:
            if b.name == name:
                return b
        return None

    def tag(self, name: str) -> Tag | None:
        for t in self.tags:
            if t.name == name:
                return t
        return None

    def has_commit(self, commit_id: str | None) -> bool:
        return self.commit(commit_id) is not None

    # -- Derivations --

    def with_commits(self, *commits: Commit) -> "Snapshot":
        """Return a snapshot with ``commits`` appended."""
        return replace(self, commits=self.commits + tuple(commits))

    def with_replaced_commit(self, commit: Commit) -> "Snapshot":
        """Return a snapshot where the commit with ``commit.id`` is swapped."""
        return replace(
            self,
            commits=tuple(commit if c.id == commit.id else c for c in self.commits),
        )

    def with_branch(self, name: str, commit_id: str) -> "Snapshot":
        """Move ``name`` to ``commit_id``, creating the branch if needed."""
        if self.branch(name) is None:
            return replace(self, branches=self.branches + (Branch(name, commit_id),))
        return replace(
            self,
            branches=tuple(
                Branch(name, commit_id) if b.name == name else b for b in self.branches
            ),
        )

    def with_tag(self, name: str, commit_id: str) -> "Snapshot":
        return replace(self, tags=self.tags + (Tag(name, commit_id),))

    def with_head(self, head: Head) -> "Snapshot":
        return replace(self, head=head)

    # -- Serialization --

    def to_dict(self) -> dict:
        """Convert to the JSON shape read by the visualization layer."""
        return {
            "commits": [
                {
                    "id": c.id,
                    "message": c.message,
                    "parentId": c.first_parent,
                    "secondParentId": c.second_parent,
                    "timestamp": c.timestamp,
                    "author": c.author,
                }
                for c in self.commits
            ],
            "branches": [{"name": b.name, "commitId": b.commit_id} for b in self.branches],
            "tags": [{"name": t.name, "commitId": t.commit_id} for t in self.tags],
            "head": {"type": self.head.type, "ref": self.head.ref},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Snapshot":
        """Build a snapshot from the dict produced by ``to_dict``."""
        head = data.get("head") or {"type": "branch", "ref": DEFAULT_BRANCH}
        if head["type"] not in ("branch", "commit"):
            raise ValueError(f"Unknown head type: {head['type']!r}")
        return cls(
            commits=tuple(
                Commit(
                    id=c["id"],
                    message=c["message"],
                    first_parent=c.get("parentId"),
                    second_parent=c.get("secondParentId"),
                    timestamp=c.get("timestamp", 0),
                    author=c.get("author", "User"),
                )
                for c in data.get("commits", [])
            ),
            branches=tuple(Branch(b["name"], b["commitId"]) for b in data.get("branches", [])),
            tags=tuple(Tag(t["name"], t["commitId"]) for t in data.get("tags", [])),
            head=Head(head["type"], head["ref"]),
        )


# -- Canonical snapshots --


def initial_snapshot(timestamp: int = 0) -> Snapshot:
    """A fresh repository: one root commit on ``main``, HEAD attached."""
    return Snapshot(
        commits=(Commit(INIT_COMMIT_ID, "Initial commit", timestamp=timestamp),),
        branches=(Branch(DEFAULT_BRANCH, INIT_COMMIT_ID),),
        head=Head("branch", DEFAULT_BRANCH),
    )


def cloned_snapshot(now: int) -> Snapshot:
    """The canned history produced by ``git clone``."""
    return Snapshot(
        commits=(
            Commit("c82a", "Initial public release", timestamp=now - 10000, author="Origin"),
            Commit("a12b", "Update README", "c82a", timestamp=now - 5000, author="Origin"),
        ),
        branches=(
            Branch(DEFAULT_BRANCH, "a12b"),
            Branch(REMOTE_PREFIX + DEFAULT_BRANCH, "a12b"),
        ),
        head=Head("branch", DEFAULT_BRANCH),
    )


EMPTY = Snapshot()
"""A repository with no commits and HEAD on an unborn ``main``."""


# -- HEAD helpers --


def effective_head_commit(snapshot: Snapshot) -> str:
    """The commit id HEAD points at, directly or through its branch.

    Falls back to the ``init`` id when the attached branch does not exist.
    """
    if not snapshot.head.attached:
        return snapshot.head.ref
    branch = snapshot.branch(snapshot.head.ref)
    return branch.commit_id if branch else INIT_COMMIT_ID


def current_branch(snapshot: Snapshot) -> str | None:
    """Name of the branch HEAD is attached to, or None when detached."""
    return snapshot.head.ref if snapshot.head.attached else None


def head_commit(snapshot: Snapshot) -> Commit | None:
    """The HEAD commit record, or None when HEAD points at nothing yet."""
    return snapshot.commit(effective_head_commit(snapshot))


# -- Reference resolution --

Resolver = Callable[[Snapshot, str], str | None]


def _by_branch(snapshot: Snapshot, token: str) -> str | None:
    branch = snapshot.branch(token)
    return branch.commit_id if branch else None


def _by_tag(snapshot: Snapshot, token: str) -> str | None:
    tag = snapshot.tag(token)
    return tag.commit_id if tag else None


def _by_commit_id(snapshot: Snapshot, token: str) -> str | None:
    if snapshot.has_commit(token):
        return token
    matches = [c.id for c in snapshot.commits if c.id.startswith(token)]
    if len(matches) == 1:
        return matches[0]
    return None


def _by_head(snapshot: Snapshot, token: str) -> str | None:
    if token != "HEAD":
        return None
    commit_id = effective_head_commit(snapshot)
    # An unborn branch has no HEAD commit to resolve to.
    return commit_id if snapshot.has_commit(commit_id) else None


RESOLVERS: tuple[Resolver, ...] = (_by_branch, _by_tag, _by_commit_id, _by_head)


def resolve_reference(snapshot: Snapshot, token: str) -> str | None:
    """Resolve a branch, tag, commit id (or unique prefix), or ``HEAD``.

    Resolvers are tried in that order and the first hit wins.
    """
    if not token:
        return None
    for resolver in RESOLVERS:
        found = resolver(snapshot, token)
        if found is not None:
            return found
    return None


def _split_ancestry(token: str) -> tuple[str, int] | None:
    """Split ``ref~N``, ``ref~`` or ``ref^`` into (ref, N)."""
    if token.endswith("^"):
        return token[:-1], 1
    if "~" in token:
        base, _, count = token.rpartition("~")
        if count == "":
            return base, 1
        if not count.isdigit():
            return None
        return base, int(count)
    return None


def resolve_revision(snapshot: Snapshot, token: str) -> str | None:
    """Like ``resolve_reference``, also accepting ``~N`` and ``^`` suffixes.

    Ancestor counting follows first-parent edges only. Returns None when
    the history is shorter than requested.
    """
    found = resolve_reference(snapshot, token)
    if found is not None:
        return found
    split = _split_ancestry(token)
    if split is None:
        return None
    base, count = split
    current = resolve_revision(snapshot, base)
    while current is not None and count > 0:
        commit = snapshot.commit(current)
        if commit is None or commit.first_parent is None:
            return None
        current = commit.first_parent
        count -= 1
    return current


# -- Graph queries --


def is_ancestor(snapshot: Snapshot, ancestor: str, descendant: str) -> bool:
    """True if ``ancestor`` is reachable from ``descendant`` (reflexive).

    Breadth-first over both parent edges with a visited set, so merge
    diamonds are walked once.
    """
    if ancestor == descendant:
        return True
    by_id = {c.id: c for c in snapshot.commits}
    visited: set[str] = set()
    queue: deque[str] = deque([descendant])
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        if current == ancestor:
            return True
        commit = by_id.get(current)
        if commit is None:
            continue
        for p in commit.parents:
            if p not in visited:
                queue.append(p)
    return False


def first_parent_lineage(snapshot: Snapshot, start: str | None) -> Iterator[str]:
    """Yield ``start`` and its first-parent ancestors, newest first."""
    by_id = {c.id: c for c in snapshot.commits}
    seen: set[str] = set()
    current = start
    while current is not None and current not in seen:
        seen.add(current)
        yield current
        commit = by_id.get(current)
        current = commit.first_parent if commit else None


def next_timestamp(snapshot: Snapshot, now: int) -> int:
    """A timestamp later than every existing commit and no earlier than ``now``."""
    latest = max((c.timestamp for c in snapshot.commits), default=None)
    if latest is None:
        return now
    return max(now, latest + TIMESTAMP_STEP)
