"""Graph projection for the visualization layer.

Everything is derived by scanning a snapshot; the engine keeps no indices.
"""

from collections import deque
from dataclasses import dataclass
from typing import Iterator

from .model import DEFAULT_BRANCH, Commit, Snapshot, current_branch


@dataclass(frozen=True)
class GraphNode:
    """A commit placed on the canvas grid."""

    commit: Commit
    row: int
    lane: int
    branches: tuple[str, ...]
    tags: tuple[str, ...]
    is_head: bool


@dataclass(frozen=True)
class GraphLink:
    """A parent edge from ``source`` (child) to ``target`` (parent)."""

    source: str
    target: str
    is_merge: bool


@dataclass(frozen=True)
class RepoSummary:
    head_label: str
    detached: bool
    commit_count: int
    local_branch_count: int
    has_remote: bool


def assign_lanes(snapshot: Snapshot) -> dict[str, int]:
    """Assign every commit a lane (column).

    ``main`` and its whole ancestry take lane 0. Each other branch gets the
    next lane, in branch order, and claims the commits it reaches first;
    its trace stops at the first lane-0 commit. Commits no branch reaches
    share the lane after the last branch lane.
    """
    if not snapshot.commits:
        return {}
    by_id = {c.id: c for c in snapshot.commits}

    branch_lanes: dict[str, int] = {}
    next_lane = 0
    if snapshot.branch(DEFAULT_BRANCH) is not None:
        branch_lanes[DEFAULT_BRANCH] = 0
        next_lane = 1
    for b in snapshot.branches:
        if b.name not in branch_lanes:
            branch_lanes[b.name] = next_lane
            next_lane += 1

    lanes: dict[str, int] = {}
    visited: set[str] = set()

    def trace(start: str, lane: int) -> None:
        queue: deque[str] = deque([start])
        while queue:
            current = queue.popleft()
            if current in visited:
                if lanes.get(current) == 0:
                    return
                continue
            visited.add(current)
            lanes[current] = lane
            commit = by_id.get(current)
            if commit is not None:
                queue.extend(commit.parents)

    main = snapshot.branch(DEFAULT_BRANCH)
    if main is not None:
        trace(main.commit_id, 0)
    for b in snapshot.branches:
        if b.name != DEFAULT_BRANCH:
            trace(b.commit_id, branch_lanes[b.name])

    for c in snapshot.commits:
        if c.id not in visited:
            lanes[c.id] = next_lane
    # Parent ids of commits that were never recorded are not drawn.
    return {cid: lane for cid, lane in lanes.items() if cid in by_id}


def layout(snapshot: Snapshot) -> list[GraphNode]:
    """Commits newest first, each with its row, lane and decorations."""
    lanes = assign_lanes(snapshot)
    ordered = sorted(snapshot.commits, key=lambda c: c.timestamp, reverse=True)
    detached_at = None if snapshot.head.attached else snapshot.head.ref
    nodes = []
    for row, commit in enumerate(ordered):
        nodes.append(
            GraphNode(
                commit=commit,
                row=row,
                lane=lanes.get(commit.id, 0),
                branches=tuple(b.name for b in snapshot.branches if b.commit_id == commit.id),
                tags=tuple(t.name for t in snapshot.tags if t.commit_id == commit.id),
                is_head=commit.id == detached_at or _is_attached_head(snapshot, commit),
            )
        )
    return nodes


def _is_attached_head(snapshot: Snapshot, commit: Commit) -> bool:
    name = current_branch(snapshot)
    if name is None:
        return False
    branch = snapshot.branch(name)
    return branch is not None and branch.commit_id == commit.id


def links(snapshot: Snapshot) -> Iterator[GraphLink]:
    """Yield one link per parent edge whose parent is present."""
    known = {c.id for c in snapshot.commits}
    for c in snapshot.commits:
        if c.first_parent in known:
            yield GraphLink(c.id, c.first_parent, is_merge=False)
        if c.second_parent in known:
            yield GraphLink(c.id, c.second_parent, is_merge=True)


def summarize(snapshot: Snapshot) -> RepoSummary:
    """Header facts: where HEAD is and how big the repository is."""
    detached = not snapshot.head.attached
    return RepoSummary(
        head_label=snapshot.head.ref[:7] if detached else snapshot.head.ref,
        detached=detached,
        commit_count=len(snapshot.commits),
        local_branch_count=sum(1 for b in snapshot.branches if not b.is_remote),
        has_remote=any(b.is_remote for b in snapshot.branches),
    )
