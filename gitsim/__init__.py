"""gitsim: an in-memory simulator of git's commit graph and commands."""

from .engine import CommandResult, Engine, execute
from .errors import (
    GitError,
    PreconditionError,
    PushRejected,
    ResolutionError,
    UnknownCommand,
    UsageError,
)
from .graph import GraphLink, GraphNode, RepoSummary, assign_lanes, layout, links, summarize
from .kv.base import KVStore
from .model import (
    EMPTY,
    Branch,
    Commit,
    Head,
    Snapshot,
    Tag,
    cloned_snapshot,
    current_branch,
    effective_head_commit,
    initial_snapshot,
    is_ancestor,
    next_timestamp,
    resolve_reference,
    resolve_revision,
)
from .session import PRACTICE_LESSON, Lesson, LogEntry, Session
from .store import session

__all__ = [
    "EMPTY",
    "PRACTICE_LESSON",
    "Branch",
    "CommandResult",
    "Commit",
    "Engine",
    "GitError",
    "GraphLink",
    "GraphNode",
    "Head",
    "KVStore",
    "Lesson",
    "LogEntry",
    "PreconditionError",
    "PushRejected",
    "RepoSummary",
    "ResolutionError",
    "Session",
    "Snapshot",
    "Tag",
    "UnknownCommand",
    "UsageError",
    "assign_lanes",
    "cloned_snapshot",
    "current_branch",
    "effective_head_commit",
    "execute",
    "initial_snapshot",
    "is_ancestor",
    "layout",
    "links",
    "next_timestamp",
    "resolve_reference",
    "resolve_revision",
    "session",
    "summarize",
]
