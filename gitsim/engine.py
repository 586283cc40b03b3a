"""Command engine: applies whitelisted git commands to a snapshot."""

import logging
import time
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable

from .commands import ParsedCommand, parse, split_sequence
from .errors import (
    GitError,
    PreconditionError,
    PushRejected,
    ResolutionError,
    UnknownCommand,
    UsageError,
)
from .model import (
    REMOTE_PREFIX,
    Commit,
    Head,
    Snapshot,
    cloned_snapshot,
    current_branch,
    effective_head_commit,
    first_parent_lineage,
    head_commit,
    initial_snapshot,
    is_ancestor,
    next_timestamp,
    resolve_revision,
)

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR = "User"
REMOTE_AUTHOR = "Teammate"
REMOTE_NAME = "origin"
REMOTE_MAIN = REMOTE_PREFIX + "main"
REMOTE_URL = "https://github.com/demo/repo"
LISTED_REMOTE_URL = "https://github.com/user/repo.git"

Handler = Callable[[ParsedCommand, Snapshot], tuple[Snapshot, str]]


@dataclass(frozen=True)
class CommandResult:
    """Result of running a command line against a snapshot.

    On failure ``snapshot`` is the snapshot that was passed in.
    """

    snapshot: Snapshot
    output: str
    success: bool

    def __bool__(self) -> bool:
        return self.success


def _short(commit_id: str) -> str:
    return commit_id[:7]


def _default_id() -> str:
    return uuid.uuid4().hex[:7]


def _default_clock() -> int:
    return int(time.time() * 1000)


def _format_date(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp / 1000).strftime("%a %b %d %H:%M:%S %Y")


def _validate_ref_name(name: str, kind: str = "branch") -> None:
    if (
        name == "HEAD"
        or name.startswith(("-", "/"))
        or name.endswith(("/", ".", ".lock"))
        or ".." in name
        or any(ch in name for ch in "~^:?*[\\ ")
    ):
        raise UsageError(f"fatal: '{name}' is not a valid {kind} name.")
    if kind == "branch" and name.startswith(REMOTE_PREFIX):
        raise UsageError(f"fatal: '{name}' is reserved for remote-tracking branches.")


class Engine:
    """Interprets ``git ...`` command lines over immutable snapshots.

    Args:
        author: Author recorded on commits made by the learner.
        id_factory: Returns candidate commit ids. Defaults to seven hex
            characters of a uuid4. Candidates already in use are skipped.
        clock: Returns the current time in milliseconds.
    """

    def __init__(
        self,
        *,
        author: str = DEFAULT_AUTHOR,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.author = author
        self._id_factory = id_factory or _default_id
        self._clock = clock or _default_clock
        self._epoch = self._clock()
        self._handlers: dict[str, Handler] = {
            "init": self._init,
            "add": self._add,
            "commit": self._commit,
            "log": self._log,
            "branch": self._branch,
            "checkout": self._checkout,
            "switch": self._checkout,
            "merge": self._merge,
            "reset": self._reset,
            "revert": self._revert,
            "cherry-pick": self._cherry_pick,
            "tag": self._tag,
            "remote": self._remote,
            "clone": self._clone,
            "fetch": self._fetch,
            "pull": self._pull,
            "push": self._push,
            "rebase": self._rebase,
        }

    @property
    def verbs(self) -> list[str]:
        """The simulated git subcommands."""
        return sorted(self._handlers)

    def initial(self) -> Snapshot:
        """The snapshot ``git init`` produces; identical on every call."""
        return initial_snapshot(self._epoch)

    # -- Entry points --

    def execute(self, text: str, snapshot: Snapshot) -> CommandResult:
        """Run one command line, which may chain commands with ``&&``.

        Commands run left to right on a working snapshot. The first failure
        stops the chain and the original snapshot is returned together with
        the output produced so far.
        """
        if not isinstance(snapshot, Snapshot):
            raise TypeError(f"Expected Snapshot, got {type(snapshot).__name__}")

        segments = split_sequence(text)
        if not segments:
            return CommandResult(snapshot, "Command must start with 'git'", False)

        working = snapshot
        outputs: list[str] = []
        for tokens in segments:
            result = self.run(parse(tokens), working)
            if result.output:
                outputs.append(result.output)
            if not result:
                return CommandResult(snapshot, "\n\n".join(outputs), False)
            working = result.snapshot
        return CommandResult(working, "\n\n".join(outputs), True)

    def run(self, command: ParsedCommand, snapshot: Snapshot) -> CommandResult:
        """Run a single parsed command."""
        logger.debug("Running %r", command.raw)
        try:
            if command.program != "git":
                raise UsageError("Command must start with 'git'")
            if command.verb is None:
                raise UsageError("usage: git <command> [<args>]")
            handler = self._handlers.get(command.verb)
            if handler is None:
                raise UnknownCommand(command.verb)
            new_snapshot, output = handler(command, snapshot)
        except GitError as e:
            logger.debug("Command %r failed: %s", command.raw, e)
            return CommandResult(snapshot, str(e), False)
        return CommandResult(new_snapshot, output, True)

    # -- Shared helpers --

    def _now(self) -> int:
        return self._clock()

    def _new_id(self, snapshot: Snapshot) -> str:
        for _ in range(100):
            candidate = self._id_factory()
            if not snapshot.has_commit(candidate):
                return candidate
        raise RuntimeError("id_factory keeps returning ids that are already in use")

    def _new_commit(
        self,
        snapshot: Snapshot,
        message: str,
        first_parent: str | None,
        *,
        second_parent: str | None = None,
        author: str | None = None,
        commit_id: str | None = None,
    ) -> Commit:
        return Commit(
            id=commit_id or self._new_id(snapshot),
            message=message,
            first_parent=first_parent,
            second_parent=second_parent,
            timestamp=next_timestamp(snapshot, self._now()),
            author=author or self.author,
        )

    @staticmethod
    def _advance_head(snapshot: Snapshot, commit_id: str) -> Snapshot:
        """Move the current branch, or a detached HEAD, to ``commit_id``."""
        name = current_branch(snapshot)
        if name is None:
            return snapshot.with_head(Head("commit", commit_id))
        return snapshot.with_branch(name, commit_id)

    @staticmethod
    def _head_label(snapshot: Snapshot) -> str:
        return current_branch(snapshot) or "detached HEAD"

    @staticmethod
    def _require_branch(snapshot: Snapshot, message: str) -> str:
        name = current_branch(snapshot)
        if name is None:
            raise PreconditionError(message)
        return name

    @staticmethod
    def _require_head_commit(snapshot: Snapshot) -> Commit:
        commit = head_commit(snapshot)
        if commit is None:
            name = current_branch(snapshot) or "HEAD"
            raise PreconditionError(
                f"fatal: your current branch '{name}' does not have any commits yet"
            )
        return commit

    @staticmethod
    def _resolve(snapshot: Snapshot, token: str, message: str | None = None) -> str:
        found = resolve_revision(snapshot, token)
        if found is None:
            raise ResolutionError(token, message)
        return found

    # -- Basic snapshotting --

    def _init(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        return self.initial(), "Initialized empty Git repository in /project/.git/"

    def _add(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        return snapshot, ""

    def _commit(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        if command.has_flag("--amend"):
            return self._amend(command, snapshot)

        commit_id = self._new_id(snapshot)
        message = command.message() or f"Update {commit_id}"
        parent = effective_head_commit(snapshot)
        commit = self._new_commit(
            snapshot,
            message,
            parent if snapshot.has_commit(parent) else None,
            commit_id=commit_id,
        )
        label = self._head_label(snapshot)
        new_snapshot = self._advance_head(snapshot.with_commits(commit), commit.id)
        return new_snapshot, f"[{label} {_short(commit.id)}] {message}"

    def _amend(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        # Same id, new message and timestamp; lessons rely on the id staying put.
        old = head_commit(snapshot)
        if old is None:
            raise PreconditionError("fatal: You have nothing to amend.")
        message = command.message() or old.message
        amended = replace(
            old, message=message, timestamp=next_timestamp(snapshot, self._now())
        )
        label = self._head_label(snapshot)
        return (
            snapshot.with_replaced_commit(amended),
            f"[{label} {_short(amended.id)}] {message}",
        )

    def _log(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        commits = sorted(snapshot.commits, key=lambda c: c.timestamp, reverse=True)
        if not commits:
            return snapshot, "(no commits)"
        if command.has_flag("--oneline"):
            return snapshot, "\n".join(f"{_short(c.id)} {c.message}" for c in commits)
        blocks = [
            f"commit {c.id}\nAuthor: {c.author}\nDate:   {_format_date(c.timestamp)}"
            f"\n\n    {c.message}"
            for c in commits
        ]
        return snapshot, "\n\n".join(blocks)

    # -- Branching --

    def _branch(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        if command.has_flag("-M", "-m"):
            return self._rename_branch(command, snapshot)

        args = command.positional()
        if not args:
            raise UsageError("fatal: branch name required")
        name = args[0]
        _validate_ref_name(name)
        if snapshot.branch(name) is not None:
            raise UsageError(f"fatal: A branch named '{name}' already exists.")

        if len(args) > 1:
            start = self._resolve(snapshot, args[1])
        else:
            start = self._require_head_commit(snapshot).id
        return snapshot.with_branch(name, start), f"Created branch '{name}'"

    def _rename_branch(
        self, command: ParsedCommand, snapshot: Snapshot
    ) -> tuple[Snapshot, str]:
        current = self._require_branch(snapshot, "fatal: Must be on a branch to rename")
        args = command.positional()
        if not args:
            raise UsageError("fatal: branch name required")
        new_name = args[-1]
        _validate_ref_name(new_name)
        branch = snapshot.branch(current)
        if branch is None:
            raise PreconditionError(f"error: refname refs/heads/{current} not found")

        # -M forces: an existing branch with the new name is replaced.
        branches = tuple(
            replace(b, name=new_name) if b.name == current else b
            for b in snapshot.branches
            if b.name != new_name or b.name == current
        )
        renamed = replace(snapshot, branches=branches, head=Head("branch", new_name))
        return renamed, f"Renamed branch to '{new_name}'"

    def _checkout(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        if command.has_flag("-b", "-c", "--create"):
            return self._create_and_switch(command, snapshot)

        args = command.positional()
        if not args:
            raise UsageError("fatal: missing branch or commit argument")
        target = args[0]

        branch = snapshot.branch(target)
        if branch is not None and not branch.is_remote:
            if current_branch(snapshot) == target:
                return snapshot, f"Already on '{target}'"
            return snapshot.with_head(Head("branch", target)), f"Switched to branch '{target}'"

        commit_id = self._resolve(
            snapshot,
            target,
            f"error: pathspec '{target}' did not match any file(s) known to git",
        )
        commit = snapshot.commit(commit_id)
        message = commit.message if commit else ""
        return (
            snapshot.with_head(Head("commit", commit_id)),
            f"Note: switching to '{target}'.\n\n"
            "You are in 'detached HEAD' state.\n"
            f"HEAD is now at {_short(commit_id)} {message}",
        )

    def _create_and_switch(
        self, command: ParsedCommand, snapshot: Snapshot
    ) -> tuple[Snapshot, str]:
        args = command.positional()
        if not args:
            raise UsageError("fatal: branch name required")
        name = args[0]
        _validate_ref_name(name)
        if snapshot.branch(name) is not None:
            raise UsageError(f"fatal: A branch named '{name}' already exists.")
        if len(args) > 1:
            start = self._resolve(snapshot, args[1])
        else:
            start = self._require_head_commit(snapshot).id
        new_snapshot = snapshot.with_branch(name, start).with_head(Head("branch", name))
        return new_snapshot, f"Switched to a new branch '{name}'"

    # -- Integrating history --

    def _merge(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        args = command.positional()
        if not args:
            raise UsageError("fatal: No remote for the current branch.")
        return self._merge_ref(snapshot, args[0])

    def _merge_ref(self, snapshot: Snapshot, source: str) -> tuple[Snapshot, str]:
        """Fast-forward or create a merge commit for ``source``."""
        target = self._resolve(snapshot, source, f"merge: {source} - not something we can merge")
        name = self._require_branch(snapshot, "fatal: You must be on a branch to merge")
        tip = self._require_head_commit(snapshot).id

        if target == tip:
            return snapshot, "Already up to date."

        if is_ancestor(snapshot, tip, target):
            return (
                snapshot.with_branch(name, target),
                f"Updating {_short(tip)}..{_short(target)}\nFast-forward",
            )

        commit = self._new_commit(
            snapshot,
            self._merge_message(snapshot, source, target, name),
            tip,
            second_parent=target,
        )
        new_snapshot = snapshot.with_commits(commit).with_branch(name, commit.id)
        return new_snapshot, "Merge made by the 'ort' strategy."

    @staticmethod
    def _merge_message(snapshot: Snapshot, source: str, target: str, into: str) -> str:
        branch = snapshot.branch(source)
        if branch is not None and branch.is_remote:
            return f"Merge remote-tracking branch '{source}' into {into}"
        if branch is not None:
            return f"Merge branch '{source}' into {into}"
        if snapshot.tag(source) is not None:
            return f"Merge tag '{source}' into {into}"
        return f"Merge commit '{_short(target)}' into {into}"

    def _reset(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        name = self._require_branch(
            snapshot, "fatal: Resetting in detached HEAD is just checkout."
        )
        args = command.positional()
        token = args[0] if args else "HEAD"
        target = self._resolve(
            snapshot,
            token,
            f"fatal: ambiguous argument '{token}': unknown revision or path not in the working tree.",
        )
        commit = snapshot.commit(target)
        message = commit.message if commit else ""
        return (
            snapshot.with_branch(name, target),
            f"HEAD is now at {_short(target)} {message}",
        )

    def _revert(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        args = command.positional()
        if not args:
            raise UsageError("usage: git revert <commit>")
        target_id = self._resolve(snapshot, args[0], f"fatal: bad revision '{args[0]}'")
        target = snapshot.commit(target_id)
        parent = self._require_head_commit(snapshot).id
        message = f'Revert "{target.message if target else target_id}"'
        commit = self._new_commit(snapshot, message, parent)
        label = self._head_label(snapshot)
        new_snapshot = self._advance_head(snapshot.with_commits(commit), commit.id)
        return new_snapshot, f"[{label} {_short(commit.id)}] {message}"

    def _cherry_pick(
        self, command: ParsedCommand, snapshot: Snapshot
    ) -> tuple[Snapshot, str]:
        args = command.positional()
        if not args:
            raise UsageError("usage: git cherry-pick <commit>")
        source_id = self._resolve(snapshot, args[0], f"fatal: bad revision '{args[0]}'")
        source = snapshot.commit(source_id)
        if source is None:
            raise ResolutionError(args[0], f"fatal: bad object {args[0]}")
        parent = self._require_head_commit(snapshot).id
        commit = self._new_commit(snapshot, source.message, parent, author=source.author)
        label = self._head_label(snapshot)
        new_snapshot = self._advance_head(snapshot.with_commits(commit), commit.id)
        return new_snapshot, f"[{label} {_short(commit.id)}] {commit.message}"

    def _rebase(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        args = command.positional()
        if not args:
            raise UsageError("usage: git rebase <upstream>")
        target = self._resolve(snapshot, args[0], f"fatal: invalid upstream '{args[0]}'")
        name = self._require_branch(snapshot, "fatal: You must be on a branch to rebase")
        tip = self._require_head_commit(snapshot).id

        base_lineage = set(first_parent_lineage(snapshot, target))
        to_replay: list[Commit] = []
        for commit_id in first_parent_lineage(snapshot, tip):
            if commit_id in base_lineage:
                break
            commit = snapshot.commit(commit_id)
            if commit is None:
                break
            to_replay.append(commit)
        to_replay.reverse()
        if not to_replay:
            return snapshot, f"Current branch {name} is up to date."

        start = next_timestamp(snapshot, self._now())
        working = snapshot
        parent = target
        for offset, original in enumerate(to_replay):
            copy = Commit(
                id=self._new_id(working),
                message=original.message,
                first_parent=parent,
                timestamp=start + offset,
                author=original.author,
            )
            working = working.with_commits(copy)
            parent = copy.id
        done = f"Successfully rebased and updated refs/heads/{name}."
        return working.with_branch(name, parent), done

    # -- Refs --

    def _tag(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        args = command.positional()
        if not args:
            raise UsageError("fatal: tag name required")
        name = args[0]
        _validate_ref_name(name, "tag")
        if snapshot.tag(name) is not None:
            raise UsageError(f"fatal: tag '{name}' already exists")
        if len(args) > 1:
            target = self._resolve(snapshot, args[1])
        else:
            commit = head_commit(snapshot)
            if commit is None:
                raise PreconditionError("fatal: Failed to resolve 'HEAD' as a valid ref.")
            target = commit.id
        return snapshot.with_tag(name, target), f"Created tag {name}"

    # -- Remotes --

    def _remote(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        words = command.words
        sub = words[0] if words else None
        if sub == "add":
            if len(words) < 3:
                raise UsageError("usage: git remote add <name> <url>")
            return snapshot, f"Added remote '{words[1]}' as '{words[2]}'"
        if sub in ("-v", "--verbose"):
            return snapshot, (
                f"{REMOTE_NAME}  {LISTED_REMOTE_URL} (fetch)\n"
                f"{REMOTE_NAME}  {LISTED_REMOTE_URL} (push)"
            )
        if sub == "get-url":
            return snapshot, LISTED_REMOTE_URL
        if sub is None:
            has_remote = any(b.is_remote for b in snapshot.branches)
            return snapshot, REMOTE_NAME if has_remote else ""
        raise UsageError("usage: git remote [-v] | add <name> <url> | get-url <name>")

    def _clone(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        args = command.positional()
        directory = "project"
        if args:
            tail = args[0].rstrip("/").rsplit("/", 1)[-1].removesuffix(".git")
            directory = tail or directory
        output = (
            f"Cloning into '{directory}'...\n"
            "Remote: Enumerating objects: 5, done.\n"
            "Remote: Total 5 (delta 0), reused 0 (delta 0)\n"
            "Unpacking objects: 100% (5/5), done."
        )
        return cloned_snapshot(self._now()), output

    def _fetch(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        remote = snapshot.branch(REMOTE_MAIN)
        if remote is None:
            raise PreconditionError("No remote found")
        commit = self._new_commit(
            snapshot, "Remote update", remote.commit_id, author=REMOTE_AUTHOR
        )
        new_snapshot = snapshot.with_commits(commit).with_branch(REMOTE_MAIN, commit.id)
        output = (
            f"From {REMOTE_URL}\n"
            f"   {_short(remote.commit_id)}..{_short(commit.id)}  main       -> {REMOTE_MAIN}"
        )
        return new_snapshot, output

    def _pull(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        # Always integrates origin/main, whatever branch is checked out.
        fetched, fetch_output = self._fetch(command, snapshot)
        merged, merge_output = self._merge_ref(fetched, REMOTE_MAIN)
        return merged, f"{fetch_output}\n{merge_output}"

    def _push(self, command: ParsedCommand, snapshot: Snapshot) -> tuple[Snapshot, str]:
        args = command.positional()
        remote = args[0] if args else REMOTE_NAME
        if remote != REMOTE_NAME:
            raise PreconditionError(
                f"fatal: '{remote}' does not appear to be a git repository"
            )

        current = self._require_branch(snapshot, "fatal: You are not currently on a branch.")
        name = args[1] if len(args) > 1 else "HEAD"
        if name == "HEAD":
            name = current
        branch = snapshot.branch(name)
        if branch is None or branch.is_remote:
            raise UsageError(f"error: src refspec {name} does not match any")

        remote_name = REMOTE_PREFIX + name
        tracking = snapshot.branch(remote_name)
        if tracking is not None and tracking.commit_id == branch.commit_id:
            return snapshot, "Everything up-to-date"
        if tracking is not None:
            if not is_ancestor(snapshot, tracking.commit_id, branch.commit_id):
                raise PushRejected(name)
            update = f"   {_short(tracking.commit_id)}..{_short(branch.commit_id)}  {name} -> {name}"
        else:
            update = f" * [new branch]      {name} -> {name}"

        lines = ["Enumerating objects: 3, done.", f"To {REMOTE_URL}.git", update]
        if command.has_flag("-u", "--set-upstream"):
            lines.append(f"branch '{name}' set up to track '{remote_name}'.")
        return snapshot.with_branch(remote_name, branch.commit_id), "\n".join(lines)


_default_engine: Engine | None = None


def default_engine() -> Engine:
    """The shared engine used by ``execute``."""
    global _default_engine
    if _default_engine is None:
        _default_engine = Engine()
    return _default_engine


def execute(text: str, snapshot: Snapshot) -> CommandResult:
    """Run ``text`` against ``snapshot`` with the default engine."""
    return default_engine().execute(text, snapshot)
