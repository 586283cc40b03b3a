"""Session: the learner's sandbox around the engine.

Holds the current snapshot, the display log, the command history and an
undo/redo history, and persists them to a ``KVStore`` after every change.
"""

import json
import logging
from dataclasses import dataclass
from typing import Callable, Literal

from .engine import CommandResult, Engine
from .kv.base import KVStore
from .kv.memory import Memory
from .model import Snapshot, initial_snapshot

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "__snapshot__%s"
LOG_KEY = "__log__%s"
COMMANDS_KEY = "__commands__%s"
HISTORY_KEY = "__history__%s"
POSITION_KEY = "__position__%s"

CLEAR_COMMAND = "clear"

LogType = Literal["command", "output", "error", "success", "info"]


def _to_bytes(obj) -> bytes:
    """Encode a JSON-safe Python object to bytes."""
    return json.dumps(obj, separators=(",", ":")).encode()


def _from_bytes(raw: bytes):
    """Decode bytes to a Python object."""
    return json.loads(raw)


@dataclass(frozen=True)
class LogEntry:
    """One line group in the terminal display."""

    type: LogType
    text: str


@dataclass(frozen=True)
class HistoryEntry:
    """An undo point: the snapshot and the display log at that step."""

    snapshot: Snapshot
    logs: tuple[LogEntry, ...]


@dataclass(frozen=True)
class Lesson:
    """A practice task supplied by the caller.

    ``check_success`` is evaluated against the session snapshot after each
    command; the engine itself knows nothing about lessons.
    """

    id: str
    title: str
    task: str
    initial_state: Snapshot
    check_success: Callable[[Snapshot], bool]
    hint: str = ""
    section: str = ""
    description: str = ""


PRACTICE_LESSON = Lesson(
    id="practice",
    title="Git Sandbox",
    task="Experiment freely",
    initial_state=initial_snapshot(),
    check_success=lambda snapshot: False,
    hint="Try git commit, git branch, git log",
    section="Playground",
    description="A safe environment to experiment with any Git command.",
)


def _logs_to_json(logs) -> list[dict]:
    return [{"type": e.type, "text": e.text} for e in logs]


def _logs_from_json(raw: list[dict]) -> list[LogEntry]:
    return [LogEntry(e["type"], e["text"]) for e in raw]


class Session:
    """A single learner's sandbox.

    Args:
        store: Where session state is persisted (default: in-memory).
            If the store already holds a session under ``name``, it is
            loaded instead of starting fresh.
        name: Key namespace inside the store.
        engine: Command engine (default: a new ``Engine``).
        initial: Starting snapshot (default: the engine's ``git init`` state).
        max_undo: Undo points kept, oldest dropped first.
        max_commands: Command history entries kept, oldest dropped first.
    """

    def __init__(
        self,
        store: KVStore | None = None,
        *,
        name: str = "default",
        engine: Engine | None = None,
        initial: Snapshot | None = None,
        max_undo: int = 50,
        max_commands: int = 100,
    ) -> None:
        if max_undo < 1:
            raise ValueError(f"max_undo must be at least 1, got {max_undo}")
        if max_commands < 1:
            raise ValueError(f"max_commands must be at least 1, got {max_commands}")
        self.store = store if store is not None else Memory()
        self.name = name
        self.engine = engine or Engine()
        self.max_undo = max_undo
        self.max_commands = max_commands
        self.lesson: Lesson | None = None
        self._commands: list[str] = []

        if SNAPSHOT_KEY % name in self.store:
            self._load()
        else:
            start = initial if initial is not None else self.engine.initial()
            self._reset_to(start, [])

    def __repr__(self) -> str:
        return (
            f"Session(name={self.name!r}, commits={len(self.snapshot.commits)}, "
            f"undo={self._position}/{len(self._history) - 1})"
        )

    # -- State --

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def logs(self) -> list[LogEntry]:
        return list(self._logs)

    @property
    def commands(self) -> list[str]:
        """Previously entered command lines, oldest first."""
        return list(self._commands)

    @property
    def can_undo(self) -> bool:
        return self._position > 0

    @property
    def can_redo(self) -> bool:
        return self._position < len(self._history) - 1

    # -- Commands --

    def run(self, text: str) -> CommandResult:
        """Run a command line and record it.

        Failed commands are recorded in the command history and the log
        too, but leave the snapshot untouched.
        """
        line = text.strip()
        if not line:
            return CommandResult(self._snapshot, "", True)

        self._commands.append(line)
        del self._commands[: -self.max_commands]

        if line == CLEAR_COMMAND:
            self._logs = []
            self._save()
            return CommandResult(self._snapshot, "", True)

        result = self.engine.execute(line, self._snapshot)
        self._logs.append(LogEntry("command", line))
        self._logs.append(LogEntry("success" if result else "error", result.output))
        self._snapshot = result.snapshot
        self._push_history()
        self._save()
        return result

    def undo(self) -> bool:
        """Step back to the previous undo point. False if there is none."""
        if not self.can_undo:
            return False
        self._position -= 1
        self._restore_position()
        logger.debug("Session %s undo to %d", self.name, self._position)
        return True

    def redo(self) -> bool:
        """Step forward again after ``undo``. False if there is nothing to redo."""
        if not self.can_redo:
            return False
        self._position += 1
        self._restore_position()
        logger.debug("Session %s redo to %d", self.name, self._position)
        return True

    # -- Lessons --

    def start_lesson(self, lesson: Lesson) -> None:
        self.lesson = lesson
        self._reset_to(lesson.initial_state, [LogEntry("info", f"Started: {lesson.title}")])

    def reset_lesson(self) -> None:
        """Reload the current lesson's initial state."""
        if self.lesson is None:
            raise ValueError("No lesson in progress")
        self._reset_to(
            self.lesson.initial_state, [LogEntry("info", f"Reset: {self.lesson.title}")]
        )

    def is_complete(self) -> bool:
        if self.lesson is None:
            return False
        return bool(self.lesson.check_success(self._snapshot))

    # -- Internal --

    def _reset_to(self, snapshot: Snapshot, logs: list[LogEntry]) -> None:
        self._snapshot = snapshot
        self._logs = list(logs)
        self._history: list[HistoryEntry] = [HistoryEntry(snapshot, tuple(logs))]
        self._position = 0
        self._save()

    def _push_history(self) -> None:
        # A new step discards anything that could have been redone.
        del self._history[self._position + 1 :]
        self._history.append(HistoryEntry(self._snapshot, tuple(self._logs)))
        del self._history[: -self.max_undo]
        self._position = len(self._history) - 1

    def _restore_position(self) -> None:
        entry = self._history[self._position]
        self._snapshot = entry.snapshot
        self._logs = list(entry.logs)
        self._save()

    def _save(self) -> None:
        name = self.name
        self.store.set_many(
            **{
                SNAPSHOT_KEY % name: _to_bytes(self._snapshot.to_dict()),
                LOG_KEY % name: _to_bytes(_logs_to_json(self._logs)),
                COMMANDS_KEY % name: _to_bytes(self._commands),
                HISTORY_KEY % name: _to_bytes(
                    [
                        {"snapshot": e.snapshot.to_dict(), "logs": _logs_to_json(e.logs)}
                        for e in self._history
                    ]
                ),
                POSITION_KEY % name: _to_bytes(self._position),
            }
        )
        logger.debug("Saved session %s", name)

    def _load(self) -> None:
        name = self.name

        def read(pattern: str, default):
            raw = self.store.get(pattern % name)
            return _from_bytes(raw) if raw is not None else default

        self._snapshot = Snapshot.from_dict(read(SNAPSHOT_KEY, {}))
        self._logs = _logs_from_json(read(LOG_KEY, []))
        self._commands = list(read(COMMANDS_KEY, []))
        self._history = [
            HistoryEntry(Snapshot.from_dict(e["snapshot"]), tuple(_logs_from_json(e["logs"])))
            for e in read(HISTORY_KEY, [])
        ]
        if not self._history:
            self._history = [HistoryEntry(self._snapshot, tuple(self._logs))]
        self._position = min(read(POSITION_KEY, 0), len(self._history) - 1)
        logger.debug("Loaded session %s", name)
