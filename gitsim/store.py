"""Session factory function."""

from .engine import Engine
from .model import Snapshot
from .session import Session


def session(
    storage: str = "memory",
    *,
    path: str | None = None,
    name: str = "default",
    engine: Engine | None = None,
    initial: Snapshot | None = None,
    max_undo: int = 50,
    max_commands: int = 100,
) -> Session:
    """Create a Session with sensible defaults.

    Args:
        storage: ``"memory"`` (default) or ``"disk"``.
        path: Required when ``storage="disk"``. Directory path for
            the disk backend. Reopening the same path resumes the
            session stored under ``name``.
        name: Session name inside the store (default ``"default"``).
        engine: Command engine (default: a new ``Engine``).
        initial: Starting snapshot for a new session (default: the
            ``git init`` state).
        max_undo: Undo points kept (default 50).
        max_commands: Command history entries kept (default 100).

    Returns:
        A ``Session`` instance.
    """
    # Build backend
    if storage == "memory":
        from .kv.memory import Memory

        backend = Memory()
    elif storage == "disk":
        if path is None:
            raise ValueError("path is required when storage='disk'")
        from .kv.disk import Disk

        backend = Disk(path)
    else:
        raise ValueError(f"Unknown storage: {storage!r}")

    return Session(
        backend,
        name=name,
        engine=engine,
        initial=initial,
        max_undo=max_undo,
        max_commands=max_commands,
    )
