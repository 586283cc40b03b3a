"""In-memory KV store."""

import threading
from typing import Iterable

from .base import KVStore


class Memory(KVStore):
    """A memory-backed KV store. The default for sessions.

    Every operation takes the same lock, so a reader never sees half of a
    ``set_many``.
    """

    def __init__(self) -> None:
        self.memory: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self.memory.get(key)

    def set(self, key: str, value: bytes) -> None:
        if not isinstance(value, bytes):
            raise TypeError(f"Expected bytes, got {type(value).__name__}")
        with self._lock:
            self.memory[key] = value

    def set_many(self, **kwargs: bytes) -> None:
        for key, value in kwargs.items():
            if not isinstance(value, bytes):
                raise TypeError(f"Expected bytes for {key}, got {type(value).__name__}")
        with self._lock:
            self.memory.update(kwargs)

    def keys(self) -> Iterable[str]:
        with self._lock:
            return list(self.memory.keys())

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self.memory

    def remove(self, key: str) -> None:
        with self._lock:
            self.memory.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self.memory.clear()
