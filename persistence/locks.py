from __future__ import annotations

import threading
from pathlib import Path


class LockRegistry:
    """
    Hands out one stable lock per name (a normalized file path or a store key).
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, name: str | Path) -> threading.Lock:
        key = str(name.resolve()) if isinstance(name, Path) else name
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


GLOBAL_PATH_LOCKS = LockRegistry()
