from __future__ import annotations

import threading

from .errors import QuotaExceededError, StorageError
from .interfaces import StorageBackend


class InMemoryBackend(StorageBackend):
    """
    Dict-backed store for tests and for deployments without a writable disk.

    `quota_bytes` caps the total UTF-8 size of keys plus values, like a browser storage quota.
    """

    def __init__(self, initial: dict[str, str] | None = None, *, quota_bytes: int | None = None):
        self._lock = threading.Lock()
        self._items: dict[str, str] = dict(initial or {})
        self._quota = quota_bytes

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if not key:
            raise StorageError("key must be a non-empty string")
        with self._lock:
            if self._quota is not None:
                others = sum(_size(k, v) for k, v in self._items.items() if k != key)
                needed = others + _size(key, value)
                if needed > self._quota:
                    raise QuotaExceededError(key, needed, self._quota)
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._items)

    def used_bytes(self) -> int:
        with self._lock:
            return sum(_size(k, v) for k, v in self._items.items())


def _size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))
