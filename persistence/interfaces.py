from __future__ import annotations

from typing import Protocol


class StorageBackend(Protocol):
    """
    Minimal string-to-string store, shaped like the browser's localStorage.
    """

    def get_item(self, key: str) -> str | None:
        """Return the raw stored string, or None when the key is absent."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Persist `value` under `key`, replacing any previous value."""
        ...

    def remove_item(self, key: str) -> None:
        """Remove `key`. Removing an absent key is a no-op."""
        ...

    def keys(self) -> list[str]:
        ...
