from __future__ import annotations

import logging
from typing import Any, Callable, Generic, TypeVar

from .events import ChangeEvent
from .state_manager import StateManager, Validator

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PersistentState(Generic[T]):
    """
    A single stored value kept in sync with its key.

    Reads once on construction, writes through on `set`, and re-reads whenever another writer
    (sharing the same StateManager notifier) saves or clears the key. Use as a context manager,
    or call `close()`, to stop listening.
    """

    def __init__(self, manager: StateManager, key: str, default: T, *, validator: Validator | None = None):
        self._manager = manager
        self._key = key
        self._default = default
        self._validator = validator
        self.error: str | None = None
        self._value: T = manager.load(key, default, validator)
        self._unsubscribe: Callable[[], None] | None = manager.notifier.subscribe(self._on_change, key=key)

    @property
    def key(self) -> str:
        return self._key

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T | Callable[[T], T]) -> bool:
        new_value = value(self._value) if callable(value) else value

        if self._validator is not None and not self._manager.validate_data(new_value, self._validator):
            self.error = "Invalid data provided"
            return False

        self._value = new_value
        if not self._manager.save(self._key, new_value):
            self.error = f"Failed to save data for {self._key!r}"
            return False
        self.error = None
        return True

    def reset(self) -> bool:
        """Clear the stored value and fall back to the default."""
        self._value = self._default
        return self._manager.clear(self._key)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __enter__(self) -> "PersistentState[T]":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _on_change(self, event: ChangeEvent) -> None:
        if event.cleared:
            self._value = self._default
            return
        self._value = self._manager.load(self._key, self._default, self._validator)
