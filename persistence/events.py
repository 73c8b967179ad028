from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    """
    Published after every save/clear. Values are the raw serialized envelopes, like a browser StorageEvent;
    `new_value` is None when the key was cleared.
    """

    key: str
    old_value: str | None
    new_value: str | None

    @property
    def cleared(self) -> bool:
        return self.new_value is None


Listener = Callable[[ChangeEvent], None]


class ChangeNotifier:
    """
    In-process publish/subscribe channel keyed by store key.

    Delivery is synchronous and best-effort: a failing listener is logged and the remaining listeners still run.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[tuple[str | None, Listener]] = []

    def subscribe(self, listener: Listener, *, key: str | None = None) -> Callable[[], None]:
        """Register `listener` for one key (or every key when `key` is None). Returns an unsubscribe callable."""
        entry = (key, listener)
        with self._lock:
            self._listeners.append(entry)

        def _unsubscribe() -> None:
            with self._lock:
                if entry in self._listeners:
                    self._listeners.remove(entry)

        return _unsubscribe

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            targets = [fn for k, fn in self._listeners if k is None or k == event.key]
        for fn in targets:
            try:
                fn(event)
            except Exception as e:
                logger.warning("STATE EVENT: listener %r failed for key %r: %r", fn, event.key, e)

    def listener_count(self, key: str | None = None) -> int:
        with self._lock:
            if key is None:
                return len(self._listeners)
            return sum(1 for k, _ in self._listeners if k == key)
