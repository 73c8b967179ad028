from __future__ import annotations

from .async_state import AsyncStateManager
from .disk_store import DiskBackend
from .envelope import CURRENT_VERSION, StoredRecord
from .errors import QuotaExceededError, StorageError
from .events import ChangeEvent, ChangeNotifier
from .interfaces import StorageBackend
from .memory_store import InMemoryBackend
from .persistent_state import PersistentState
from .state_manager import DEFAULT_CONFIGURATION_KEYS, BatchOperation, StateManager

__all__ = [
    "AsyncStateManager",
    "BatchOperation",
    "ChangeEvent",
    "ChangeNotifier",
    "CURRENT_VERSION",
    "DEFAULT_CONFIGURATION_KEYS",
    "DiskBackend",
    "InMemoryBackend",
    "PersistentState",
    "QuotaExceededError",
    "StateManager",
    "StorageBackend",
    "StorageError",
    "StoredRecord",
]
