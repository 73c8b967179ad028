from __future__ import annotations

import asyncio
from typing import Any, Iterable, Mapping, Sequence

from .envelope import StoredRecord
from .state_manager import BatchOperation, ReloadHook, StateManager, Validator


class AsyncStateManager:
    """
    Async wrapper around StateManager.
    Uses asyncio.to_thread to avoid blocking the event loop on backend I/O.
    """

    def __init__(self, manager: StateManager) -> None:
        self._manager = manager

    @property
    def manager(self) -> StateManager:
        return self._manager

    async def save(self, key: str, value: Any, validator: Validator | None = None) -> bool:
        return await asyncio.to_thread(self._manager.save, key, value, validator)

    async def load(self, key: str, default: Any, validator: Validator | None = None) -> Any:
        return await asyncio.to_thread(self._manager.load, key, default, validator)

    async def load_record(self, key: str) -> StoredRecord | None:
        return await asyncio.to_thread(self._manager.load_record, key)

    async def has(self, key: str) -> bool:
        return await asyncio.to_thread(self._manager.has, key)

    async def clear(self, key: str) -> bool:
        return await asyncio.to_thread(self._manager.clear, key)

    async def save_batch(self, operations: Iterable[BatchOperation | Mapping[str, Any]]) -> bool:
        return await asyncio.to_thread(self._manager.save_batch, list(operations))

    async def keys_with_prefix(self, prefix: str) -> list[str]:
        return await asyncio.to_thread(self._manager.keys_with_prefix, prefix)

    async def clear_all_with_prefix(self, prefix: str) -> bool:
        return await asyncio.to_thread(self._manager.clear_all_with_prefix, prefix)

    async def export_configuration(self, keys: Sequence[str] | None = None) -> str:
        return await asyncio.to_thread(self._manager.export_configuration, keys)

    async def import_configuration(self, raw: str, *, on_reload: ReloadHook | None = None) -> bool:
        return await asyncio.to_thread(self._manager.import_configuration, raw, on_reload=on_reload)
