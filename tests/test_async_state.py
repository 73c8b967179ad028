from __future__ import annotations

import asyncio
import json

from persistence import AsyncStateManager, BatchOperation


def test_async_state_manager_basic_flow(manager):
    async def _run():
        store = AsyncStateManager(manager)

        assert await store.save("employees", [{"id": "emp-1"}]) is True
        assert await store.has("employees") is True
        assert await store.load("employees", []) == [{"id": "emp-1"}]
        record = await store.load_record("employees")
        assert record is not None and record.is_current

        assert await store.save_batch([BatchOperation("a.1", 1), BatchOperation("a.2", 2)]) is True
        assert sorted(await store.keys_with_prefix("a.")) == ["a.1", "a.2"]
        assert await store.clear_all_with_prefix("a.") is True
        assert await store.keys_with_prefix("a.") == []

        assert await store.clear("employees") is True
        assert await store.load("employees", "default") == "default"

    asyncio.run(_run())


def test_async_configuration_bundle(manager):
    async def _run():
        store = AsyncStateManager(manager)
        reloaded = []

        await store.save("kpiDefinitions", [{"id": "productivity"}])
        text = await store.export_configuration(["kpiDefinitions"])
        assert json.loads(text) == {"kpiDefinitions": [{"id": "productivity"}]}

        await store.clear("kpiDefinitions")
        assert await store.import_configuration(text, on_reload=reloaded.append) is True
        assert await store.load("kpiDefinitions", []) == [{"id": "productivity"}]
        assert reloaded == [["kpiDefinitions"]]

    asyncio.run(_run())
