from __future__ import annotations

import json
import threading
from datetime import datetime, timezone

from persistence import (
    CURRENT_VERSION,
    BatchOperation,
    ChangeNotifier,
    InMemoryBackend,
    StateManager,
)


def _is_user(value):
    return bool(value["name"]) and value["age"] > 0


def test_save_then_load_roundtrip(manager):
    data = {"test": "value", "number": 42, "nested": {"items": [1, 2, 3]}}

    assert manager.save("roundtrip", data) is True
    assert manager.load("roundtrip", None) == data


def test_saved_document_is_versioned_envelope(manager, backend):
    manager.save("k", {"a": 1})

    doc = json.loads(backend.get_item("k"))
    assert doc["version"] == CURRENT_VERSION
    assert doc["payload"] == {"a": 1}
    assert doc["savedAt"].endswith("Z")


def test_load_returns_default_for_missing_key(manager):
    fallback = {"fallback": True}
    assert manager.load("nope", fallback) is fallback
    assert manager.has("nope") is False


def test_load_returns_default_for_corrupted_json(manager, backend):
    backend.set_item("broken", "{not json")

    assert manager.load("broken", "default") == "default"
    assert manager.load_record("broken") is None


def test_save_rejected_by_validator_leaves_store_untouched(manager, backend):
    assert manager.save("user", {"name": "", "age": 30}, _is_user) is False
    assert backend.get_item("user") is None

    manager.save("user", {"name": "Ann", "age": 30}, _is_user)
    assert manager.save("user", {"name": "Bob", "age": -1}, _is_user) is False
    assert manager.load("user", None) == {"name": "Ann", "age": 30}


def test_load_with_failing_validator_returns_default(manager):
    manager.save("user", {"name": "Ann", "age": 0})

    assert manager.load("user", "default", _is_user) == "default"
    assert manager.load("user", "default") == {"name": "Ann", "age": 0}


def test_validate_data_treats_raising_validator_as_invalid(manager):
    assert manager.validate_data({"name": "Ann", "age": 3}, _is_user) is True
    assert manager.validate_data({}, _is_user) is False


def test_legacy_unversioned_document_is_returned_whole(manager, backend):
    backend.set_item("legacy", json.dumps({"theme": "dark"}))
    backend.set_item("legacy-list", "[1, 2, 3]")

    assert manager.load("legacy", None) == {"theme": "dark"}
    assert manager.load("legacy-list", None) == [1, 2, 3]


def test_browser_envelope_shape_is_understood(manager, backend):
    backend.set_item(
        "browser",
        json.dumps({"_version": "1.0.0", "data": {"a": 1}, "timestamp": "2024-01-01T00:00:00.000Z"}),
    )

    assert manager.load("browser", None) == {"a": 1}
    record = manager.load_record("browser")
    assert record is not None
    assert record.saved_at == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_dates_are_revived_on_load(manager):
    aware = datetime(2024, 3, 1, 10, 0, 0, 123000, tzinfo=timezone.utc)
    naive = datetime(2024, 1, 2, 3, 4, 5)

    manager.save("dates", {"createdAt": aware, "local": naive, "text": "2024-03-01T10:00:00.000Z", "plain": "hello"})

    loaded = manager.load("dates", None)
    assert loaded["createdAt"] == aware
    assert loaded["local"] == naive
    assert loaded["text"] == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
    assert loaded["plain"] == "hello"


def test_unserializable_values_fail_without_raising(manager, backend):
    assert manager.save("obj", object()) is False
    assert manager.save("nan", float("nan")) is False
    assert backend.keys() == []


def test_quota_exceeded_save_returns_false():
    backend = InMemoryBackend(quota_bytes=120)
    manager = StateManager(backend)

    assert manager.save("small", "x") is True
    assert manager.save("big", "x" * 500) is False
    assert manager.load("big", None) is None
    assert manager.load("small", None) == "x"


def test_clear_removes_key(manager):
    manager.save("k", 1)

    assert manager.clear("k") is True
    assert manager.has("k") is False
    assert manager.load("k", "gone") == "gone"
    assert manager.clear("never-set") is True


def test_save_batch_is_not_atomic(manager):
    ok = manager.save_batch(
        [
            BatchOperation("a", 1),
            BatchOperation("b", 2, lambda v: False),
            {"key": "c", "data": 3},
        ]
    )

    assert ok is False
    assert manager.load("a", None) == 1
    assert manager.load("b", None) is None
    assert manager.load("c", None) == 3


def test_save_batch_all_succeed(manager):
    assert manager.save_batch([{"key": "x", "value": [1]}, {"key": "y", "value": {"z": 2}}]) is True
    assert manager.load("y", None) == {"z": 2}


def test_save_batch_malformed_operation_counts_as_failure(manager):
    assert manager.save_batch([{"value": 1}, {"key": "ok", "value": 2}]) is False
    assert manager.load("ok", None) == 2


def test_keys_with_prefix_and_clear_all(manager):
    manager.save("dash.a", 1)
    manager.save("dash.b", 2)
    manager.save("other", 3)

    assert sorted(manager.keys_with_prefix("dash.")) == ["dash.a", "dash.b"]
    assert manager.clear_all_with_prefix("dash.") is True
    assert manager.keys_with_prefix("dash.") == []
    assert manager.load("other", None) == 3


def test_export_then_import_restores_values(manager):
    manager.save("brandingConfig", {"name": "Acme", "colors": ["#fff"]})
    manager.save("sidebarConfig", {"collapsed": True})
    manager.save("unrelated", 1)

    text = manager.export_configuration()
    assert json.loads(text) == {
        "brandingConfig": {"name": "Acme", "colors": ["#fff"]},
        "sidebarConfig": {"collapsed": True},
    }
    assert text.startswith('{\n  "brandingConfig"')

    manager.clear("brandingConfig")
    manager.clear("sidebarConfig")
    assert manager.import_configuration(text) is True
    assert manager.load("brandingConfig", None) == {"name": "Acme", "colors": ["#fff"]}
    assert manager.load("sidebarConfig", None) == {"collapsed": True}


def test_export_explicit_keys_skips_missing(manager):
    manager.save("a", 1)

    assert json.loads(manager.export_configuration(["a", "missing"])) == {"a": 1}


def test_import_rejects_bad_documents(manager, backend):
    assert manager.import_configuration("{oops") is False
    assert manager.import_configuration("[1, 2]") is False
    assert backend.keys() == []


def test_import_runs_reload_hook_with_imported_keys(backend):
    calls = []
    manager = StateManager(backend, reload_hook=calls.append, reload_delay=0)

    assert manager.import_configuration(json.dumps({"a": 1, "b": 2})) is True
    assert calls == [["a", "b"]]


def test_import_reload_hook_is_delayed(backend):
    fired = threading.Event()
    seen = []

    def _hook(keys):
        seen.extend(keys)
        fired.set()

    manager = StateManager(backend, reload_delay=0.05)
    assert manager.import_configuration(json.dumps({"a": 1}), on_reload=_hook) is True
    assert fired.wait(2)
    assert seen == ["a"]


def test_failing_reload_hook_does_not_break_import(backend):
    def _hook(keys):
        raise RuntimeError("boom")

    manager = StateManager(backend, reload_hook=_hook, reload_delay=0)
    assert manager.import_configuration(json.dumps({"a": 1})) is True
    assert manager.load("a", None) == 1


def test_migration_upgrades_and_resaves(backend):
    backend.set_item(
        "profile",
        json.dumps({"version": "0.9.0", "payload": {"name": "x"}, "savedAt": "2023-01-01T00:00:00.000Z"}),
    )
    manager = StateManager(backend)
    manager.register_migration("0.9.0", lambda p: {**p, "migrated": True})

    assert manager.load("profile", None) == {"name": "x", "migrated": True}
    assert manager.load_record("profile").version == CURRENT_VERSION


def test_unknown_version_is_used_as_is(manager, backend):
    backend.set_item("future", json.dumps({"version": "9.0.0", "payload": [1], "savedAt": None}))

    assert manager.load("future", None) == [1]
    assert manager.load_record("future").version == "9.0.0"


def test_injected_clock_sets_saved_at(backend):
    at = datetime(2025, 1, 1, tzinfo=timezone.utc)
    manager = StateManager(backend, clock=lambda: at)

    manager.save("k", "v")
    assert manager.load_record("k").saved_at == at


def test_change_events_are_published(backend):
    notifier = ChangeNotifier()
    manager = StateManager(backend, notifier=notifier)
    events = []
    unsubscribe = notifier.subscribe(events.append, key="watched")

    manager.save("watched", 1)
    manager.save("ignored", 2)
    manager.save("watched", 3)
    manager.clear("watched")

    assert [e.key for e in events] == ["watched", "watched", "watched"]
    assert events[0].old_value is None
    assert events[1].old_value == events[0].new_value
    assert events[2].cleared

    unsubscribe()
    manager.save("watched", 4)
    assert len(events) == 3
    assert notifier.listener_count() == 0


def test_failing_listener_does_not_block_others(manager):
    seen = []

    def _bad(event):
        raise RuntimeError("listener failure")

    manager.notifier.subscribe(_bad)
    manager.notifier.subscribe(seen.append)

    assert manager.save("k", 1) is True
    assert [e.key for e in seen] == ["k"]


def test_clear_then_load_returns_none(manager):
    assert manager.save("testUser", {"name": "John", "age": 30}) is True

    assert manager.clear("testUser") is True
    assert manager.load("testUser", None) is None


def test_concurrent_writers_last_writer_wins(backend):
    first = StateManager(backend)
    second = StateManager(backend)

    assert first.save("k", {"a": 1}) is True
    assert second.save("k", {"b": 2}) is True

    assert first.load("k", None) == {"b": 2}
    assert second.load("k", None) == {"b": 2}
