from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Sequence, TypeVar

import json_store

from .envelope import CURRENT_VERSION, StoredRecord
from .events import ChangeEvent, ChangeNotifier
from .interfaces import StorageBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")

Validator = Callable[[Any], bool]
Migration = Callable[[Any], Any]
ReloadHook = Callable[[list[str]], None]

# Keys the dashboard treats as "configuration" (exported/imported as a bundle).
DEFAULT_CONFIGURATION_KEYS: tuple[str, ...] = (
    "brandingConfig",
    "divisionColors",
    "dashboardConfig",
    "performanceConfig",
    "sidebarConfig",
    "kpiDefinitions",
    "divisionKPIConfigs",
    "pageCustomizations",
)


@dataclass
class BatchOperation:
    key: str
    value: Any
    validator: Validator | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StateManager:
    """
    Versioned, validated key-value persistence over a StorageBackend.

    No public method raises: storage failures, corrupted documents and rejected validations are
    logged and turned into False (writes) or the caller's default (reads).

    Concurrent writers to the same key are last-writer-wins; there is no locking or conflict detection.
    """

    def __init__(
        self,
        backend: StorageBackend,
        *,
        notifier: ChangeNotifier | None = None,
        migrations: Mapping[str, Migration] | None = None,
        reload_hook: ReloadHook | None = None,
        reload_delay: float = 1.0,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._backend = backend
        self._notifier = notifier if notifier is not None else ChangeNotifier()
        self._migrations: dict[str, Migration] = dict(migrations or {})
        self._reload_hook = reload_hook
        self._reload_delay = reload_delay
        self._clock = clock

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    @property
    def notifier(self) -> ChangeNotifier:
        return self._notifier

    def register_migration(self, from_version: str, migration: Migration) -> None:
        """Upgrade payloads saved under `from_version` to the current shape when they are read."""
        self._migrations[from_version] = migration

    # ------------------------------------------------------------------
    # Single-key operations
    # ------------------------------------------------------------------
    def save(self, key: str, value: Any, validator: Validator | None = None) -> bool:
        if validator is not None and not self.validate_data(value, validator):
            logger.warning("STATE SAVE: validation failed for key %r", key)
            return False

        try:
            if not isinstance(key, str) or not key:
                raise ValueError("key must be a non-empty string")
            record = StoredRecord.wrap(value, saved_at=self._clock())
            raw = json_store.dumps(record.to_disk_doc())
            old = self._backend.get_item(key)
            self._backend.set_item(key, raw)
        except Exception as e:
            logger.error("STATE SAVE: failed for key %r: %r", key, e)
            return False

        self._notifier.publish(ChangeEvent(key=key, old_value=old, new_value=raw))
        return True

    def load(self, key: str, default: T, validator: Validator | None = None) -> T | Any:
        try:
            raw = self._backend.get_item(key)
            if not raw:
                return default
            payload, migrated = self._unwrap(key, json_store.loads(raw))
        except Exception as e:
            logger.error("STATE LOAD: failed for key %r, using default value: %r", key, e)
            return default

        if validator is not None and not self.validate_data(payload, validator):
            logger.warning("STATE LOAD: invalid data for key %r, using default value", key)
            return default

        if migrated:
            # Persist the upgraded shape so later reads skip the migration.
            self.save(key, payload)
        return payload

    def load_record(self, key: str) -> StoredRecord | None:
        """Return the raw envelope (version and save time included), or None when absent/unreadable/legacy."""
        try:
            raw = self._backend.get_item(key)
            if not raw:
                return None
            return StoredRecord.from_disk_doc(json_store.loads(raw))
        except Exception as e:
            logger.error("STATE LOAD: failed to read envelope for key %r: %r", key, e)
            return None

    def has(self, key: str) -> bool:
        try:
            return bool(self._backend.get_item(key))
        except Exception as e:
            logger.error("STATE LOAD: failed to check key %r: %r", key, e)
            return False

    def clear(self, key: str) -> bool:
        try:
            old = self._backend.get_item(key)
            self._backend.remove_item(key)
        except Exception as e:
            logger.error("STATE CLEAR: failed for key %r: %r", key, e)
            return False

        self._notifier.publish(ChangeEvent(key=key, old_value=old, new_value=None))
        return True

    def validate_data(self, value: Any, validator: Validator) -> bool:
        try:
            return bool(validator(value))
        except Exception as e:
            logger.error("STATE VALIDATE: validator raised: %r", e)
            return False

    # ------------------------------------------------------------------
    # Multi-key operations
    # ------------------------------------------------------------------
    def save_batch(self, operations: Iterable[BatchOperation | Mapping[str, Any]]) -> bool:
        """
        Save each operation in order. Returns True only if every save succeeded.

        Not atomic: earlier successful writes stay committed when a later one fails.
        """
        failed: list[str] = []
        total = 0
        for op in operations:
            total += 1
            try:
                key, value, validator = _coerce_operation(op)
            except (KeyError, TypeError) as e:
                logger.error("STATE BATCH: malformed operation %r: %r", op, e)
                failed.append(repr(op))
                continue
            if not self.save(key, value, validator):
                failed.append(key)

        if failed:
            logger.warning("STATE BATCH: %d of %d saves failed: %s", len(failed), total, failed)
        return not failed

    def keys_with_prefix(self, prefix: str) -> list[str]:
        try:
            return [k for k in self._backend.keys() if k.startswith(prefix)]
        except Exception as e:
            logger.error("STATE KEYS: failed to list keys with prefix %r: %r", prefix, e)
            return []

    def clear_all_with_prefix(self, prefix: str) -> bool:
        results = [self.clear(k) for k in self.keys_with_prefix(prefix)]
        return all(results)

    # ------------------------------------------------------------------
    # Configuration bundles
    # ------------------------------------------------------------------
    def export_configuration(self, keys: Sequence[str] | None = None) -> str:
        """
        Serialize {key: payload} for every listed key that has a value, as pretty-printed JSON
        with sorted keys. Keys that are missing are skipped; keys that fail to read are logged and skipped.
        """
        export: dict[str, Any] = {}
        for key in DEFAULT_CONFIGURATION_KEYS if keys is None else keys:
            try:
                raw = self._backend.get_item(key)
                if not raw:
                    continue
                export[key], _ = self._unwrap(key, json_store.loads(raw))
            except Exception as e:
                logger.error("CONFIG EXPORT: failed to export key %r: %r", key, e)
        return json_store.dumps(export, indent=2, sort_keys=True)

    def import_configuration(self, raw: str, *, on_reload: ReloadHook | None = None) -> bool:
        """
        Save every top-level entry of an exported bundle (no validators are applied).

        Malformed JSON or a non-object document writes nothing and returns False. After writes have been
        applied, the reload hook (`on_reload`, else the one given to the constructor) is scheduled with the
        imported keys.
        """
        try:
            data = json_store.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error("CONFIG IMPORT: invalid JSON: %r", e)
            return False
        if not isinstance(data, dict):
            logger.error("CONFIG IMPORT: expected a JSON object, got %s", type(data).__name__)
            return False

        results = {key: self.save(key, value) for key, value in data.items()}
        failed = [k for k, ok in results.items() if not ok]
        if failed:
            logger.warning("CONFIG IMPORT: %d of %d keys failed to save: %s", len(failed), len(results), failed)

        imported = [k for k, ok in results.items() if ok]
        if imported:
            self._schedule_reload(imported, on_reload or self._reload_hook)
        return not failed

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _unwrap(self, key: str, parsed: Any) -> tuple[Any, bool]:
        record = StoredRecord.from_disk_doc(parsed)
        if record is None:
            # Written before versioning existed: the whole document is the payload.
            return parsed, False
        if record.is_current:
            return record.payload, False

        migrate = self._migrations.get(record.version)
        if migrate is None:
            logger.warning(
                "STATE LOAD: key %r has unknown version %r (current %s), using payload as-is",
                key,
                record.version,
                CURRENT_VERSION,
            )
            return record.payload, False

        logger.info("STATE LOAD: migrating key %r from version %s to %s", key, record.version, CURRENT_VERSION)
        return migrate(record.payload), True

    def _schedule_reload(self, keys: list[str], hook: ReloadHook | None) -> None:
        if hook is None:
            return
        if self._reload_delay <= 0:
            self._run_reload(hook, keys)
            return
        timer = threading.Timer(self._reload_delay, self._run_reload, args=(hook, keys))
        timer.daemon = True
        timer.start()

    def _run_reload(self, hook: ReloadHook, keys: list[str]) -> None:
        try:
            hook(keys)
        except Exception as e:
            logger.error("CONFIG IMPORT: reload hook failed: %r", e)


def _coerce_operation(op: BatchOperation | Mapping[str, Any]) -> tuple[str, Any, Validator | None]:
    if isinstance(op, BatchOperation):
        return op.key, op.value, op.validator
    if not isinstance(op, Mapping):
        raise TypeError(f"unsupported batch operation type: {type(op).__name__}")
    value = op["value"] if "value" in op else op["data"]
    return op["key"], value, op.get("validator")
