from __future__ import annotations

from pathlib import Path
from urllib.parse import quote, unquote

from json_store import atomic_write_text, read_text

from .errors import StorageError
from .interfaces import StorageBackend
from .locks import GLOBAL_PATH_LOCKS
from .paths import ensure_dir

_SUFFIX = ".json"


class DiskBackend(StorageBackend):
    """
    Stores each key as its own file under a directory:

    - data/state/<percent-encoded key>.json
    - Writes atomically (temp file + replace).
    - Writers of the same key are serialized per process; separate processes race (last writer wins).
    """

    def __init__(self, directory: Path):
        self._dir = ensure_dir(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    def get_item(self, key: str) -> str | None:
        path = self._path_for(key)
        with GLOBAL_PATH_LOCKS.lock_for(path):
            try:
                return read_text(path)
            except OSError as e:
                raise StorageError(f"failed to read {path}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        path = self._path_for(key)
        with GLOBAL_PATH_LOCKS.lock_for(path):
            try:
                atomic_write_text(path, value)
            except OSError as e:
                raise StorageError(f"failed to write {path}: {e}") from e

    def remove_item(self, key: str) -> None:
        path = self._path_for(key)
        with GLOBAL_PATH_LOCKS.lock_for(path):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise StorageError(f"failed to remove {path}: {e}") from e

    def keys(self) -> list[str]:
        return [unquote(p.name[: -len(_SUFFIX)]) for p in self._dir.glob(f"*{_SUFFIX}")]

    def _path_for(self, key: str) -> Path:
        if not key:
            raise StorageError("key must be a non-empty string")
        # Percent-encode everything so keys can never escape the directory.
        return self._dir / f"{quote(key, safe='')}{_SUFFIX}"
