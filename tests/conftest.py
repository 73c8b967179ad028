from __future__ import annotations

from pathlib import Path
import sys


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for imports like `import persistence...` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def sandbox_project(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """
    Redirect persistence paths to a temp project directory so tests never touch real ./data.
    """
    import persistence.paths as paths

    def _project_root() -> Path:
        return tmp_path

    monkeypatch.setattr(paths, "project_root", _project_root)
    for name in ("PERSIST_TO_DISK", "STATE_DATA_DIR", "STATE_STORAGE_QUOTA_BYTES", "IMPORT_RELOAD_DELAY_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def backend():
    from persistence import InMemoryBackend

    return InMemoryBackend()


@pytest.fixture
def manager(backend):
    from persistence import StateManager

    return StateManager(backend, reload_delay=0)


@pytest.fixture
def client(sandbox_project: Path, manager):
    from fastapi.testclient import TestClient

    import app as app_module

    return TestClient(app_module.create_app(manager))
