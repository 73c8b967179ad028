from __future__ import annotations

from pathlib import Path


def project_root() -> Path:
    # persistence/paths.py -> persistence -> project root
    return Path(__file__).resolve().parents[1]


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path
