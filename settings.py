from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class Settings:
    # Persistence (serverless-friendly default: off)
    persist_to_disk: bool
    state_data_dir: Path
    storage_quota_bytes: int | None

    # Configuration import
    import_reload_delay_seconds: float

    # Debug / logging
    debug_log_requests: bool
    log_level: str


def get_settings() -> Settings:
    # Resolved lazily so tests can monkeypatch persistence.paths.
    from persistence.paths import project_root

    raw_dir = os.getenv("STATE_DATA_DIR", "").strip()
    state_data_dir = Path(raw_dir) if raw_dir else project_root() / "data" / "state"

    return Settings(
        persist_to_disk=_env_bool("PERSIST_TO_DISK", False),
        state_data_dir=state_data_dir,
        storage_quota_bytes=_env_int("STATE_STORAGE_QUOTA_BYTES"),
        import_reload_delay_seconds=_env_float("IMPORT_RELOAD_DELAY_SECONDS", 1.0),
        debug_log_requests=_env_bool("DEBUG_LOG_REQUESTS", False),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
