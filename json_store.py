from __future__ import annotations

import json
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

# Matches what the browser dashboard wrote via Date.toISOString().
ISO_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{3})?Z?$")


def format_datetime(dt: datetime) -> str:
    """
    Serialize a datetime in the millisecond ISO-8601 form that `revive_dates` recognizes.

    Aware datetimes are converted to UTC and get a trailing "Z"; naive ones are written as-is.
    """
    suffix = ""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
        suffix = "Z"
    return dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{dt.microsecond // 1000:03d}" + suffix


def _default(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_datetime(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def parse_datetime(text: str) -> datetime:
    if text.endswith("Z"):
        return datetime.fromisoformat(text[:-1]).replace(tzinfo=timezone.utc)
    return datetime.fromisoformat(text)


def revive_dates(value: Any) -> Any:
    """
    Recursively turn ISO-8601 datetime strings back into datetime objects.

    Any string shaped like a timestamp is converted, including ones that were never dates.
    """
    if isinstance(value, str):
        if ISO_DATETIME_RE.match(value):
            try:
                return parse_datetime(value)
            except ValueError:
                return value
        return value
    if isinstance(value, dict):
        return {k: revive_dates(v) for k, v in value.items()}
    if isinstance(value, list):
        return [revive_dates(v) for v in value]
    return value


def dumps(payload: Any, *, indent: int | None = None, sort_keys: bool = False) -> str:
    return json.dumps(payload, default=_default, indent=indent, sort_keys=sort_keys, allow_nan=False)


def loads(raw: str) -> Any:
    """Parse JSON and revive datetimes. Raises ValueError on malformed input."""
    return revive_dates(json.loads(raw))


def read_text(path: Path) -> str | None:
    """
    Read a text file from disk.

    Returns None for missing files.
    """
    if not path.exists():
        return None
    return path.read_text(encoding="utf-8")


def atomic_write_text(path: Path, text: str) -> None:
    """
    Atomically write text to disk by writing to a temp file then replacing.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        f.write(text)
    tmp_path.replace(path)
