from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

CURRENT_VERSION = "1.0.0"


class StoredRecord(BaseModel):
    """
    Envelope persisted under every key:
      { "version": "1.0.0", "payload": <value>, "savedAt": "2025-01-01T12:00:00.000Z" }

    The browser build of the dashboard wrote the same thing as
      { "_version": "1.0.0", "data": <value>, "timestamp": "..." }
    and both shapes are accepted on read.
    """

    model_config = ConfigDict(populate_by_name=True)

    version: str
    payload: Any = None
    saved_at: datetime | None = Field(default=None, alias="savedAt")

    @classmethod
    def wrap(cls, payload: Any, *, saved_at: datetime) -> "StoredRecord":
        return cls(version=CURRENT_VERSION, payload=payload, saved_at=saved_at)

    @classmethod
    def from_disk_doc(cls, doc: Any) -> "StoredRecord | None":
        """Return the envelope carried by `doc`, or None when `doc` is a bare legacy payload."""
        if not isinstance(doc, dict):
            return None

        version = doc.get("version")
        if isinstance(version, str) and version and "payload" in doc:
            return cls(version=version, payload=doc["payload"], saved_at=_as_datetime(doc.get("savedAt")))

        legacy_version = doc.get("_version")
        if legacy_version and "data" in doc:
            return cls(
                version=str(legacy_version),
                payload=doc["data"],
                saved_at=_as_datetime(doc.get("timestamp")),
            )
        return None

    def to_disk_doc(self) -> dict[str, Any]:
        # Payload is left untouched; json_store.dumps handles datetimes inside it.
        return {"version": self.version, "payload": self.payload, "savedAt": self.saved_at}

    @property
    def is_current(self) -> bool:
        return self.version == CURRENT_VERSION


def _as_datetime(value: Any) -> datetime | None:
    return value if isinstance(value, datetime) else None
