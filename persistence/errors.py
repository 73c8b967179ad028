from __future__ import annotations


class StorageError(Exception):
    """Raised by storage backends when a read or write cannot be completed."""


class QuotaExceededError(StorageError):
    def __init__(self, key: str, needed: int, quota: int):
        super().__init__(f"storing {key!r} needs {needed} bytes, quota is {quota}")
        self.key = key
        self.needed = needed
        self.quota = quota
