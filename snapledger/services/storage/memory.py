"""
In-memory storage, used by tests and by sessions that should not touch disk.
"""

from typing import Optional

from snapledger.services.storage.interface import (
    PersistenceWriteError,
    RecordStorageInterface,
)


class InMemoryStorage(RecordStorageInterface):
    """Dictionary-backed record storage."""

    def __init__(self, records: Optional[dict[str, str]] = None):
        self.records: dict[str, str] = dict(records or {})
        self.write_count = 0
        # Set to an exception to make the next writes fail
        self.fail_writes_with: Optional[Exception] = None

    def read(self, key: str) -> Optional[str]:
        return self.records.get(key)

    def write(self, key: str, value: str) -> None:
        if self.fail_writes_with is not None:
            raise PersistenceWriteError(str(self.fail_writes_with)) from self.fail_writes_with
        self.records[key] = value
        self.write_count += 1

    def backup(self, key: str, suffix: str) -> Optional[str]:
        if key not in self.records:
            return None
        backup_key = f"{key}.{suffix}"
        self.records[backup_key] = self.records.pop(key)
        return backup_key
