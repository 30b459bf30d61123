"""
Abstract Persistence Interface

DESIGN DECISION: The ledger does not know where it is stored. It is given
a persistence port that can read and write named records. This allows us to:
1. Use a JSON file on disk in the app
2. Use in-memory storage for testing
3. Swap in another key-value backend later without touching the ledger

The interface is intentionally tiny: a record is a name and a string.
Serialization is the ledger's job, not the port's.
"""

from abc import ABC, abstractmethod
from typing import Optional


class RecordStorageInterface(ABC):
    """
    Key-value storage for durable records.

    Implementations must make write() atomic: after it returns, read()
    gives back exactly the text that was written; if it raises, the
    previous value is still intact.
    """

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """
        Read a record.

        Args:
            key: Record name

        Returns:
            The stored text, or None if the record does not exist

        Raises:
            CorruptLedgerError: If the record exists but cannot be decoded
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        """
        Replace a record.

        Args:
            key: Record name
            value: Full new content

        Raises:
            PersistenceWriteError: If the write fails
        """
        pass

    @abstractmethod
    def backup(self, key: str, suffix: str) -> Optional[str]:
        """
        Move a record aside under ``<key>.<suffix>``.

        Args:
            key: Record name
            suffix: Suffix for the backup record name

        Returns:
            The backup record name, or None if there was nothing to move
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceWriteError(StorageError):
    """A record could not be written."""
    pass


class CorruptLedgerError(StorageError):
    """The stored ledger exists but does not match the expected schema."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Stored record '{key}' is invalid: {reason}")
