"""
Storage Services Package

Provides the abstract record interface and concrete implementations.
The app uses JSON files on disk; tests use the in-memory backend.
"""

from snapledger.services.storage.interface import (
    CorruptLedgerError,
    PersistenceWriteError,
    RecordStorageInterface,
    StorageError,
)
from snapledger.services.storage.json_file import JsonFileStorage
from snapledger.services.storage.memory import InMemoryStorage

__all__ = [
    # Interfaces
    "RecordStorageInterface",
    # Exceptions
    "CorruptLedgerError",
    "PersistenceWriteError",
    "StorageError",
    # Implementations
    "InMemoryStorage",
    "JsonFileStorage",
]
