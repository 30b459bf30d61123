"""Services package."""

from snapledger.services.extraction import (
    ConfigurationError,
    ExtractionError,
    FallbackPolicy,
    GeminiReceiptExtractor,
    ReceiptExtractionError,
)
from snapledger.services.storage import (
    CorruptLedgerError,
    InMemoryStorage,
    JsonFileStorage,
    PersistenceWriteError,
    RecordStorageInterface,
    StorageError,
)

__all__ = [
    # Extraction
    "ConfigurationError",
    "ExtractionError",
    "FallbackPolicy",
    "GeminiReceiptExtractor",
    "ReceiptExtractionError",
    # Storage
    "CorruptLedgerError",
    "InMemoryStorage",
    "JsonFileStorage",
    "PersistenceWriteError",
    "RecordStorageInterface",
    "StorageError",
]
