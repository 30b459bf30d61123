"""
Data Models Package

This package contains all Pydantic models used in SnapLedger.
All data flowing through the system must conform to these schemas.
"""

from snapledger.models.receipt import (
    EXTRACTION_RESPONSE_SCHEMA,
    UNKNOWN_STORE,
    Draft,
    Expense,
    ExtractionResponse,
    LoadingState,
    ReceiptData,
    ValidationIssue,
    ValidationResult,
)
from snapledger.models.month import MonthCursor
from snapledger.models.summary import MonthlySummary, Trend, TrendCategory
from snapledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Receipt models
    "EXTRACTION_RESPONSE_SCHEMA",
    "UNKNOWN_STORE",
    "Draft",
    "Expense",
    "ExtractionResponse",
    "LoadingState",
    "ReceiptData",
    "ValidationIssue",
    "ValidationResult",
    # Month / summary
    "MonthCursor",
    "MonthlySummary",
    "Trend",
    "TrendCategory",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
