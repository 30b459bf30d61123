"""
Audit Models for SnapLedger

Every significant step of the receipt pipeline and every ledger mutation
is recorded as an audit event. This provides:
1. Traceability of each capture from image to saved expense
2. Debugging information when extraction fails
3. A record of deletions

DESIGN DECISION: Audit events are write-only. They are emitted through
structlog and never read back by the application.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step in the capture pipeline has its own event type.
    """
    # Capture / extraction
    CAPTURE_STARTED = "capture_started"
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"
    FALLBACK_DRAFT_ISSUED = "fallback_draft_issued"

    # Review
    DRAFT_REVIEWED = "draft_reviewed"
    DRAFT_ABANDONED = "draft_abandoned"

    # Ledger
    LEDGER_LOADED = "ledger_loaded"
    LEDGER_RESET = "ledger_reset"
    EXPENSE_SAVED = "expense_saved"
    EXPENSE_DELETED = "expense_deleted"
    SAVE_FAILED = "save_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'draft', 'ledger')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - all events of one capture share this
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_type: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_type": self.error_type,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.capture_started(mime_type, size_bytes, correlation_id)
        event = AuditEventBuilder.expense_saved(expense_id, store, amount)
    """

    @staticmethod
    def capture_started(
        mime_type: str,
        size_bytes: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CAPTURE_STARTED,
            entity_type="image",
            correlation_id=correlation_id,
            description=f"Receipt image submitted ({mime_type})",
            details={
                "mime_type": mime_type,
                "size_bytes": size_bytes,
            },
            is_user_action=True,
        )

    @staticmethod
    def extraction_completed(
        store_name: str,
        receipt_date: str,
        amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            entity_type="extraction",
            correlation_id=correlation_id,
            description=f"Receipt read: {store_name or '(no store)'} {receipt_date} {amount}",
            details={
                "store_name": store_name,
                "date": receipt_date,
                "amount": amount,
            },
        )

    @staticmethod
    def extraction_failed(
        error: BaseException,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="extraction",
            correlation_id=correlation_id,
            description="Receipt extraction failed",
            error_type=type(error).__name__,
            error_message=str(error),
        )

    @staticmethod
    def fallback_draft_issued(
        draft_date: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FALLBACK_DRAFT_ISSUED,
            entity_type="draft",
            correlation_id=correlation_id,
            description="Empty draft issued for manual entry",
            details={"date": draft_date},
        )

    @staticmethod
    def draft_reviewed(
        draft_id: UUID,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DRAFT_REVIEWED,
            severity=AuditSeverity.WARNING if issues else AuditSeverity.INFO,
            entity_type="draft",
            entity_id=str(draft_id),
            correlation_id=correlation_id,
            description=f"Draft reviewed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def draft_abandoned(
        draft_id: UUID,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DRAFT_ABANDONED,
            entity_type="draft",
            entity_id=str(draft_id),
            correlation_id=correlation_id,
            description="User discarded the draft",
            is_user_action=True,
        )

    @staticmethod
    def ledger_loaded(record_key: str, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            entity_type="ledger",
            entity_id=record_key,
            description=f"Ledger loaded with {count} expenses",
            details={"count": count},
        )

    @staticmethod
    def ledger_reset(
        record_key: str,
        reason: str,
        backup_key: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_RESET,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            entity_id=record_key,
            description="Stored ledger was invalid and has been reset",
            error_message=reason,
            details={"backup_key": backup_key},
        )

    @staticmethod
    def expense_saved(
        expense_id: str,
        store_name: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_SAVED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense saved: {store_name or '(no store)'} - {amount}",
            details={
                "store_name": store_name,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(expense_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            description="Expense deleted",
            is_user_action=True,
        )

    @staticmethod
    def save_failed(
        operation: str,
        error: BaseException,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description=f"Ledger write failed during {operation}",
            error_type=type(error).__name__,
            error_message=str(error),
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_type=error_type,
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
