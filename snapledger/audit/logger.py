"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of each capture from image to saved expense
2. Debugging capability when extraction fails
3. A record of ledger resets and deletions

The audit logger:
- Is synchronous, like the ledger mutations it records
- Never raises (a logging failure must not break a save)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from snapledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from snapledger.models.receipt import Expense, ReceiptData


def configure_logging(log_format: str = "json", debug: bool = False) -> None:
    """
    Configure structlog on top of the standard library logger.

    Called once at import with defaults and again by
    create_app_components() once settings are known.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=logging.DEBUG if debug else logging.INFO,
    )

    renderer = (
        structlog.dev.ConsoleRenderer()
        if log_format == "console"
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Writes every event to the structured log at the event's severity.
    """

    def __init__(self, logger_name: str = "snapledger.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            # Broken handler or renderer; the caller's operation goes on
            return False

        return True

    def log_capture_started(
        self,
        mime_type: str,
        size_bytes: int,
        correlation_id: UUID,
    ) -> None:
        """Log a new receipt image entering the pipeline."""
        self.log(AuditEventBuilder.capture_started(
            mime_type=mime_type,
            size_bytes=size_bytes,
            correlation_id=correlation_id,
        ))

    def log_extraction_completed(
        self,
        data: ReceiptData,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.extraction_completed(
            store_name=data.store_name,
            receipt_date=data.date.isoformat(),
            amount=str(data.amount),
            correlation_id=correlation_id,
        ))

    def log_extraction_failed(
        self,
        error: BaseException,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.extraction_failed(
            error=error,
            correlation_id=correlation_id,
        ))

    def log_fallback_draft(
        self,
        draft: ReceiptData,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.fallback_draft_issued(
            draft_date=draft.date.isoformat(),
            correlation_id=correlation_id,
        ))

    def log_draft_reviewed(
        self,
        draft_id: UUID,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.draft_reviewed(
            draft_id=draft_id,
            issues=issues,
            correlation_id=correlation_id,
        ))

    def log_draft_abandoned(
        self,
        draft_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.draft_abandoned(
            draft_id=draft_id,
            correlation_id=correlation_id,
        ))

    def log_ledger_loaded(self, record_key: str, count: int) -> None:
        self.log(AuditEventBuilder.ledger_loaded(record_key=record_key, count=count))

    def log_ledger_reset(
        self,
        record_key: str,
        reason: str,
        backup_key: Optional[str],
    ) -> None:
        """Log that an unreadable ledger was set aside."""
        self.log(AuditEventBuilder.ledger_reset(
            record_key=record_key,
            reason=reason,
            backup_key=backup_key,
        ))

    def log_expense_saved(
        self,
        expense: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.expense_saved(
            expense_id=expense.id,
            store_name=expense.store_name,
            amount=str(expense.amount),
            correlation_id=correlation_id,
        ))

    def log_expense_deleted(self, expense_id: str) -> None:
        self.log(AuditEventBuilder.expense_deleted(expense_id=expense_id))

    def log_save_failed(self, operation: str, error: BaseException) -> None:
        self.log(AuditEventBuilder.save_failed(operation=operation, error=error))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a capture).
    Pass it through all subsequent operations.
    """
    return uuid4()
