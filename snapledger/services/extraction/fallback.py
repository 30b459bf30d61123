"""
Fallback Policy

Turns any extraction failure into an empty draft so the user always
lands on an editable form. Nothing here raises.
"""

from datetime import date
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from snapledger.audit import AuditLogger
from snapledger.models.receipt import ReceiptData
from snapledger.services.extraction.gemini_service import ConfigurationError


NOTICE_UNAVAILABLE = (
    "Receipt reading is not available right now. "
    "Please enter the details manually."
)
NOTICE_FAILED = (
    "The receipt could not be read. "
    "Please try again or enter the details manually."
)


class FallbackPolicy:
    """Builds the manual-entry draft used when extraction fails."""

    def __init__(
        self,
        audit_logger: Optional[AuditLogger] = None,
        today: Callable[[], date] = date.today,
    ):
        self._audit_logger = audit_logger or AuditLogger()
        self._today = today

    def on_failure(
        self,
        error: BaseException,
        correlation_id: Optional[UUID] = None,
    ) -> ReceiptData:
        """
        Empty draft dated today: no store name, zero amount.

        The error is logged; the draft itself carries no trace of it.
        """
        draft = ReceiptData(
            store_name="",
            date=self._today(),
            amount=Decimal("0"),
        )
        self._audit_logger.log_extraction_failed(error, correlation_id=correlation_id)
        self._audit_logger.log_fallback_draft(draft, correlation_id=correlation_id)
        return draft

    @staticmethod
    def notice_for(error: BaseException) -> str:
        """Message to show next to the fallback draft."""
        if isinstance(error, ConfigurationError):
            return NOTICE_UNAVAILABLE
        return NOTICE_FAILED
